# promptpacks/packs/templates.py
from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum

from .models import Pack

__all__ = [
    "PREAMBLE",
    "DEFAULT_OCR_CHAR_CAP",
    "QueryStatus",
    "SecondaryQuery",
    "TemplateEngine",
    "renderPrompt",
    "renderSecondaryQuery",
    "extractTokenValue",
    "synthesizeFallbackQuery",
]

PREAMBLE = "You help gamers by analyzing screenshots and returning concise, verified, game-specific answers."
DEFAULT_OCR_CHAR_CAP = 200

_PLACEHOLDER = re.compile(r"<([^<>\r\n]+)>")
_FIRST_HEADING = re.compile(r"\*\*[^:\r\n]+:\s*(?:\*\*)?\s*(?P<val>[^\r\n]+)")
_EMPHASIS = re.compile(r"\*{2,}|__")
# Paired single-marker italics: *word* and _word_, but not 5 * 3 or snake_case
_ITALIC_STAR = re.compile(r"(?<![\w*])\*(?=\S)([^*\r\n]+?)(?<=\S)\*(?![\w*])")
_ITALIC_UNDERSCORE = re.compile(r"(?<![\w_])_(?=\S)([^_\r\n]+?)(?<=\S)_(?![\w_])")
_WHITESPACE = re.compile(r"\s+")
_EXPLICIT_QUERY = re.compile(r"(?im)^\s*(?:SEARCH|YOUTUBE)_QUERY:\s*\"(?P<q>.+?)\"\s*$")

# Token spellings seen in published templates → heading names used in responses
_HEADING_SYNONYMS: dict[str, str] = {
    "weaponbase": "Weapon",
    "weapon": "Weapon",
    "quest": "Quest",
    "item": "Item",
    "key/card": "Key/Card",
    "keycard": "Key/Card",
}



class QueryStatus(str, Enum):
    RENDERED = "rendered"
    NO_TEMPLATE = "no_template"
    UNSATISFIED = "unsatisfied"



@dataclass(frozen=True)
class SecondaryQuery:
    status: QueryStatus
    text: str | None = None
    unresolved: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is QueryStatus.RENDERED



# ----------------------------------------------
#                    Helpers
# ----------------------------------------------

def _clean(value: str) -> str:
    text = _EMPHASIS.sub("", value)
    text = _ITALIC_UNDERSCORE.sub(r"\1", _ITALIC_STAR.sub(r"\1", text))
    return _WHITESPACE.sub(" ", text).strip()



def _fromHeading(headingName: str, text: str) -> str | None:
    name = headingName.strip()
    if not name:
        return None
    pattern = re.compile(
        rf"\*\*\s*{re.escape(name)}\s*(?:\*\*)?\s*:\s*(?:\*\*)?\s*(?P<val>[^\r\n]+)",
        re.IGNORECASE,
    )
    match = pattern.search(text)
    if not match:
        return None
    return _clean(match.group("val")) or None



def extractTokenValue(tokenName: str, responseText: str) -> str | None:
    """
    Finds a value for <tokenName> in an AI response:
      a) **Token:** value
      b) Token without a trailing 'Base'
      c) synonym table
      d) first bold heading anywhere
    """
    if not responseText or not responseText.strip():
        return None

    value = _fromHeading(tokenName, responseText)
    if value:
        return value

    norm = tokenName.strip().lower()
    if norm.endswith("base") and len(norm) > len("base"):
        value = _fromHeading(tokenName.strip()[:-len("base")], responseText)
        if value:
            return value

    synonym = _HEADING_SYNONYMS.get(norm)
    if synonym:
        value = _fromHeading(synonym, responseText)
        if value:
            return value

    match = _FIRST_HEADING.search(responseText)
    if match:
        return _clean(match.group("val")) or None
    return None



# ----------------------------------------------
#                   Rendering
# ----------------------------------------------

def _ocrBlock(ocrSnippet: str | None, ocrCharCap: int) -> list[str]:
    if not ocrSnippet or not ocrSnippet.strip():
        return []
    return ["", f'OCR: "{ocrSnippet[:max(0, ocrCharCap)]}"']



def renderPrompt(
    pack: Pack,
    categoryId: str,
    ocrSnippet: str | None = None,
    *,
    ocrCharCap: int = DEFAULT_OCR_CHAR_CAP,
) -> str:
    """Full prompt for a category, or a header-only prompt when the pack has no such category."""
    found = pack.findCategory(categoryId) if categoryId else None
    if found is None:
        lines = [PREAMBLE, f"Game: {pack.gameId}", f"Category: {categoryId}"]
    else:
        key, category = found
        lines = [
            PREAMBLE,
            f"Game: {pack.gameId}",
            f"Category: {category.displayLabel(key)}",
            "",
            category.template.strip(),
        ]
    lines.extend(_ocrBlock(ocrSnippet, ocrCharCap))
    return "\n".join(lines) + "\n"



def renderSecondaryQuery(pack: Pack, categoryId: str, responseText: str | None) -> SecondaryQuery:
    found = pack.findCategory(categoryId) if categoryId else None
    if found is None:
        return SecondaryQuery(QueryStatus.NO_TEMPLATE)
    key, category = found
    template = category.secondaryQueryTemplate
    if not template or not template.strip():
        return SecondaryQuery(QueryStatus.NO_TEMPLATE)

    text = responseText or ""
    result = template.replace("{Game}", pack.gameId).replace("{Category}", category.displayLabel(key))

    # Resolve every token against the template first; values are never rescanned for placeholders
    values: dict[str, str] = {}
    for token in dict.fromkeys(match.group(1) for match in _PLACEHOLDER.finditer(result)):
        value = extractTokenValue(token, text)
        if value:
            values[token] = value

    leftovers = tuple(dict.fromkeys(
        match.group(0) for match in _PLACEHOLDER.finditer(result) if match.group(1) not in values
    ))
    if leftovers:
        return SecondaryQuery(QueryStatus.UNSATISFIED, unresolved=leftovers)

    result = _PLACEHOLDER.sub(lambda match: values[match.group(1)], result)
    cleaned = _clean(result)
    if not cleaned:
        return SecondaryQuery(QueryStatus.UNSATISFIED)
    return SecondaryQuery(QueryStatus.RENDERED, cleaned)



def synthesizeFallbackQuery(gameName: str | None, responseText: str | None) -> str:
    """
    Query for when the pack has none: an explicit SEARCH_QUERY / YOUTUBE_QUERY
    line, else the first non-blank response line, else "<game> guide".
    """
    text = responseText or ""
    explicit = _EXPLICIT_QUERY.search(text)
    if explicit:
        query = _clean(explicit.group("q"))
        if query:
            return query

    for line in text.splitlines():
        cleaned = _clean(line)
        if cleaned:
            return cleaned

    game = (gameName or "").strip() or "game"
    return f"{game} guide"



class TemplateEngine:
    """Holds the OCR cap; rendering itself is stateless."""

    def __init__(self, *, ocrCharCap: int = DEFAULT_OCR_CHAR_CAP) -> None:
        self.ocrCharCap = ocrCharCap

    def renderPrompt(self, pack: Pack, categoryId: str, ocrSnippet: str | None = None) -> str:
        return renderPrompt(pack, categoryId, ocrSnippet, ocrCharCap=self.ocrCharCap)

    def renderSecondaryQuery(self, pack: Pack, categoryId: str, responseText: str | None) -> SecondaryQuery:
        return renderSecondaryQuery(pack, categoryId, responseText)
