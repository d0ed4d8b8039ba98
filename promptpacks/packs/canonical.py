# promptpacks/packs/canonical.py
from __future__ import annotations
import unicodedata

__all__ = ["canonicalize"]

# Control, format (ZWJ/ZWNJ/BOM), surrogate, private use, unassigned, combining marks
_DROPPED_CATEGORIES = frozenset({"Cc", "Cf", "Cs", "Co", "Cn", "Mn", "Me"})



def _keep(ch: str) -> bool:
    category = unicodedata.category(ch)
    if category in _DROPPED_CATEGORIES:
        return False
    # All punctuation (P*) and separators (Z*)
    if category[0] in ("P", "Z"):
        return False
    return not ch.isspace()



def canonicalize(text: str | None) -> str:
    """
    Folds a window title or matcher into a comparable key.

    "Ärc Ra‌iders" and "arc raiders" both give "arcraiders".
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if _keep(ch)).casefold()
