# promptpacks/packs/provider.py
from __future__ import annotations
import logging

from .models import GENERAL_GAME_ID, GameCapabilities, capabilitiesOf
from .resolver import resolvePack
from .store import PackStore
from .templates import PREAMBLE, QueryStatus, TemplateEngine, synthesizeFallbackQuery

logger = logging.getLogger(__name__)

__all__ = ["LEGACY_CATEGORY_ALIASES", "mapCategory", "PromptPackProvider"]

# Old hard-coded hotkey labels → category ids
LEGACY_CATEGORY_ALIASES: dict[str, str] = {
    "gun mods": "GunMods",
    "loot": "LootItem",
    "keys": "KeysCards",
}



def mapCategory(category: str | None) -> str:
    """Legacy labels map to their ids; anything else passes through unchanged."""
    if not category or not category.strip():
        return category or ""
    return LEGACY_CATEGORY_ALIASES.get(category.strip().casefold(), category)



class PromptPackProvider:
    """
    Consumer façade for the UI/hotkey layer.

    Every method answers; failures are logged and fall back to the General pack,
    a header-only prompt or None. Callers only ever see strings and capability
    snapshots, never Pack objects.
    """

    def __init__(self, store: PackStore, engine: TemplateEngine | None = None) -> None:
        self._store = store
        self._engine = engine or TemplateEngine()

    def resolveGameId(self, rawTitle: str | None) -> str:
        try:
            return resolvePack(self._store.snapshot(), rawTitle).gameId
        except Exception:
            logger.exception("resolve failed for %r", rawTitle)
            return GENERAL_GAME_ID

    def getPrompt(self, rawTitle: str | None, category: str | None, ocrSnippet: str | None = None) -> str:
        categoryId = mapCategory(category)
        try:
            pack = resolvePack(self._store.snapshot(), rawTitle)
            return self._engine.renderPrompt(pack, categoryId, ocrSnippet)
        except Exception:
            logger.exception("getPrompt failed for %r / %r", rawTitle, category)
            return "\n".join([PREAMBLE, f"Game: {GENERAL_GAME_ID}", f"Category: {categoryId}"]) + "\n"

    def getActiveCapabilities(self, rawTitle: str | None) -> GameCapabilities:
        try:
            return capabilitiesOf(resolvePack(self._store.snapshot(), rawTitle))
        except Exception:
            logger.exception("getActiveCapabilities failed for %r", rawTitle)
            return GameCapabilities(gameName=GENERAL_GAME_ID)

    def tryBuildSecondaryQuery(self, rawTitle: str | None, categoryId: str | None, responseText: str | None) -> str | None:
        """Pack-specific follow-up query, or None when the pack has no usable template."""
        try:
            pack = resolvePack(self._store.snapshot(), rawTitle)
            query = self._engine.renderSecondaryQuery(pack, mapCategory(categoryId), responseText)
        except Exception:
            logger.exception("tryBuildSecondaryQuery failed for %r / %r", rawTitle, categoryId)
            return None
        if query.status is QueryStatus.UNSATISFIED:
            logger.debug("Secondary query for '%s/%s' unsatisfied: %s", pack.gameId, categoryId, query.unresolved)
        return query.text if query.ok else None

    def buildSearchQuery(self, rawTitle: str | None, categoryId: str | None, responseText: str | None) -> str:
        """tryBuildSecondaryQuery, else a query synthesized from the response."""
        query = self.tryBuildSecondaryQuery(rawTitle, categoryId, responseText)
        if query:
            return query
        return synthesizeFallbackQuery(self.resolveGameId(rawTitle), responseText)
