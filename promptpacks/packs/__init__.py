# promptpacks/packs/__init__.py
from .models import Pack, Category, GameCapabilities, ShortcutCapability, GENERAL_GAME_ID
from .store import PackStore, PackSnapshot, PackLoadReport
from .resolver import Resolver, resolvePack
from .canonical import canonicalize
from .templates import TemplateEngine, SecondaryQuery, QueryStatus, synthesizeFallbackQuery
from .provider import PromptPackProvider

__all__ = [
    "Pack",
    "Category",
    "GameCapabilities",
    "ShortcutCapability",
    "GENERAL_GAME_ID",
    "PackStore",
    "PackSnapshot",
    "PackLoadReport",
    "Resolver",
    "resolvePack",
    "canonicalize",
    "TemplateEngine",
    "SecondaryQuery",
    "QueryStatus",
    "synthesizeFallbackQuery",
    "PromptPackProvider",
]
