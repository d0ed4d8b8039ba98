# promptpacks/packs/resolver.py
from __future__ import annotations
import logging

from .canonical import canonicalize
from .models import Pack
from .store import PackSnapshot, PackStore

logger = logging.getLogger(__name__)

__all__ = ["resolvePack", "Resolver"]



def resolvePack(snapshot: PackSnapshot, rawTitle: str | None) -> Pack:
    """
    Window title → Pack. Pure, no I/O, never raises.

    1) exact gameId, then case-insensitive gameId (registration order)
    2) first pack in registration order whose canonical matcher is a
       substring of the canonical title
    3) General
    """
    title = rawTitle or ""
    if not title.strip():
        return snapshot.general

    exact = snapshot.byId.get(title)
    if exact is not None:
        return exact

    folded = title.casefold()
    for pack in snapshot.packs:
        if pack.gameId.casefold() == folded:
            return pack

    canonicalTitle = canonicalize(title)
    if not canonicalTitle:
        return snapshot.general

    for pack, matchers in zip(snapshot.packs, snapshot.matchers):
        for matcher in matchers:
            if matcher in canonicalTitle:
                return pack

    return snapshot.general



class Resolver:
    """Resolves against whatever snapshot the store holds at call time."""

    def __init__(self, store: PackStore) -> None:
        self._store = store

    def resolve(self, rawTitle: str | None) -> Pack:
        pack = resolvePack(self._store.snapshot(), rawTitle)
        logger.debug("Resolved %r → '%s'", rawTitle, pack.gameId)
        return pack
