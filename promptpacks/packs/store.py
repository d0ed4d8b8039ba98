# promptpacks/packs/store.py
from __future__ import annotations
import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from promptpacks.core.errors import IntegrityError, MalformedPackError
from promptpacks.security.verifier import IntegrityVerifier
from .canonical import canonicalize
from .loaders import DEFAULT_MAX_SIGNATURE_BYTES, loadPackFile, scanArtifacts
from .models import GENERAL_GAME_ID, Pack, makeGeneralPack

logger = logging.getLogger(__name__)

__all__ = ["PackSnapshot", "PackLoadReport", "RejectedPack", "PackStore"]



# ----------------------------------------------
#                   Snapshot
# ----------------------------------------------

@dataclass(frozen=True)
class PackSnapshot:
    """
    Immutable view of every loaded pack in registration order.

    `matchers` holds the canonical matcher strings per pack (same order as
    `packs`), computed once at load so resolve never re-canonicalizes them.
    """
    packs: tuple[Pack, ...]
    byId: dict[str, Pack]
    general: Pack
    matchers: tuple[tuple[str, ...], ...]
    generation: int = 0

    @classmethod
    def build(cls, packs: Iterable[Pack], *, generation: int = 0) -> "PackSnapshot":
        ordered = list(packs)
        general = next((pack for pack in ordered if pack.gameId == GENERAL_GAME_ID), None)
        if general is None:
            general = makeGeneralPack()
            ordered.append(general)

        matchers = tuple(
            tuple(key for key in (canonicalize(raw) for raw in pack.matchers) if key)
            for pack in ordered
        )
        return cls(
            packs=tuple(ordered),
            byId={pack.gameId: pack for pack in ordered},
            general=general,
            matchers=matchers,
            generation=generation,
        )

    @property
    def gameIds(self) -> list[str]:
        return [pack.gameId for pack in self.packs]

    def get(self, gameId: str) -> Pack | None:
        return self.byId.get(gameId)



# ----------------------------------------------
#                  Load report
# ----------------------------------------------

@dataclass(frozen=True)
class RejectedPack:
    path: Path
    error: MalformedPackError | IntegrityError



@dataclass
class PackLoadReport:
    loaded: list[tuple[str, Path]] = field(default_factory=list)
    overridden: list[tuple[str, Path]] = field(default_factory=list) # (gameId, replaced source)
    rejected: list[RejectedPack] = field(default_factory=list)
    builtInGeneral: bool = False

    @property
    def loadedIds(self) -> list[str]:
        return [gameId for gameId, _path in self.loaded]

    def toDict(self) -> dict[str, object]:
        return {
            "loaded": [{"gameId": gameId, "path": str(path)} for gameId, path in self.loaded],
            "overridden": [{"gameId": gameId, "path": str(path)} for gameId, path in self.overridden],
            "rejected": [
                {"path": str(item.path), "type": type(item.error).__name__, "message": str(item.error)}
                for item in self.rejected
            ],
            "builtInGeneral": self.builtInGeneral,
        }



# ----------------------------------------------
#                    PackStore
# ----------------------------------------------

class PackStore:
    """
    Verified packs from a fixed list of directories, earlier directories first.

    A later pack with the same gameId (case-insensitive) replaces the earlier one
    at the earlier one's position, so registration order only ever depends on
    where an id was first seen.
    """

    def __init__(
        self,
        directories: Sequence[Path],
        verifier: IntegrityVerifier,
        *,
        maxCategories: int = 16,
        maxSignatureBytes: int = DEFAULT_MAX_SIGNATURE_BYTES,
    ) -> None:
        self.directories = [Path(directory) for directory in directories]
        self.verifier = verifier
        self.maxCategories = maxCategories
        self.maxSignatureBytes = maxSignatureBytes

        self._lock = threading.Lock()
        self._snapshot = PackSnapshot.build([])
        self._generation = 0

    def snapshot(self) -> PackSnapshot:
        with self._lock:
            return self._snapshot

    def load(self) -> PackLoadReport:
        """Rebuilds the snapshot from disk and swaps it in. Never raises for bad packs."""
        report = PackLoadReport()
        ordered: list[Pack] = []
        sources: list[Path] = []
        positionById: dict[str, int] = {}

        for directory in self.directories:
            for artifact in scanArtifacts(directory):
                try:
                    pack = loadPackFile(
                        artifact,
                        self.verifier,
                        maxCategories=self.maxCategories,
                        maxSignatureBytes=self.maxSignatureBytes,
                    )
                except (IntegrityError, MalformedPackError) as err:
                    logger.warning("Skipping pack '%s': %s", artifact, err)
                    report.rejected.append(RejectedPack(artifact, err))
                    continue

                key = pack.gameId.casefold()
                position = positionById.get(key)
                if position is None:
                    positionById[key] = len(ordered)
                    ordered.append(pack)
                    sources.append(artifact)
                else:
                    logger.info("Pack '%s' from '%s' overrides '%s'", pack.gameId, artifact, sources[position])
                    report.overridden.append((ordered[position].gameId, sources[position]))
                    ordered[position] = pack
                    sources[position] = artifact

        report.loaded = [(pack.gameId, source) for pack, source in zip(ordered, sources)]

        # Real 'General' pack (any casing) becomes the fallback under the canonical id
        generalPos = positionById.get(GENERAL_GAME_ID.casefold())
        if generalPos is not None and ordered[generalPos].gameId != GENERAL_GAME_ID:
            ordered[generalPos] = ordered[generalPos].model_copy(update={"gameId": GENERAL_GAME_ID})
        report.builtInGeneral = generalPos is None

        with self._lock:
            self._generation += 1
            self._snapshot = PackSnapshot.build(ordered, generation=self._generation)

        logger.info(
            "Loaded %d pack(s) (%d rejected, %d overridden)",
            len(ordered), len(report.rejected), len(report.overridden),
        )
        return report
