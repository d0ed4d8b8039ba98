# promptpacks/sync/engine.py
from __future__ import annotations
import asyncio
import logging
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from promptpacks.core.errors import (
    IntegrityError,
    InstallError,
    MalformedIndexEntryError,
    MalformedIndexError,
    PackSystemError,
    TransientNetworkError,
)
from promptpacks.core.hashing import sha256File, sha256Matches
from promptpacks.core.jsonutils import serializeError
from promptpacks.core.logging import clearLogContext, setLogContext
from promptpacks.http.client import fetchBytes, makeClient
from promptpacks.security.verifier import IntegrityVerifier
from promptpacks.sync.index import COLLECTIONS, PackIndex, PackIndexEntry, parseEntry, parseIndex
from promptpacks.sync.install import artifactPath, installPair
from promptpacks.sync.notify import ChangeNotifier

logger = logging.getLogger(__name__)

__all__ = ["EntryStatus", "EntryOutcome", "SyncReport", "SyncEngine"]

DEFAULT_MAX_INDEX_BYTES = 1024 * 1024



# ----------------------------------------------
#                 Cycle results
# ----------------------------------------------

class EntryStatus(str, Enum):
    SKIPPED = "skipped"
    INSTALLED = "installed"
    FAILED = "failed"
    CANCELLED = "cancelled"



@dataclass(frozen=True)
class EntryOutcome:
    collection: str
    position: int
    name: str | None
    status: EntryStatus
    version: str | None = None
    error: PackSystemError | None = None

    def toDict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "collection": self.collection,
            "position": self.position,
            "name": self.name,
            "status": self.status.value,
            "version": self.version,
        }
        if self.error is not None:
            out["error"] = serializeError(self.error)
        return out



@dataclass
class SyncReport:
    cycleId: str
    startedAt: datetime
    indexError: PackSystemError | None = None
    outcomes: list[EntryOutcome] = field(default_factory=list)
    finishedAt: datetime | None = None

    def _count(self, status: EntryStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def installed(self) -> int:
        return self._count(EntryStatus.INSTALLED)

    @property
    def failed(self) -> int:
        return self._count(EntryStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(EntryStatus.SKIPPED)

    @property
    def cancelled(self) -> bool:
        return any(outcome.status is EntryStatus.CANCELLED for outcome in self.outcomes)

    @property
    def changed(self) -> bool:
        return self.installed > 0

    def outcomeFor(self, name: str, collection: str = "packs") -> EntryOutcome | None:
        for outcome in self.outcomes:
            if outcome.collection == collection and outcome.name == name:
                return outcome
        return None

    def toDict(self) -> dict[str, Any]:
        return {
            "cycleId": self.cycleId,
            "startedAt": self.startedAt.isoformat(),
            "finishedAt": self.finishedAt.isoformat() if self.finishedAt else None,
            "indexError": serializeError(self.indexError) if self.indexError else None,
            "installed": self.installed,
            "failed": self.failed,
            "skipped": self.skipped,
            "cancelled": self.cancelled,
            "changed": self.changed,
            "outcomes": [outcome.toDict() for outcome in self.outcomes],
        }



# ----------------------------------------------
#                   SyncEngine
# ----------------------------------------------

class SyncEngine:
    """
    Mirrors the remote index into the user directories.

    Touches only the filesystem and the ChangeNotifier; the in-memory PackStore
    reloads on its own schedule once it sees the notification.
    """

    def __init__(
        self,
        *,
        indexUrl: str,
        verifier: IntegrityVerifier,
        directories: Mapping[str, Path],
        notifier: ChangeNotifier,
        maxArtifactBytes: int = 512 * 1024,
        maxSignatureBytes: int = 8 * 1024,
        maxIndexBytes: int = DEFAULT_MAX_INDEX_BYTES,
        timeoutMs: int = 20_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        missing = [name for name in COLLECTIONS if name not in directories]
        if missing:
            raise ValueError(f"SyncEngine: no target directory for {', '.join(missing)}")
        self.indexUrl = indexUrl
        self.verifier = verifier
        self.directories = {name: Path(path) for name, path in directories.items()}
        self.notifier = notifier
        self.maxArtifactBytes = maxArtifactBytes
        self.maxSignatureBytes = maxSignatureBytes
        self.maxIndexBytes = maxIndexBytes
        self.timeoutMs = timeoutMs
        self._transport = transport

        self._cancelEvent = threading.Event()
        self._inflight: asyncio.Task[SyncReport] | None = None
        self._periodic: asyncio.Task[None] | None = None
        self.lastReport: SyncReport | None = None

    # ----- Public API -----

    @property
    def running(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def runOnce(self) -> SyncReport:
        """
        Runs one cycle, or joins the cycle already in flight and returns its report.
        Never raises for sync failures; they are in the report.
        """
        task = self._inflight
        if task is None or task.done():
            # Cleared before the task exists so an early cancel() is never lost
            self._cancelEvent.clear()
            task = asyncio.get_running_loop().create_task(self._runCycle(), name="promptpacks.sync.cycle")
            self._inflight = task
        else:
            logger.debug("Sync already in flight; joining it")
        return await asyncio.shield(task)

    def cancel(self) -> None:
        """Best-effort: the running cycle stops at the next entry step. Safe from any thread."""
        self._cancelEvent.set()

    @property
    def cancelRequested(self) -> bool:
        return self._cancelEvent.is_set()

    def start(self, intervalSeconds: float, initialDelaySeconds: float = 0.0) -> asyncio.Task[None]:
        """
        Launches the periodic loop on the running event loop. Iterations are
        sequential, so a tick never overlaps the previous one. intervalSeconds <= 0
        runs a single cycle.
        """
        if self._periodic is not None and not self._periodic.done():
            return self._periodic
        self._periodic = asyncio.get_running_loop().create_task(
            self._periodicLoop(intervalSeconds, initialDelaySeconds),
            name="promptpacks.sync.periodic",
        )
        return self._periodic

    async def stop(self) -> None:
        """Stops the periodic loop and waits for an in-flight cycle to wind down."""
        self.cancel()
        periodic, self._periodic = self._periodic, None
        if periodic is not None and not periodic.done():
            periodic.cancel()
            try:
                await periodic
            except asyncio.CancelledError:
                pass
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            try:
                await inflight
            except asyncio.CancelledError:
                pass

    # ----- Loop -----

    async def _periodicLoop(self, intervalSeconds: float, initialDelaySeconds: float) -> None:
        if initialDelaySeconds > 0:
            await asyncio.sleep(initialDelaySeconds)
        while True:
            try:
                await self.runOnce()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled sync cycle crashed")
            if intervalSeconds <= 0:
                return
            await asyncio.sleep(intervalSeconds)

    # ----- Cycle -----

    async def _runCycle(self) -> SyncReport:
        report = SyncReport(cycleId=uuid.uuid4().hex[:12], startedAt=datetime.now(timezone.utc))
        setLogContext(cycleId=report.cycleId)
        try:
            async with makeClient(timeoutMs=self.timeoutMs, transport=self._transport) as client:
                index = await self._fetchIndex(client, report)
                if index is not None:
                    await self._processIndex(client, index, report)
        finally:
            report.finishedAt = datetime.now(timezone.utc)
            self.lastReport = report
            clearLogContext()

        if report.changed:
            self.notifier.signal()

        if report.indexError is None:
            logger.info(
                "Sync cycle %s done: %d installed, %d skipped, %d failed%s",
                report.cycleId, report.installed, report.skipped, report.failed,
                " (cancelled)" if report.cancelled else "",
            )
        return report

    async def _fetchIndex(self, client: httpx.AsyncClient, report: SyncReport) -> PackIndex | None:
        try:
            body = await fetchBytes(client, self.indexUrl, maxBytes=self.maxIndexBytes)
            return parseIndex(body, indexUrl=self.indexUrl)
        except (TransientNetworkError, MalformedIndexError, IntegrityError) as err:
            report.indexError = err
            logger.warning("Sync cycle %s aborted, index unavailable: %s", report.cycleId, err)
            return None

    async def _processIndex(self, client: httpx.AsyncClient, index: PackIndex, report: SyncReport) -> None:
        for collection in COLLECTIONS:
            directory = self.directories[collection]
            for position, raw in enumerate(index.entries(collection)):
                setLogContext(collection=collection, entry=position)
                if self._cancelEvent.is_set():
                    report.outcomes.append(EntryOutcome(collection, position, _rawName(raw), EntryStatus.CANCELLED))
                    continue
                try:
                    outcome = await self._processEntry(client, collection, directory, position, raw, index.indexUrl)
                except Exception as err:
                    # Top-level guard: a bug in one entry never takes the cycle down
                    logger.exception("Unexpected failure syncing %s[%d]", collection, position)
                    outcome = EntryOutcome(
                        collection, position, _rawName(raw), EntryStatus.FAILED,
                        error=PackSystemError(f"{type(err).__name__}: {err}"),
                    )
                report.outcomes.append(outcome)

    async def _processEntry(
        self,
        client: httpx.AsyncClient,
        collection: str,
        directory: Path,
        position: int,
        raw: Any,
        indexUrl: str,
    ) -> EntryOutcome:
        try:
            entry = parseEntry(raw, indexUrl=indexUrl)
        except MalformedIndexEntryError as err:
            logger.warning("Skipping malformed %s entry #%d: %s", collection, position, err)
            return EntryOutcome(collection, position, _rawName(raw), EntryStatus.FAILED, error=err)

        def outcome(status: EntryStatus, error: PackSystemError | None = None) -> EntryOutcome:
            return EntryOutcome(collection, position, entry.name, status, version=entry.version, error=error)

        if self._isCurrent(directory, entry):
            logger.debug("'%s' is up to date", entry.name)
            return outcome(EntryStatus.SKIPPED)

        try:
            data = await fetchBytes(client, entry.url, maxBytes=self.maxArtifactBytes)
            signature = await fetchBytes(client, entry.sigUrl, maxBytes=self.maxSignatureBytes)

            if self._cancelEvent.is_set():
                return outcome(EntryStatus.CANCELLED)

            if not self.verifier.verifyDetached(data, signature):
                raise IntegrityError(f"signature verification failed for '{entry.name}'")
            if not sha256Matches(data, entry.sha256):
                raise IntegrityError(f"downloaded '{entry.name}' does not match the manifest hash")

            installPair(directory, entry.name, data, signature)
        except (TransientNetworkError, IntegrityError, InstallError) as err:
            logger.warning("Failed to sync %s '%s': %s", collection, entry.name, err)
            return outcome(EntryStatus.FAILED, err)

        logger.info("Installed %s '%s' %s", collection, entry.name, entry.version or "")
        return outcome(EntryStatus.INSTALLED)

    def _isCurrent(self, directory: Path, entry: PackIndexEntry) -> bool:
        local = artifactPath(directory, entry.name)
        if not local.is_file():
            return False
        try:
            return sha256File(local) == entry.sha256
        except OSError as err:
            logger.warning("Cannot hash '%s' (%s); re-downloading", local, err)
            return False



def _rawName(raw: Any) -> str | None:
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            if str(key).lower() == "name" and isinstance(value, str):
                return value
    return None
