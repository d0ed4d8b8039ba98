# promptpacks/app/runtime.py
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from cryptography.hazmat.primitives.asymmetric import ec

from promptpacks.config.service import ConfigService
from promptpacks.config.settings import PackSettings
from promptpacks.content.roots import ContentRoots
from promptpacks.core.logging import configureLogging
from promptpacks.localization.service import LocalizationService
from promptpacks.packs.provider import PromptPackProvider
from promptpacks.packs.store import PackLoadReport, PackStore
from promptpacks.packs.templates import TemplateEngine
from promptpacks.security.verifier import IntegrityVerifier, loadTrustedPublicKey
from promptpacks.sync.engine import SyncEngine, SyncReport
from promptpacks.sync.notify import ChangeNotifier

logger = logging.getLogger(__name__)

__all__ = ["PackRuntime"]

LOG_FILENAME = "promptpacks.log"



@dataclass
class PackRuntime:
    """
    Composition root. Owns one instance of every component; nothing in the
    package keeps process-wide state of its own.
    """
    settings: PackSettings
    roots: ContentRoots
    verifier: IntegrityVerifier
    notifier: ChangeNotifier
    store: PackStore
    provider: PromptPackProvider
    localization: LocalizationService
    syncEngine: SyncEngine
    config: ConfigService | None = None
    lastLoad: PackLoadReport | None = field(default=None, init=False)

    # ----- Construction -----

    @classmethod
    def build(
        cls,
        *,
        config: ConfigService | None = None,
        settings: PackSettings | None = None,
        roots: ContentRoots | None = None,
        publicKey: ec.EllipticCurvePublicKey | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "PackRuntime":
        """
        Wires every component from settings. `publicKey` and `transport` are the
        seams for tests (own trust root, httpx.MockTransport).

        Raises ConfigurationError for invalid settings or, with
        trust.strictOverride, an unusable public key override.
        """
        if settings is None:
            config = config or ConfigService.bootstrap()
            settings = config.settings()
        if roots is None:
            roots = ContentRoots.build(machineDir=settings.machineDir, userDir=settings.userDir)

        if publicKey is None:
            keyPath = Path(settings.publicKeyPath) if settings.publicKeyPath else roots.defaultPublicKeyPath
            publicKey = loadTrustedPublicKey(keyPath, strict=settings.strictOverride)

        verifier = IntegrityVerifier(publicKey, settings.maxArtifactBytes)
        notifier = ChangeNotifier()
        store = PackStore(
            roots.packDirectories(),
            verifier,
            maxCategories=settings.maxCategories,
            maxSignatureBytes=settings.maxSignatureBytes,
        )
        provider = PromptPackProvider(store, TemplateEngine(ocrCharCap=settings.ocrCharCap))
        localization = LocalizationService(roots.userLocalizationDir, roots.machineLocalizationDir, verifier)
        syncEngine = SyncEngine(
            indexUrl=settings.indexUrl,
            verifier=verifier,
            directories={"packs": roots.userPacksDir, "localization": roots.userLocalizationDir},
            notifier=notifier,
            maxArtifactBytes=settings.maxArtifactBytes,
            maxSignatureBytes=settings.maxSignatureBytes,
            timeoutMs=settings.timeoutMs,
            transport=transport,
        )
        return cls(
            settings=settings,
            roots=roots,
            verifier=verifier,
            notifier=notifier,
            store=store,
            provider=provider,
            localization=localization,
            syncEngine=syncEngine,
            config=config,
        )

    def configureLogging(self) -> None:
        logFile = self.roots.logsDir / LOG_FILENAME if self.settings.logging.logToFile else None
        configureLogging(self.settings.logging, logFile=logFile)

    # ----- Lifecycle -----

    def startup(self) -> PackLoadReport:
        """Initial load of packs and strings from disk (no network)."""
        try:
            self.roots.ensureUserDirs()
        except OSError as err:
            logger.warning("Cannot create user content directories under '%s': %s", self.roots.userBase, err)
        self.lastLoad = self.store.load()
        self.localization.load(self.settings.language)
        return self.lastLoad

    def reload(self) -> PackLoadReport:
        self.lastLoad = self.store.load()
        self.localization.reload()
        return self.lastLoad

    def pollChanges(self) -> bool:
        """Consumer side of the notifier: reloads if a sync installed something since the last poll."""
        if not self.notifier.consume():
            return False
        logger.info("Pack content changed on disk; reloading")
        self.reload()
        return True

    async def syncNow(self) -> SyncReport:
        """Manual 'sync now': joins a running cycle instead of starting a second one."""
        report = await self.syncEngine.runOnce()
        self.pollChanges()
        return report

    def startSync(self) -> asyncio.Task[None]:
        return self.syncEngine.start(self.settings.intervalSeconds, self.settings.initialDelaySeconds)

    async def stopSync(self) -> None:
        await self.syncEngine.stop()
