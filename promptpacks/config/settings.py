# promptpacks/config/settings.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from .store import ConfigStore

__all__ = ["LoggingSettings", "PackSettings"]



@dataclass(frozen=True)
class LoggingSettings:
    devMode: bool = False
    logToFile: bool = True
    suppressRecurring: bool = False
    suppressWindowSeconds: float = 60.0
    suppressMaxPerWindow: int = 5
    suppressSummaryLevel: str = "INFO"



@dataclass(frozen=True)
class PackSettings:
    """Typed, immutable view of the effective settings document."""
    baseUrl: str
    intervalHours: float
    initialDelaySeconds: float
    timeoutMs: int
    maxArtifactBytes: int
    maxSignatureBytes: int
    maxCategories: int
    ocrCharCap: int
    publicKeyPath: str | None
    strictOverride: bool
    machineDir: str | None
    userDir: str | None
    language: str
    logging: LoggingSettings

    @property
    def indexUrl(self) -> str:
        return self.baseUrl.rstrip("/") + "/index.json"

    @property
    def timeoutSeconds(self) -> float:
        return self.timeoutMs / 1000.0

    @property
    def intervalSeconds(self) -> float:
        return self.intervalHours * 3600.0

    @classmethod
    def fromStore(cls, store: ConfigStore) -> "PackSettings":
        return cls.fromDict(store.validate())

    @classmethod
    def fromDict(cls, data: dict[str, Any]) -> "PackSettings":
        def section(name: str) -> dict[str, Any]:
            value = data.get(name)
            return value if isinstance(value, dict) else {}

        sync = section("sync")
        limits = section("limits")
        trust = section("trust")
        paths = section("paths")
        debug = section("debug")
        suppress = debug.get("suppressRecurringMessages") or {}

        return cls(
            baseUrl=str(sync["baseUrl"]),
            intervalHours=float(sync["intervalHours"]),
            initialDelaySeconds=float(sync["initialDelaySeconds"]),
            timeoutMs=int(sync["timeoutMs"]),
            maxArtifactBytes=int(limits["maxArtifactBytes"]),
            maxSignatureBytes=int(limits["maxSignatureBytes"]),
            maxCategories=int(limits["maxCategories"]),
            ocrCharCap=int(section("prompt")["ocrCharCap"]),
            publicKeyPath=trust.get("publicKeyPath"),
            strictOverride=bool(trust.get("strictOverride", False)),
            machineDir=paths.get("machineDir"),
            userDir=paths.get("userDir"),
            language=str(section("localization").get("language") or "en"),
            logging=LoggingSettings(
                devMode=bool(debug.get("devModeEnabled", False)),
                logToFile=bool(debug.get("logFile", True)),
                suppressRecurring=bool(suppress.get("enabled", False)),
                suppressWindowSeconds=float(suppress.get("windowSeconds", 60)),
                suppressMaxPerWindow=int(suppress.get("maxPerWindow", 5)),
                suppressSummaryLevel=str(suppress.get("summaryLevel", "INFO")),
            ),
        )
