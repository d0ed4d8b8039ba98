# promptpacks/content/roots.py
from __future__ import annotations
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "ContentRoots",
    "defaultUserBase",
    "defaultMachineDir",
    "ROOT_DIR",
    "PACKS_SUBDIR",
    "LOCALIZATION_SUBDIR",
    "SETTINGS_FILENAME",
]

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------ #
# Static paths (repo layout)
# ------------------------------------------------------------------ #

ROOT_DIR = Path(__file__).resolve().parent.parent.parent # repository root

PACKS_SUBDIR = "packs"
LOCALIZATION_SUBDIR = "Localization"
LOGS_SUBDIR = "logs"
SETTINGS_FILENAME = "settings.json5"
PUBLIC_KEY_FILENAME = "public-key.pem"

# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #

def _resolve(path: Path | str) -> Path:
    return Path(path).expanduser().resolve()

def _isWindows() -> bool:
    return platform.system().lower().startswith("win")



def defaultUserBase() -> Path:
    """
    User-writable base, in order:
      1) env PROMPTPACKS_HOME
      2) Windows: %APPDATA%\\PromptPacks
      3) $XDG_DATA_HOME/promptpacks or ~/.local/share/promptpacks
    """
    envHome = os.getenv("PROMPTPACKS_HOME")
    if envHome:
        return _resolve(envHome)

    if _isWindows():
        roaming = os.getenv("APPDATA")
        if roaming:
            return _resolve(Path(roaming) / "PromptPacks")
        return _resolve(Path.home() / "AppData" / "Roaming" / "PromptPacks")

    xdgDataHome = os.getenv("XDG_DATA_HOME")
    xdgDataBase = Path(xdgDataHome) if xdgDataHome else Path.home() / ".local" / "share"
    return _resolve(xdgDataBase / "promptpacks")



def defaultMachineDir() -> Path:
    """Bundled (read-only) content: env PROMPTPACKS_MACHINE_DIR, else the repo's first-party/packs."""
    envDir = os.getenv("PROMPTPACKS_MACHINE_DIR")
    if envDir:
        return _resolve(envDir)
    return ROOT_DIR / "first-party" / "packs"

# ------------------------------------------------------------------ #
# Root model
# ------------------------------------------------------------------ #

@dataclass(frozen=True)
class ContentRoots:
    """
    Fixed directory layout.

    machineDir is bundled/machine-level content (scanned first, never written),
    userBase holds everything SyncEngine writes plus settings and logs.
    Existence of the directories is *not* guaranteed; writers call ensureUserDirs().
    """
    machineDir: Path
    userBase: Path

    @classmethod
    def build(cls, *, machineDir: str | Path | None = None, userDir: str | Path | None = None) -> "ContentRoots":
        machine = _resolve(machineDir) if machineDir else defaultMachineDir()
        user = _resolve(userDir) if userDir else defaultUserBase()
        return cls(machineDir=machine, userBase=user)

    # ----- Derived paths -----

    @property
    def machinePacksDir(self) -> Path:
        return self.machineDir

    @property
    def machineLocalizationDir(self) -> Path:
        return self.machineDir / LOCALIZATION_SUBDIR

    @property
    def userPacksDir(self) -> Path:
        return self.userBase / PACKS_SUBDIR

    @property
    def userLocalizationDir(self) -> Path:
        return self.userBase / LOCALIZATION_SUBDIR

    @property
    def logsDir(self) -> Path:
        return self.userBase / LOGS_SUBDIR

    @property
    def settingsFile(self) -> Path:
        return self.userBase / SETTINGS_FILENAME

    @property
    def defaultPublicKeyPath(self) -> Path:
        return self.machineDir / PUBLIC_KEY_FILENAME

    def packDirectories(self) -> list[Path]:
        """Scan order for PackStore: machine first, user second (later wins on same gameId)."""
        return [self.machinePacksDir, self.userPacksDir]

    def ensureUserDirs(self) -> None:
        for path in (self.userPacksDir, self.userLocalizationDir):
            path.mkdir(parents=True, exist_ok=True)
