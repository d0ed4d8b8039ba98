# promptpacks/config/service.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from promptpacks.config.defaults import DEFAULT_SETTINGS
from promptpacks.config.providers import DefaultsProvider, FileProvider, OverrideProvider
from promptpacks.config.schema import validateSettings
from promptpacks.config.settings import PackSettings
from promptpacks.config.store import ConfigStore
from promptpacks.content.roots import SETTINGS_FILENAME, defaultUserBase

logger = logging.getLogger(__name__)

__all__ = ["ConfigService"]



@dataclass
class ConfigService:
    store: ConfigStore
    settingsFile: Path

    @classmethod
    def bootstrap(
        cls,
        *,
        userBase: Path | str | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "ConfigService":
        """
        Builds the layered store:
            DefaultsProvider (shipped) → FileProvider (<userBase>/settings.json5) → OverrideProvider

        `overrides` maps dotted keys to values and lands in the runtime layer.
        Raises ConfigurationError when the effective document is invalid.
        """
        base = Path(userBase).expanduser() if userBase is not None else defaultUserBase()
        settingsFile = base / SETTINGS_FILENAME

        overrideLayer = OverrideProvider()
        store = ConfigStore(
            namespace="promptpacks:settings",
            validator=validateSettings,
            providers=[
                DefaultsProvider(data=DEFAULT_SETTINGS),
                FileProvider(settingsFile, readOnly=False),
                overrideLayer,
            ],
        )
        for key, value in (overrides or {}).items():
            overrideLayer.set(key, value)

        store.validate()
        logger.debug("Settings loaded (file '%s', %d runtime overrides)", settingsFile, len(overrides or {}))
        return cls(store=store, settingsFile=settingsFile)

    @classmethod
    def fromDict(cls, data: Mapping[str, Any]) -> "ConfigService":
        """In-memory service (no user file). Keys are dotted paths."""
        overrideLayer = OverrideProvider()
        store = ConfigStore(
            namespace="promptpacks:settings",
            validator=validateSettings,
            providers=[DefaultsProvider(data=DEFAULT_SETTINGS), overrideLayer],
        )
        for key, value in data.items():
            overrideLayer.set(key, value)
        store.validate()
        return cls(store=store, settingsFile=Path(SETTINGS_FILENAME))

    def settings(self) -> PackSettings:
        return PackSettings.fromStore(self.store)
