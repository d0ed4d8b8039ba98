# promptpacks/config/defaults.py
from __future__ import annotations

from typing import Any

__all__ = ["DEFAULT_SETTINGS", "DEFAULT_BASE_URL"]

DEFAULT_BASE_URL = "https://packs.gmentor.ai"

DEFAULT_SETTINGS: dict[str, Any] = {
    "sync": {
        "baseUrl": DEFAULT_BASE_URL,
        "intervalHours": 6,
        "initialDelaySeconds": 5,
        "timeoutMs": 20000,
    },
    "limits": {
        "maxArtifactBytes": 512 * 1024,
        "maxSignatureBytes": 8 * 1024,
        "maxCategories": 16,
    },
    "prompt": {
        "ocrCharCap": 200,
    },
    "trust": {
        "publicKeyPath": None,
        "strictOverride": False,
    },
    "paths": {
        "machineDir": None,
        "userDir": None,
    },
    "localization": {
        "language": "en",
    },
    "debug": {
        "devModeEnabled": False,
        "logFile": True,
        "suppressRecurringMessages": {
            "enabled": False,
            "windowSeconds": 60,
            "maxPerWindow": 5,
            "summaryLevel": "INFO",
        },
    },
}
