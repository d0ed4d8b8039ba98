# promptpacks/config/schema.py
from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable

import fastjsonschema
from fastjsonschema import JsonSchemaException

from promptpacks.core.errors import ConfigurationError

__all__ = ["SETTINGS_SCHEMA", "getSettingsValidator", "validateSettings"]



_NULLABLE_STRING = {"type": ["string", "null"]}
_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "$id": "promptpacks:settings",
    "type": "object",
    "properties": {
        "sync": {
            "type": "object",
            "properties": {
                "baseUrl": {"type": "string", "pattern": "^https?://"},
                "intervalHours": {"type": "number", "minimum": 0},
                "initialDelaySeconds": {"type": "number", "minimum": 0},
                "timeoutMs": {"type": "integer", "minimum": 100},
            },
            "required": ["baseUrl", "intervalHours", "initialDelaySeconds", "timeoutMs"],
        },
        "limits": {
            "type": "object",
            "properties": {
                "maxArtifactBytes": {"type": "integer", "minimum": 1},
                "maxSignatureBytes": {"type": "integer", "minimum": 1},
                "maxCategories": {"type": "integer", "minimum": 0},
            },
            "required": ["maxArtifactBytes", "maxSignatureBytes", "maxCategories"],
        },
        "prompt": {
            "type": "object",
            "properties": {
                "ocrCharCap": {"type": "integer", "minimum": 0},
            },
            "required": ["ocrCharCap"],
        },
        "trust": {
            "type": "object",
            "properties": {
                "publicKeyPath": _NULLABLE_STRING,
                "strictOverride": {"type": "boolean"},
            },
        },
        "paths": {
            "type": "object",
            "properties": {
                "machineDir": _NULLABLE_STRING,
                "userDir": _NULLABLE_STRING,
            },
        },
        "localization": {
            "type": "object",
            "properties": {
                "language": {"type": "string", "pattern": "^[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,8})*$"},
            },
        },
        "debug": {
            "type": "object",
            "properties": {
                "devModeEnabled": {"type": "boolean"},
                "logFile": {"type": "boolean"},
                "suppressRecurringMessages": {
                    "type": "object",
                    "properties": {
                        "enabled": {"type": "boolean"},
                        "windowSeconds": {"type": "number", "exclusiveMinimum": 0},
                        "maxPerWindow": {"type": "integer", "minimum": 1},
                        "summaryLevel": {"type": "string", "enum": _LOG_LEVELS},
                    },
                },
            },
        },
    },
    "required": ["sync", "limits", "prompt"],
}



@lru_cache(maxsize=1)
def getSettingsValidator() -> Callable[[Any], Any]:
    return fastjsonschema.compile(SETTINGS_SCHEMA)



def validateSettings(data: Any) -> Any:
    """Runs the compiled validator, re-raising schema errors as ConfigurationError."""
    try:
        return getSettingsValidator()(data)
    except JsonSchemaException as err:
        raise ConfigurationError(f"Invalid settings: {err.message}") from err
