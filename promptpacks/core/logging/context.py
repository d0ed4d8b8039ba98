# promptpacks/core/logging/context.py
from __future__ import annotations
import contextvars

# All log context lives here. Enriched per sync cycle and per API request.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("promptpacks.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values (cycleId, collection, entry, etc.)."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    """Clear context after a cycle/request is fully handled."""
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()
