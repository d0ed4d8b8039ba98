# promptpacks/core/logging/formatters.py
from __future__ import annotations

import logging

from promptpacks.core.jsonutils import safeJsonDumps
from promptpacks.core.redaction import redactText
from .context import getLogContext

__all__ = ["RedactingFormatter", "JsonFormatter", "DevFormatter"]



class RedactingFormatter(logging.Formatter):
    """
    Wraps another formatter and redacts the final formatted string.
    """
    def __init__(self, inner: logging.Formatter):
        super().__init__()
        self._inner = inner

    def format(self, record: logging.LogRecord) -> str:
        return redactText(self._inner.format(record))



class JsonFormatter(logging.Formatter):
    """One-line JSON records for the rotating log file."""
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": int(record.created * 1000),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
            "ctx": getLogContext() or {},
            "thread": {"id": record.thread, "name": record.threadName},
        }

        if record.exc_info:
            excType, excValue, _tb = record.exc_info
            base["exc"] = {
                "type": getattr(excType, "__name__", "Error"),
                "message": str(excValue),
                "stack": self.formatException(record.exc_info),
            }

        return safeJsonDumps(base)



class DevFormatter(logging.Formatter):
    """Human-friendly console formatter."""
    def format(self, record: logging.LogRecord) -> str:
        ctx = getLogContext()
        ctxStr = ""
        if ctx:
            md = [str(ctx[key]) for key in ("cycleId", "collection", "entry", "requestId") if ctx.get(key) is not None]
            if md:
                ctxStr = " [" + "/".join(md) + "]"
        msg = record.getMessage()
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        if record.stack_info:
            msg += "\n" + str(record.stack_info)
        return f"{record.levelname}: [{record.name}] {msg}{ctxStr}"
