# promptpacks/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter, RedactingFormatter
from .filters import RecurringSuppressFilter

if TYPE_CHECKING:
    from promptpacks.config.settings import LoggingSettings

__all__ = ["NO_PROPAGATE", "configureLogging"]



# Disable propagation from chatty libraries
NO_PROPAGATE = [
    "uvicorn", "uvicorn.access", "uvicorn.error",
    "fastapi", "asyncio",
    "httpcore.connection", "httpcore.http11",
    "httpx",
]



def configureLogging(settings: LoggingSettings, *, logFile: Path | None = None) -> None:
    """
    Initiate the global logging configuration.

    Dev:
      - Console pretty logs (DEBUG)
      - JSON file log (DEBUG)

    Prod:
      - Console INFO
      - JSON file logs INFO with rotation
      - Secrets scrubbed from both
      - Optional recurring suppression (toggle)
    """
    rootLevel = logging.DEBUG if settings.devMode else logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(RedactingFormatter(DevFormatter()))
    handlers: list[logging.Handler] = [consoleHandler]

    if logFile is not None:
        logFile.parent.mkdir(parents=True, exist_ok=True)
        fileHandler = logging.handlers.RotatingFileHandler(
            logFile,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(RedactingFormatter(JsonFormatter()))
        handlers.append(fileHandler)

    if settings.suppressRecurring:
        summaryLevel = logging.getLevelName(settings.suppressSummaryLevel.upper())
        if not isinstance(summaryLevel, int):
            summaryLevel = logging.INFO
        suppressFilter = RecurringSuppressFilter(
            windowSeconds=settings.suppressWindowSeconds,
            maxPerWindow=settings.suppressMaxPerWindow,
            summaryLevel=summaryLevel,
        )
        for handler in handlers:
            handler.addFilter(suppressFilter)

    for handler in handlers:
        root.addHandler(handler)

    # Per-logger tweaks (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
