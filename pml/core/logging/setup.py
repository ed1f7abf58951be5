# pml/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from typing import TYPE_CHECKING

from .formatters import DevFormatter, JsonFormatter, RedactingFormatter
from .filters import RecurringSuppressFilter
from .util import setModTrace

if TYPE_CHECKING:
    from pml.config.settings import LoggingSettings

__all__ = ["NO_PROPAGATE", "configureLogging"]



# Libraries whose records we don't want bubbling to the root logger
NO_PROPAGATE = [
    "asyncio",
    "httpcore.connection", "httpcore.http11", "httpcore.http2",
    "hpack",
]



def configureLogging(settings: LoggingSettings) -> None:
    """
    Initiate the global logging configuration.

    Dev:
      - Console pretty logs (DEBUG)
      - JSON file log (DEBUG)

    Prod:
      - Console INFO
      - JSON file logs INFO with rotation
      - Optional recurring suppression (toggle)

    Both modes redact credentials embedded in mod URLs.
    """
    rootLevel = logging.DEBUG if settings.devMode else logging.INFO
    setModTrace(settings.traceEnabled)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    for name in NO_PROPAGATE:
        logging.getLogger(name).propagate = False

    devFmt = RedactingFormatter(DevFormatter())
    jsonFmt = RedactingFormatter(JsonFormatter())

    handlers: list[logging.Handler] = []

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(devFmt)
    handlers.append(consoleHandler)

    if settings.file:
        fileHandler = logging.handlers.RotatingFileHandler(
            settings.file,
            maxBytes=settings.maxBytes,
            backupCount=settings.backupCount,
            encoding="utf-8"
        )
        fileHandler.setLevel(rootLevel)
        fileHandler.setFormatter(jsonFmt)
        handlers.append(fileHandler)

    suppress = settings.suppressRecurring
    if suppress.enabled:
        summaryLevel = getattr(logging, str(suppress.summaryLevel).upper(), logging.INFO)
        suppressFilter = RecurringSuppressFilter(
            windowSeconds=suppress.windowSeconds,
            maxPerWindow=suppress.maxPerWindow,
            summaryLevel=summaryLevel,
        )
        for handler in handlers:
            handler.addFilter(suppressFilter)

    for handler in handlers:
        root.addHandler(handler)

    # Per-logger tweaks (reduce noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
