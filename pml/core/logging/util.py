# pml/core/logging/util.py
from __future__ import annotations

import logging

# Set from LoggingSettings.traceEnabled by configureLogging()
_modTraceEnabled = False



class ModLogger:
    """Tiny sugar for mod loggers with trace()."""
    def __init__(self, logger: logging.Logger, traceEnabled: bool) -> None:
        self._log = logger
        self._traceEnabled = traceEnabled

    def debug(self, msg: str, *args, **kwargs): self._log.debug(msg, *args, **kwargs)
    def info(self, msg: str, *args, **kwargs): self._log.info(msg, *args, **kwargs)
    def log(self, msg: str, *args, **kwargs): self._log.info(msg, *args, **kwargs)
    def warn(self, msg: str, *args, **kwargs): self._log.warning(msg, *args, **kwargs)
    def warning(self, msg: str, *args, **kwargs): self._log.warning(msg, *args, **kwargs)
    def error(self, msg: str, *args, **kwargs): self._log.error(msg, *args, **kwargs)
    def exception(self, msg: str, *args, **kwargs): self._log.exception(msg, *args, **kwargs)
    def trace(self, msg: str, *args, **kwargs):
        if self._traceEnabled:
            self._log.debug("[TRACE] " + msg, *args, **kwargs)

def setModTrace(enabled: bool) -> None:
    global _modTraceEnabled
    _modTraceEnabled = bool(enabled)

def getModLogger(modId: str, *, traceEnabled: bool | None = None) -> ModLogger:
    if traceEnabled is None:
        traceEnabled = _modTraceEnabled
    return ModLogger(logging.getLogger(f"mod.{str(modId).strip()}"), traceEnabled)
