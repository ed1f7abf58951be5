# pml/ui/notifications.py
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal, Protocol

from pml.core.jsonutils import serializeError

logger = logging.getLogger(__name__)

__all__ = ["AlertLevel", "Notifier", "LoggingNotifier", "CallbackNotifier", "notifyUser"]

AlertLevel = Literal["info", "warn", "error"]

_LOG_LEVELS = {"info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}

def _normalizeLevel(level: str) -> AlertLevel:
    lvl = (level or "").strip().lower()
    if lvl == "warning":
        lvl = "warn"
    return lvl if lvl in ("info", "warn", "error") else "error" # Unknown levels are treated as failures



class Notifier(Protocol):
    """Blocking alert channel shown to the user."""
    def alert(self, message: str, *, level: AlertLevel = "error") -> None: ...



class LoggingNotifier:
    """Headless alert channel: alerts become log records on 'pml.alert'."""

    def __init__(self) -> None:
        self._log = logging.getLogger("pml.alert")

    def alert(self, message: str, *, level: AlertLevel = "error") -> None:
        self._log.log(_LOG_LEVELS[_normalizeLevel(level)], "ALERT: %s", message)



class CallbackNotifier:
    """Forwards alerts to a callable(message, level), e.g. a UI dialog."""

    def __init__(self, callback: Callable[[str, AlertLevel], Any]) -> None:
        self._callback = callback

    def alert(self, message: str, *, level: AlertLevel = "error") -> None:
        self._callback(message, _normalizeLevel(level))



def notifyUser(
    notifier: Notifier,
    message: str,
    *,
    level: str = "error",
    error: BaseException | None = None,
    log: logging.Logger | None = None,
    **detail: Any,
) -> None:
    """
    Report a user-visible failure on both channels: one alert through
    `notifier` and one structured log record carrying `detail` and the
    serialized error.
    """
    lvl = _normalizeLevel(level)
    notifier.alert(message, level=lvl)

    payload: dict[str, Any] = {key: value for key, value in detail.items() if value is not None}
    if error is not None:
        payload["error"] = serializeError(error)
    (log or logger).log(_LOG_LEVELS[lvl], "%s", message, extra={"pmlDetail": payload})
