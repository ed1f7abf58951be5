# pml/core/logging/__init__.py
from __future__ import annotations

from .context import setLogContext, clearLogContext, getLogContext
from .setup import configureLogging
from .util import ModLogger, getModLogger, setModTrace

__all__ = [
    "configureLogging",
    "getModLogger",
    "ModLogger",
    "setModTrace",
    "setLogContext",
    "clearLogContext",
    "getLogContext",
]
