# pml/core/logging/context.py
from __future__ import annotations
import contextvars

# Per-task log context (modId, phase, surface...). Lifecycle code enriches it.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("pml.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values (modId, phase, surface, etc.)."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    """Clear context after a lifecycle step is fully handled."""
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()
