# pml/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping

__all__ = ["getByPath", "setByPath"]



def _splitPath(path: str) -> list[str]:
    """
    Splits a dotted path where '.' is the segment separator and backslash
    escapes the next character.

    Examples:
      - http.timeoutMs     -> ["http", "timeoutMs"]
      - host.symbols.a\\.b -> ["host", "symbols", "a.b"]
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")
    parts: list[str] = []
    curr: list[str] = []
    esc = False
    for ch in path:
        if esc:
            curr.append(ch)
            esc = False
            continue
        if ch == "\\":
            esc = True
            continue
        if ch == ".":
            parts.append("".join(curr))
            curr = []
            continue
        curr.append(ch)
    if esc:
        raise ValueError("Path ends with a dangling escape (trailing backslash)")
    parts.append("".join(curr))
    if any(part == "" for part in parts):
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



def _asMapping(obj: Any) -> Mapping[str, Any] | None:
    if isinstance(obj, Mapping):
        return obj
    # Pydantic BaseModel (v2) - treat as read-only mapping via dump
    if hasattr(obj, "model_dump"):
        try:
            return obj.model_dump(by_alias=True)
        except Exception:
            return None
    return None



def getByPath(obj: Any, path: str, default: Any | None = None) -> Any:
    """
    Returns the value at `path` from `obj` if reachable, else `default`.

    Each hop descends by mapping key first, attribute second.
    An invalid path is treated as "not found".
    """
    try:
        parts = _splitPath(path)
    except ValueError:
        return default

    current: Any = obj
    for part in parts:
        mapping = _asMapping(current)
        if mapping is not None and part in mapping:
            current = mapping[part]
            continue
        if hasattr(current, part):
            current = getattr(current, part)
            continue
        return default
    return current



def setByPath(obj: MutableMapping[str, Any], path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Sets the value at `path` inside nested mutable mappings.

    Missing intermediate mappings are created only when `createIfMissing` is set,
    otherwise KeyError is raised. Writing through a non-mapping raises TypeError.
    """
    parts = _splitPath(path)
    current: Any = obj
    for part in parts[:-1]:
        if not isinstance(current, MutableMapping):
            raise TypeError(f"Cannot descend into '{part}' of non-mapping {type(current).__name__}")
        if part not in current:
            if not createIfMissing:
                raise KeyError(f"path segment '{part}' not found in mapping")
            current[part] = {}
        current = current[part]
    if not isinstance(current, MutableMapping):
        raise TypeError(f"Cannot write '{parts[-1]}' into non-mapping {type(current).__name__}")
    current[parts[-1]] = value
