# pml/mods/storage.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Protocol

import json5

logger = logging.getLogger(__name__)

__all__ = ["KeyValueStorage", "MemoryStorage", "ModStorage"]



class KeyValueStorage(Protocol):
    """Durable per-user string storage (getItem/setItem/removeItem)."""
    def getItem(self, key: str) -> str | None: ...
    def setItem(self, key: str, value: str) -> None: ...
    def removeItem(self, key: str) -> None: ...



class MemoryStorage:
    """In-process storage; contents die with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def getItem(self, key: str) -> str | None:
        return self._data.get(key)

    def setItem(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def removeItem(self, key: str) -> None:
        self._data.pop(key, None)



class ModStorage:
    """
    Storage persisted to a JSON5 file: {key: value, ...}.

    The file is read on construction and rewritten on every mutation. A
    temp file is written first, then moved over the target.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._data: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json5.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as err:
            # Keep the broken file around; start empty
            logger.error("Storage file '%s' is not valid JSON5 (%s); starting empty", self.path, err)
            return {}
        if not isinstance(data, dict):
            logger.error("Storage file '%s' does not hold an object; starting empty", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json5.dumps(self._data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
        logger.debug("Wrote storage file '%s' (%d keys)", self.path, len(self._data))

    def getItem(self, key: str) -> str | None:
        return self._data.get(key)

    def setItem(self, key: str, value: str) -> None:
        self._data[key] = str(value)
        self._write()

    def removeItem(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()
