# pml/extensions/table.py
from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

__all__ = ["EntryKind", "ExtensionEntry", "ExtensionTable"]



class EntryKind(Enum):
    CATEGORY = "category"
    BLOCK = "block"
    MODEL = "model"
    SETTING_CATEGORY = "settingCategory"
    SETTING = "setting"
    BIND_CATEGORY = "bindCategory"
    KEYBIND = "keybind"
    SOUND_OVERRIDE = "soundOverride"



@dataclass(frozen=True)
class ExtensionEntry:
    """
    One declared extension of the host.

    `id` is the enum member name (or URL for models), `numericId` the value
    allocated for it, `label` the user-facing name, `data` the constructor
    data the renderer needs.
    """
    kind: EntryKind
    id: str
    numericId: int | None = None
    label: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    owner: str | None = field(default=None, compare=False)



class ExtensionTable:
    """Ordered, append-only list of extension entries."""

    def __init__(self) -> None:
        self._entries: list[ExtensionEntry] = []

    def add(self, entry: ExtensionEntry) -> ExtensionEntry:
        self._entries.append(entry)
        return entry

    def ofKind(self, *kinds: EntryKind) -> list[ExtensionEntry]:
        """Entries of the given kinds, in registration order (interleaved)."""
        return [entry for entry in self._entries if entry.kind in kinds]

    def find(self, kind: EntryKind, entryId: str) -> ExtensionEntry | None:
        for entry in self._entries:
            if entry.kind is kind and entry.id == entryId:
                return entry
        return None

    def has(self, kind: EntryKind) -> bool:
        return any(entry.kind is kind for entry in self._entries)

    def __iter__(self) -> Iterator[ExtensionEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
