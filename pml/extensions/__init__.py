# pml/extensions/__init__.py
from .allocator import IdAllocator, IdKind
from .table import EntryKind, ExtensionEntry, ExtensionTable
from .volume import expandVolume
from .registrar import ExtensionRegistrar, SettingType

__all__ = [
    "IdAllocator",
    "IdKind",
    "EntryKind",
    "ExtensionEntry",
    "ExtensionTable",
    "expandVolume",
    "ExtensionRegistrar",
    "SettingType",
]
