# pml/__init__.py
"""Runtime mod loader: textual mixins for a host bundle plus mod lifecycle."""
from pml.loader import PolyModLoader
from pml.mixins.types import MixinType, Surface
from pml.extensions.registrar import SettingType
from pml.mods.polymod import PolyMod

__all__ = ["PolyModLoader", "PolyMod", "MixinType", "Surface", "SettingType"]

__version__ = "0.5.0"
