# pml/mods/polymod.py
from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

from pml.core.logging import getModLogger
from .manifest import Dependency, ModManifest

if TYPE_CHECKING:
    from pml.loader import PolyModLoader

logger = logging.getLogger(__name__)

__all__ = ["ModState", "PolyMod"]



class ModState(Enum):
    FETCHED = "fetched"
    INITIALIZED = "initialized"
    DROPPED = "dropped"



class PolyMod:
    """
    Base class for mods. A mod module exports an instance (or subclass) as
    `polyMod`; the loader binds manifest identity onto it and calls the
    hooks. Hooks may be plain methods or coroutines.
    """

    def __init__(self) -> None:
        self.id: str | None = None
        self.name: str | None = None
        self.author: str | None = None
        self.version: str | None = None
        self.targets: list[str] = []
        self.dependencies: list[Dependency] = []
        self.manifest: ModManifest | None = None

        self.baseUrl: str = ""
        self.iconSrc: str = ""
        self.savedLatest: bool = False
        self.loaded: bool = False
        self.initialized: bool = False
        self.state: ModState = ModState.FETCHED

        self.touchesPhysics: bool = False
        self.assetFolder: str = "assets"
        self._bound = False

    def applyManifest(self, manifest: ModManifest) -> None:
        if self._bound:
            logger.warning("Mod '%s' already has a manifest applied; ignoring", self.id)
            return
        info = manifest.polymod
        self.manifest = manifest
        self.id = info.id
        self.name = info.name
        self.author = info.author
        self.version = info.version
        self.targets = list(info.targets)
        self.dependencies = list(manifest.dependencies)
        self._bound = True

    @property
    def log(self):
        return getModLogger(self.id or "unbound")

    # ----- Hooks -----

    def init(self, loader: "PolyModLoader") -> Any:
        pass

    def postInit(self) -> Any:
        pass

    def simInit(self) -> Any:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}@{self.version} loaded={self.loaded} state={self.state.value}>"
