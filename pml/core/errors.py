# pml/core/errors.py
from __future__ import annotations

__all__ = [
    "PmlError",
    "ConfigError",
    "ModFetchError",
    "ModImportError",
    "DependencyError",
    "ModLifecycleError",
    "AnchorNotFoundError",
    "OverlappingVolumeError",
    "ExtensionsFinalizedError",
]



class PmlError(Exception):
    """Base class for every error raised by the mod loader."""
    pass



class ConfigError(PmlError):
    """Raised when the loader configuration cannot be read or validated."""
    pass



class ModFetchError(PmlError):
    """Raised when a manifest, version lookup or mod module cannot be fetched."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url



class ModImportError(PmlError):
    """Raised when a fetched mod module cannot be executed or exports no polyMod."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url



class DependencyError(PmlError):
    """Describes why a mod was dropped from the init queue."""

    def __init__(self, message: str, *, modId: str, dependencyId: str | None = None, reason: str = "") -> None:
        super().__init__(message)
        self.modId = modId
        self.dependencyId = dependencyId
        self.reason = reason



class ModLifecycleError(PmlError):
    """Raised when a lifecycle hook (init, postInit, simInit) of a mod throws."""

    def __init__(self, message: str, *, modId: str, phase: str) -> None:
        super().__init__(message)
        self.modId = modId
        self.phase = phase



class AnchorNotFoundError(PmlError):
    """Raised in strict patch mode when a mixin anchor cannot be located."""

    def __init__(self, message: str, *, target: str, token: str | None = None) -> None:
        super().__init__(message)
        self.target = target
        self.token = token



class OverlappingVolumeError(PmlError):
    """Raised when two ranges of a block's occupied space produce the same cell."""

    def __init__(self, cell: tuple[int, int, int]) -> None:
        super().__init__(f"Duplicate tile in track part at {cell}")
        self.cell = cell



class ExtensionsFinalizedError(PmlError):
    """Raised when an extension point is registered after finalization."""
    pass
