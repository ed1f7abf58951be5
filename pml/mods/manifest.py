# pml/mods/manifest.py
from __future__ import annotations
from pydantic import BaseModel, Field, ConfigDict

__all__ = ["PolyModInfo", "Dependency", "ModManifest", "PersistedModRef", "LatestLookup"]



class PolyModInfo(BaseModel):
    """The `polymod` block of a manifest: identity and compatible host versions."""
    # Manifests are authored by third parties; unknown keys are ignored
    model_config = ConfigDict(extra="ignore")

    name: str
    author: str
    version: str
    id: str
    targets: list[str] = Field(default_factory=list)
    main: str = "main.py"



class Dependency(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    version: str



class ModManifest(BaseModel):
    """Represents a validated mod manifest."""
    model_config = ConfigDict(extra="ignore")

    polymod: PolyModInfo
    dependencies: list[Dependency] = Field(default_factory=list)



class PersistedModRef(BaseModel):
    """One entry of the persisted mod list."""
    model_config = ConfigDict(extra="forbid")

    base: str
    version: str
    loaded: bool = False

    @property
    def isLatest(self) -> bool:
        return self.version == "latest"



class LatestLookup(BaseModel):
    """`latest.json`: host version -> mod version considered latest for it."""
    model_config = ConfigDict(extra="allow")

    def resolve(self, hostVersion: str) -> str | None:
        value = (self.model_extra or {}).get(hostVersion)
        return str(value) if value is not None else None
