# pml/config/settings.py
from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pml.core.dictpath import getByPath

__all__ = [
    "MixinSite",
    "IdSeeds",
    "EnumSymbols",
    "PartSymbols",
    "MenuSymbols",
    "HostSites",
    "HostProfile",
    "HostSettings",
    "StorageSettings",
    "CoreModSettings",
    "HttpSettings",
    "PatchSettings",
    "SuppressRecurringSettings",
    "LoggingSettings",
    "LoaderConfig",
    "MODULE_REGION",
]

# Path that addresses the whole host text instead of one function
MODULE_REGION = "<module>"

_DEFAULT_MODEL_LIST = (
    '["models/blocks.glb", "models/pillar.glb", "models/planes.glb", "models/road.glb", '
    '"models/road_wide.glb", "models/signs.glb", "models/wall_track.glb"]'
)



class MixinSite(BaseModel):
    """A named anchor inside the host bundle."""
    model_config = ConfigDict(extra="forbid")

    scope: str | None = None
    path: str
    token: str = ""
    endToken: str | None = None



class IdSeeds(BaseModel):
    """Highest built-in value of each host enumeration."""
    model_config = ConfigDict(extra="forbid")

    category: int = 8
    block: int = 155
    setting: int = 18
    keybind: int = 30



class EnumSymbols(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: str = "KA"
    block: str = "eA"
    setting: str = "$o"
    keybind: str = "Ix"
    specialShape: str = "XA"
    simCategory: str = "F_"
    simBlock: str = "mu"
    simSpecialShape: str = "Jh"



class PartSymbols(BaseModel):
    """Part (geometry block) registries and constructors on both surfaces."""
    model_config = ConfigDict(extra="forbid")

    registry: str = "ab"
    ctor: str = "rb"
    shared: str = "nb"
    lookup: str = "sb"
    simRegistry: str = "j_"
    simCtor: str = "X_"
    simShared: str = "G_"



class MenuSymbols(BaseModel):
    """Private-access helpers used by the settings/keybinding menu builder."""
    model_config = ConfigDict(extra="forbid")

    privateGet: str = "xI"
    menuBrand: str = "eI"
    localeField: str = "nI"
    addCategory: str = "gI"
    addSelect: str = "wI"
    addSlider: str = "yI"
    addKeybind: str = "AI"
    addBindCategory: str = "vI"



class HostSites(BaseModel):
    model_config = ConfigDict(extra="forbid")

    popupCapture: MixinSite = MixinSite(path="polyInitFunction", token=", D = 0;")
    leaderboard: MixinSite = MixinSite(scope="HB.prototype", path="submitLeaderboard")
    soundLoad: MixinSite = MixinSite(scope="ul.prototype", path="load", token='dl(this, tl, "f").addResource(),')
    settingDefaultsHeader: MixinSite = MixinSite(scope="ZB.prototype", path="defaultSettings", token="defaultSettings() {")
    settingDefaultsList: MixinSite = MixinSite(scope="ZB.prototype", path="defaultSettings", token='[$o.CheckpointVolume, "1"]')
    settingsMenu: MixinSite = MixinSite(path="mI", token="), $o.CheckpointVolume),")
    keybindDefaultsHeader: MixinSite = MixinSite(scope="ZB.prototype", path="defaultKeyBindings", token="defaultKeyBindings() {")
    keybindDefaultsList: MixinSite = MixinSite(
        scope="ZB.prototype",
        path="defaultKeyBindings",
        token='[Ix.SpectatorSpeedModifier, ["ShiftLeft", "ShiftRight"]]',
    )
    keybindMenu: MixinSite = MixinSite(path="mI", token="), Ix.ToggleSpectatorCamera)")
    editorConstruct: MixinSite = MixinSite(
        scope="PM.prototype",
        path="update",
        token='_M(this, YS, CM(this, BE, "m", kM).call(this), "f"),',
    )
    modelList: MixinSite = MixinSite(scope="GN.prototype", path="init", token=_DEFAULT_MODEL_LIST)
    exportFilter: MixinSite = MixinSite(path="xb", token='for (const [r,a] of Eb(this, Ab, "f")) {')
    categoryMesh: MixinSite = MixinSite(scope="GN.prototype", path="getCategoryMesh", token="break;")
    partVolume: MixinSite = MixinSite(path="rb", token="const l = [];", endToken="l.push([n, i, r])")
    categoryEnum: MixinSite = MixinSite(path=MODULE_REGION, token="(KA||(KA={}));")
    blockEnum: MixinSite = MixinSite(path=MODULE_REGION, token="(eA||(eA={}));")
    partRegistry: MixinSite = MixinSite(path=MODULE_REGION, token="const sb=new Map;")
    simCategoryEnum: MixinSite = MixinSite(path=MODULE_REGION, token="(F_||(F_={}));")
    simBlockEnum: MixinSite = MixinSite(path=MODULE_REGION, token="(mu||(mu={}));")
    simPartRegistry: MixinSite = MixinSite(path=MODULE_REGION, token="const K_=new Map;")



class HostProfile(BaseModel):
    """
    Symbol table of one host bundle build.

    The host is minified, so every name here changes between host versions.
    Defaults describe host 0.5.0.
    """
    model_config = ConfigDict(extra="forbid")

    loaderGlobal: str = "ActivePolyModLoader"
    seeds: IdSeeds = Field(default_factory=IdSeeds)
    enums: EnumSymbols = Field(default_factory=EnumSymbols)
    parts: PartSymbols = Field(default_factory=PartSymbols)
    menu: MenuSymbols = Field(default_factory=MenuSymbols)
    sites: HostSites = Field(default_factory=HostSites)
    defaultModels: list[str] = Field(default_factory=lambda: [
        "models/blocks.glb",
        "models/pillar.glb",
        "models/planes.glb",
        "models/road.glb",
        "models/road_wide.glb",
        "models/signs.glb",
        "models/wall_track.glb",
    ])



class HostSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = "0.5.0"
    profile: HostProfile = Field(default_factory=HostProfile)



class StorageSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "~/.polymodloader/storage.json5"
    key: str = "polyMods"
    # Fetched remote mod modules; "modules" beside the storage file when unset
    moduleCache: str | None = None

    def moduleCacheDir(self) -> Path:
        if self.moduleCache:
            return Path(self.moduleCache).expanduser()
        return Path(self.path).expanduser().parent / "modules"



class CoreModSettings(BaseModel):
    """The built-in core mod seeded into an empty mod list."""
    model_config = ConfigDict(extra="forbid")

    id: str = "pmlcore"
    base: str = "https://pml.crjakob.com/polytrackmods/PolyModLoader/0.5.0/pmlcore"
    version: str = "latest"
    loaded: bool = True



class HttpSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeoutMs: int = 30_000
    retries: int = 2
    backoffBaseMs: int = 250
    backoffMaxMs: int = 1_000



class PatchSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Raise AnchorNotFoundError instead of recording a miss
    strict: bool = False



class SuppressRecurringSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    windowSeconds: int = 60
    maxPerWindow: int = 5
    summaryLevel: str = "INFO"



class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    devMode: bool = True
    file: str | None = "pml.log"
    maxBytes: int = 10 * 1024 * 1024
    backupCount: int = 5
    traceEnabled: bool = False
    suppressRecurring: SuppressRecurringSettings = Field(default_factory=SuppressRecurringSettings)



class LoaderConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: HostSettings = Field(default_factory=HostSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    coreMod: CoreModSettings = Field(default_factory=CoreModSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    patch: PatchSettings = Field(default_factory=PatchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Read a dotted path from the configuration.

        Example:
          cfg.get("http.timeoutMs")        # returns 30000
          cfg.get("non.existing.path", 3)  # returns 3
        """
        val = getByPath(self, path)
        return default if val is None else val

    def getBool(self, path: str, default: bool = False) -> bool:
        val = self.get(path, None)
        if isinstance(val, bool):
            return val
        if val is None:
            return default
        return bool(val)
