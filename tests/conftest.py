import sys
from typing import Any, Callable

import pytest

from pml.config.settings import CoreModSettings, LoaderConfig, LoggingSettings
from pml.core.errors import ModFetchError, ModImportError
from pml.loader import PolyModLoader
from pml.mods.manifest import ModManifest
from pml.mods.polymod import PolyMod
from pml.mods.registry import ModRegistry
from pml.mods.source import ModSource, joinUrl
from pml.mods.storage import MemoryStorage

HOST_VERSION = "0.5.0"
CORE_BASE = "https://mods.example.com/pmlcore"

# Trimmed stand-ins for the host bundles. Every anchor the loader patches
# by default appears once.
HOST_MAIN = """var KA;(function(e){e[e.Road=0]="Road";})(KA||(KA={}));
var eA;(function(e){e[e.Start=0]="Start";})(eA||(eA={}));
const ab=[];const sb=new Map;
function polyInitFunction() {
    let S = new Popup(), D = 0;
    return S;
}
class rb {
    constructor(e, t, n, i, r, o, a) {
        const l = [];for (const [s, c] of a) {for (let n = s[0]; n <= c[0]; n++) for (let i = s[1]; i <= c[1]; i++) for (let r = s[2]; r <= c[2]; r++) l.push([n, i, r])}
        this.id = n;
        this.tiles = l;
    }
}
class ul {
    load(e, t) {
        dl(this, tl, "f").addResource(), this.fetch(e, t);
    }
}
class ZB {
    defaultSettings() {
        return new Map([[$o.CheckpointVolume, "1"]]);
    }
    defaultKeyBindings() {
        return new Map([[Ix.SpectatorSpeedModifier, ["ShiftLeft", "ShiftRight"]]]);
    }
}
function mI() {
    xI(this, eI, "m", wI).call(this, xI(this, nI, "f").get("Checkpoint volume"), $o.CheckpointVolume),
    xI(this, eI, "m", AI).call(this, xI(this, nI, "f").get("Toggle spectator"), Ix.ToggleSpectatorCamera);
}
class PM {
    update() {
        _M(this, YS, CM(this, BE, "m", kM).call(this), "f"), this.render();
    }
}
class GN {
    init() {
        return this.load(["models/blocks.glb", "models/pillar.glb", "models/planes.glb", "models/road.glb", "models/road_wide.glb", "models/signs.glb", "models/wall_track.glb"]);
    }
    getCategoryMesh(e) {
        let n;
        switch (e) {
            case KA.Road: n = this.getPart(eA.Start); break;
        }
        return n;
    }
}
function xb() {
    const out = [];
    for (const [r,a] of Eb(this, Ab, "f")) {out.push(a);}
    return out;
}
class HB {
    submitLeaderboard(e, t) {
        return fetch("/leaderboard", {method: "POST", body: e});
    }
}
"""

HOST_SIM = """var F_;(function(e){e[e.Road=0]="Road";})(F_||(F_={}));
var mu;(function(e){e[e.Start=0]="Start";})(mu||(mu={}));
const j_=[];const K_=new Map;
function stepPhysics(e) {
    return e + 1;
}
"""



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



class RecordingNotifier:
    def __init__(self) -> None:
        self.alerts: list[tuple[str, str]] = []

    def alert(self, message: str, *, level: str = "error") -> None:
        self.alerts.append((message, level))

    @property
    def messages(self) -> list[str]:
        return [message for message, _level in self.alerts]



class RecordingMod(PolyMod):
    """Mod that records its hook calls and can be told to fail."""

    def __init__(self, calls: list[tuple[str, str]] | None = None, *, failIn: str | None = None,
                 onInit: Callable[[Any], Any] | None = None, touchesPhysics: bool = False) -> None:
        super().__init__()
        self.calls = calls if calls is not None else []
        self.failIn = failIn
        self.onInit = onInit
        self.touchesPhysics = touchesPhysics

    def _record(self, phase: str) -> None:
        self.calls.append((phase, self.id))
        if self.failIn == phase:
            raise RuntimeError(f"{self.id} broke in {phase}")

    def init(self, loader):
        self._record("init")
        if self.onInit:
            self.onInit(loader)

    def postInit(self):
        self._record("postInit")

    def simInit(self):
        self._record("simInit")



def manifestFor(
    modId: str,
    version: str = "1.0.0",
    *,
    deps: list[tuple[str, str]] | tuple = (),
    targets: tuple[str, ...] = (HOST_VERSION,),
    name: str | None = None,
) -> dict[str, Any]:
    return {
        "polymod": {
            "name": name or modId.upper(),
            "author": "tester",
            "version": version,
            "id": modId,
            "targets": list(targets),
            "main": "main.py",
        },
        "dependencies": [{"id": depId, "version": depVersion} for depId, depVersion in deps],
    }



class FakeModSource(ModSource):
    """In-memory mod host: base -> latest pointer, manifests and polyMod factories."""

    def __init__(self, hostVersion: str = HOST_VERSION) -> None:
        super().__init__(hostVersion)
        self.latest: dict[str, dict[str, str]] = {}
        self.manifests: dict[str, dict[str, Any]] = {}
        self.modules: dict[str, Callable[[], PolyMod] | None] = {}
        self.requests: list[str] = []

    def publish(self, base: str, manifest: dict[str, Any], factory: Callable[[], PolyMod] | None = RecordingMod,
                *, latest: bool = True) -> None:
        version = manifest["polymod"]["version"]
        key = joinUrl(base, version)
        self.manifests[key] = manifest
        self.modules[key] = factory
        if latest:
            self.latest.setdefault(base, {})[self.hostVersion] = version

    async def fetchLatest(self, base: str) -> str:
        self.requests.append(joinUrl(base, "latest.json"))
        lookup = self.latest.get(base)
        if not lookup or self.hostVersion not in lookup:
            raise ModFetchError(f"no latest.json under {base}", url=joinUrl(base, "latest.json"))
        return lookup[self.hostVersion]

    async def fetchManifest(self, base: str, version: str) -> ModManifest:
        url = joinUrl(base, version, "manifest.json")
        self.requests.append(url)
        data = self.manifests.get(joinUrl(base, version))
        if data is None:
            raise ModFetchError(f"404 {url}", url=url)
        return ModManifest.model_validate(data)

    async def importModule(self, base: str, version: str, manifest: ModManifest) -> Any:
        url = joinUrl(base, version, manifest.polymod.main)
        self.requests.append(url)
        factory = self.modules.get(joinUrl(base, version))
        if factory is None:
            raise ModImportError(f"{url} exports no polyMod", url=url)
        return factory()



def _quietConfig(**overrides: Any) -> LoaderConfig:
    cfg = LoaderConfig(logging=LoggingSettings(file=None))
    return cfg.model_copy(update=overrides) if overrides else cfg



@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def source() -> FakeModSource:
    return FakeModSource()


@pytest.fixture
def coreBase() -> str:
    return CORE_BASE


@pytest.fixture
def registry(storage, source, notifier) -> ModRegistry:
    return ModRegistry(storage, source, notifier, hostVersion=HOST_VERSION, coreMod=CoreModSettings(base=CORE_BASE))


@pytest.fixture
def makeManifest():
    return manifestFor


@pytest.fixture
def modClass() -> type[RecordingMod]:
    return RecordingMod


@pytest.fixture
def sourceClass() -> type[FakeModSource]:
    return FakeModSource


@pytest.fixture
def loaderConfig() -> LoaderConfig:
    return _quietConfig(coreMod=CoreModSettings(base=CORE_BASE))


@pytest.fixture
def makeLoader(loaderConfig, storage, source, notifier):
    def _make(config: LoaderConfig | None = None) -> PolyModLoader:
        return PolyModLoader(config or loaderConfig, storage=storage, source=source, notifier=notifier)
    return _make


@pytest.fixture
def hostMain() -> str:
    return HOST_MAIN


@pytest.fixture
def hostSim() -> str:
    return HOST_SIM
