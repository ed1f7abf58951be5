# pml/mods/lifecycle.py
from __future__ import annotations

import inspect
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pml.core.errors import DependencyError, ModLifecycleError
from pml.core.logging import clearLogContext, setLogContext
from pml.extensions import render
from pml.extensions.registrar import ExtensionRegistrar
from pml.mixins.store import MixinStore
from pml.mixins.types import MixinType, Surface
from pml.semver.semver import dependencyVersionMatches
from pml.ui.notifications import Notifier, notifyUser
from .polymod import ModState, PolyMod
from .registry import ModRegistry

if TYPE_CHECKING:
    from pml.loader import PolyModLoader

logger = logging.getLogger(__name__)

__all__ = ["InitReport", "LifecycleController", "callHook"]

_DEFER = object()



@dataclass
class InitReport:
    initialized: list[str] = field(default_factory=list)
    # modId -> reason
    dropped: dict[str, str] = field(default_factory=dict)
    finalizedMixins: int = 0



async def callHook(hook: Callable[..., Any] | None, *args: Any) -> None:
    if inspect.iscoroutinefunction(hook):
        await hook(*args) # async
    elif callable(hook):
        result = hook(*args) # sync
        if inspect.isawaitable(result):
            await result



class LifecycleController:
    """
    Drives the init, postInit and simInit phases of loaded mods.

    initMods() runs a FIFO queue seeded with loaded mods in registry order.
    A mod whose dependencies are queued but not yet initialized is moved to
    the back; a run of deferrals as long as the queue means nothing can
    progress, and every remaining mod is dropped as circular.
    """

    def __init__(
        self,
        registry: ModRegistry,
        store: MixinStore,
        registrar: ExtensionRegistrar,
        notifier: Notifier,
        loader: "PolyModLoader | None" = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.registrar = registrar
        self.notifier = notifier
        self.loader = loader

    def _alert(self, message: str, **detail: Any) -> None:
        notifyUser(self.notifier, message, log=logger, **detail)

    # ----- init -----

    def _preInit(self) -> None:
        # Capture the host's popup instance for mods
        profile = self.registrar.profile
        site = profile.sites.popupCapture
        self.store.register(Surface.MAIN, site.scope, site.path, MixinType.INSERT, site.token, render.popupCapture(profile))

    def _checkDependencies(self, mod: PolyMod, queue: deque[str]) -> DependencyError | object | None:
        """None when every dependency is satisfied, _DEFER to retry later, else the reason to drop."""
        for dep in mod.dependencies:
            depMod = self.registry.getMod(dep.id)
            if depMod is None:
                return DependencyError(
                    f"Mod {mod.name} is missing mod {dep.id} {dep.version} and will not be initialized.",
                    modId=mod.id, dependencyId=dep.id, reason="missing",
                )
            if not depMod.loaded:
                return DependencyError(
                    f"Mod {mod.name} depends on mod {dep.id} {dep.version} but the dependency isn't loaded. "
                    "Mod will not be initialized.",
                    modId=mod.id, dependencyId=dep.id, reason="unloaded",
                )
            if not dependencyVersionMatches(dep.version, str(depMod.version)):
                return DependencyError(
                    f"Mod {mod.name} needs version {dep.version} of {depMod.name} but {depMod.version} is present.",
                    modId=mod.id, dependencyId=dep.id, reason="version",
                )
            if not depMod.initialized:
                if dep.id in queue:
                    return _DEFER
                return DependencyError(
                    f"Mod {mod.name} depends on mod {dep.id} which failed to initialize. Mod will not be initialized.",
                    modId=mod.id, dependencyId=dep.id, reason="dropped",
                )
        return None

    def _drop(self, mod: PolyMod, err: DependencyError, report: InitReport) -> None:
        mod.state = ModState.DROPPED
        report.dropped[mod.id] = err.reason
        self._alert(str(err), level="warn", modId=mod.id, dependencyId=err.dependencyId, reason=err.reason)

    def _dropCircular(self, queue: deque[str], report: InitReport) -> None:
        pending = set(queue)
        while queue:
            mod = self.registry.getMod(queue.popleft())
            waitingOn = [dep.id for dep in mod.dependencies if dep.id in pending]
            self._drop(mod, DependencyError(
                f"Mod {mod.name} has a circular dependency on {', '.join(waitingOn)} and will not be initialized.",
                modId=mod.id, dependencyId=waitingOn[0] if waitingOn else None, reason="circular",
            ), report)

    async def _initOne(self, mod: PolyMod, report: InitReport) -> None:
        setLogContext(modId=mod.id, phase="init")
        self.store.owner = self.registrar.owner = mod.id
        try:
            await callHook(getattr(mod, "init", None), self.loader)
        except Exception as err:
            logger.exception("Error in initializing mod '%s'", mod.id)
            mod.state = ModState.DROPPED
            report.dropped[mod.id] = "init"
            self._alert(
                f"Mod {mod.name} failed to initialize and will be unloaded.",
                error=err, modId=mod.id, phase="init",
            )
            self.registry.setLoaded(mod, False)
        else:
            mod.initialized = True
            mod.state = ModState.INITIALIZED
            report.initialized.append(mod.id)
            logger.info("Initialized mod '%s@%s'", mod.id, mod.version)
        finally:
            self.store.owner = self.registrar.owner = None
            clearLogContext()

    async def initMods(self) -> InitReport:
        """
        Initialize loaded mods in dependency order, then finalize the
        extension table into mixins. Always terminates.
        """
        report = InitReport()
        self._preInit()

        queue: deque[str] = deque(mod.id for mod in self.registry.getAllMods() if mod.loaded)
        stalled = 0
        while queue:
            mod = self.registry.getMod(queue[0])
            if mod is None:
                queue.popleft()
                continue

            verdict = self._checkDependencies(mod, queue)
            if verdict is _DEFER:
                queue.rotate(-1)
                stalled += 1
                logger.debug("Deferring mod '%s' until its dependencies initialize", mod.id)
                if stalled >= len(queue):
                    self._dropCircular(queue, report)
                continue

            queue.popleft()
            stalled = 0
            if isinstance(verdict, DependencyError):
                self._drop(mod, verdict, report)
                continue
            await self._initOne(mod, report)

        if self.registrar.finalized:
            logger.warning("Extensions were already finalized; skipping")
        else:
            report.finalizedMixins = self.registrar.finalize(self.store)
        logger.info("Init pass done: %d initialized, %d dropped", len(report.initialized), len(report.dropped))
        return report

    # ----- postInit / simInit -----

    async def postInitMods(self) -> None:
        """Call postInit on every loaded mod; a failing mod is unloaded and persisted."""
        for mod in self.registry.getAllMods():
            if not mod.loaded:
                continue
            setLogContext(modId=mod.id, phase="postInit")
            try:
                await callHook(getattr(mod, "postInit", None))
            except Exception as err:
                logger.exception("Error in post initializing mod '%s'", mod.id)
                self._alert(
                    f"Mod {mod.name} failed to post initialize and will be unloaded.",
                    error=err, modId=mod.id, phase="postInit",
                )
                self.registry.setLoaded(mod, False)
            finally:
                clearLogContext()

    async def simInitMods(self) -> None:
        """
        Call simInit on every loaded mod. A failure is not recovered: it
        aborts the phase as ModLifecycleError.
        """
        for mod in self.registry.getAllMods():
            if not mod.loaded:
                continue
            setLogContext(modId=mod.id, phase="simInit", surface=Surface.SIMULATION.value)
            try:
                await callHook(getattr(mod, "simInit", None))
            except Exception as err:
                logger.error("Mod '%s' failed in simInit; aborting the phase", mod.id)
                raise ModLifecycleError(f"Mod {mod.name} failed in simInit: {err}", modId=mod.id, phase="simInit") from err
            finally:
                clearLogContext()
