# pml/loader.py
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pml.config.settings import LoaderConfig
from pml.extensions.registrar import ExtensionRegistrar, SettingType
from pml.extensions.table import ExtensionEntry
from pml.mixins.applier import PatchApplier, PatchResult
from pml.mixins.store import Accessors, MixinStore
from pml.mixins.types import MixinDescriptor, MixinType, Surface
from pml.mods.lifecycle import InitReport, LifecycleController
from pml.mods.manifest import PersistedModRef
from pml.mods.polymod import PolyMod
from pml.mods.registry import ModRegistry
from pml.mods.source import ModSource
from pml.mods.storage import KeyValueStorage, ModStorage
from pml.ui.notifications import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

__all__ = ["PolyModLoader"]



class PolyModLoader:
    """
    The loader context. Built once at boot and handed to every mod's init().

    Mods use it to register mixins and extensions, look up other mods and
    read settings. Boot code uses it to run discovery, the lifecycle phases
    and finally to patch the host texts.
    """

    def __init__(
        self,
        config: LoaderConfig | None = None,
        *,
        storage: KeyValueStorage | None = None,
        source: ModSource | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config or LoaderConfig()
        self.polyVersion = self.config.host.version
        self.notifier = notifier or LoggingNotifier()

        self.store = MixinStore()
        self.editorExtras = ExtensionRegistrar(self.config.host.profile)
        self.registry = ModRegistry(
            storage if storage is not None else ModStorage(self.config.storage.path),
            source or ModSource(self.polyVersion, self.config.http, cacheDir=self.config.storage.moduleCacheDir()),
            self.notifier,
            hostVersion=self.polyVersion,
            storageKey=self.config.storage.key,
            coreMod=self.config.coreMod,
            onPhysicsTouched=lambda mod: self._invalidateLeaderboard(mod.id),
        )
        self.lifecycle = LifecycleController(self.registry, self.store, self.editorExtras, self.notifier, loader=self)
        self._physicsTouched = False

    # ----- Leaderboard -----

    @property
    def lbInvalid(self) -> bool:
        """Whether uploading runs to the leaderboard is invalid for this session."""
        return self._physicsTouched

    def _invalidateLeaderboard(self, reason: str | None = None) -> None:
        if self._physicsTouched:
            return
        self._physicsTouched = True
        site = self.config.host.profile.sites.leaderboard
        owner, self.store.owner = self.store.owner, None
        try:
            self.store.register(Surface.MAIN, site.scope, site.path, MixinType.OVERRIDE, [], "")
        finally:
            self.store.owner = owner
        logger.info("Physics touched%s; leaderboard submission disabled", f" by {reason}" if reason else "")

    # ----- Mixins -----

    def registerClassMixin(self, scope: str, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        return self.store.registerClassMixin(scope, path, mixinType, accessors, code, code2)

    def registerFuncMixin(self, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        return self.store.registerFuncMixin(path, mixinType, accessors, code, code2)

    def registerClassWideMixin(self, path: str, mixinType: MixinType | int, firstToken: str, code: str, code2: str | None = None) -> MixinDescriptor:
        return self.store.registerClassWideMixin(path, mixinType, firstToken, code, code2)

    def registerSimWorkerClassMixin(self, scope: str, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        self._invalidateLeaderboard(self.store.owner)
        return self.store.registerSimWorkerClassMixin(scope, path, mixinType, accessors, code, code2)

    def registerSimWorkerFuncMixin(self, path: str, mixinType: MixinType | int, accessors: Accessors | None, code: str, code2: str | None = None) -> MixinDescriptor:
        self._invalidateLeaderboard(self.store.owner)
        return self.store.registerSimWorkerFuncMixin(path, mixinType, accessors, code, code2)

    def registerSimWorkerClassWideMixin(self, path: str, mixinType: MixinType | int, firstToken: str, code: str, code2: str | None = None) -> MixinDescriptor:
        self._invalidateLeaderboard(self.store.owner)
        return self.store.registerSimWorkerClassWideMixin(path, mixinType, firstToken, code, code2)

    @property
    def simWorkerClassMixins(self) -> list[MixinDescriptor]:
        return [d for d in self.store.simWorkerMixins if d.scope or d.classWide]

    @property
    def simWorkerFuncMixins(self) -> list[MixinDescriptor]:
        return [d for d in self.store.simWorkerMixins if not d.scope and not d.classWide]

    # ----- Extensions -----

    def registerCategory(self, id: str, defaultId: str) -> int:
        return self.editorExtras.registerCategory(id, defaultId)

    def registerBlock(
        self,
        id: str,
        categoryId: str,
        checksum: str,
        sceneName: str,
        modelName: str,
        overlapSpace: Sequence[Sequence[Sequence[int]]],
        *,
        ignoreOnExport: bool = False,
        specialSettings: Mapping[str, Any] | None = None,
    ) -> int:
        return self.editorExtras.registerBlock(
            id, categoryId, checksum, sceneName, modelName, overlapSpace,
            ignoreOnExport=ignoreOnExport, specialSettings=specialSettings,
        )

    def registerModel(self, url: str) -> None:
        self.editorExtras.registerModel(url)

    def registerSettingCategory(self, name: str) -> None:
        self.editorExtras.registerSettingCategory(name)

    def registerSetting(self, name: str, id: str, type: SettingType | str, default: Any, options: Sequence[Mapping[str, str]] | None = None) -> int:
        return self.editorExtras.registerSetting(name, id, type, default, options)

    def registerBindCategory(self, name: str) -> None:
        self.editorExtras.registerBindCategory(name)

    def registerKeybind(self, name: str, id: str, event: str, defaultBind: str, secondBind: str | None, callback: Callable[..., Any]) -> int:
        return self.editorExtras.registerKeybind(name, id, event, defaultBind, secondBind, callback)

    def registerSoundOverride(self, id: str, url: str) -> None:
        self.editorExtras.registerSoundOverride(id, url)

    def getSetting(self, id: str) -> ExtensionEntry | None:
        return self.editorExtras.getSetting(id)

    def keybindHandlers(self, event: str) -> list[tuple[int, Callable[..., Any]]]:
        return self.editorExtras.keybindHandlers(event)

    # ----- Mods -----

    def getMod(self, id: str) -> PolyMod | None:
        return self.registry.getMod(id)

    def getAllMods(self) -> list[PolyMod]:
        return self.registry.getAllMods()

    async def addMod(self, ref: PersistedModRef | Mapping[str, Any], autoUpdate: bool = False) -> PolyMod | None:
        if not isinstance(ref, PersistedModRef):
            ref = PersistedModRef.model_validate(ref)
        return await self.registry.add(ref, autoUpdate)

    def removeMod(self, mod: PolyMod | None) -> None:
        self.registry.remove(mod)

    def setModLoaded(self, mod: PolyMod | None, state: bool) -> None:
        self.registry.setLoaded(mod, state)

    def reorderMod(self, mod: PolyMod | None, delta: int) -> None:
        self.registry.reorder(mod, delta)

    def serializeMod(self, mod: PolyMod) -> PersistedModRef:
        return self.registry.serializeMod(mod)

    def saveMods(self) -> None:
        self.registry.save()

    # ----- Lifecycle -----

    async def importMods(self) -> list[PolyMod]:
        return await self.registry.importMods()

    async def initMods(self) -> InitReport:
        return await self.lifecycle.initMods()

    async def postInitMods(self) -> None:
        await self.lifecycle.postInitMods()

    async def simInitMods(self) -> None:
        await self.lifecycle.simInitMods()

    # ----- Patching -----

    def patch(self, surface: Surface, text: str, *, strict: bool | None = None) -> PatchResult:
        if strict is None:
            strict = self.config.patch.strict
        return PatchApplier(strict=strict).apply(text, self.store.mixinsFor(surface), surface=surface)

    def patchMain(self, text: str, *, strict: bool | None = None) -> PatchResult:
        return self.patch(Surface.MAIN, text, strict=strict)

    def patchSimulation(self, text: str, *, strict: bool | None = None) -> PatchResult:
        return self.patch(Surface.SIMULATION, text, strict=strict)
