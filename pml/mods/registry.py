# pml/mods/registry.py
from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from pml.config.settings import CoreModSettings
from pml.core.errors import ModFetchError, ModImportError
from pml.core.logging import clearLogContext, setLogContext
from pml.ui.notifications import Notifier, notifyUser
from .manifest import ModManifest, PersistedModRef
from .polymod import PolyMod
from .source import ModSource, joinUrl
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

__all__ = ["ModRegistry"]



class ModRegistry:
    """
    Ordered list of known mods and its persisted reference list.

    List order is load priority: the core mod sits first and the order
    doubles as the dependency-initialization order.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        source: ModSource,
        notifier: Notifier,
        *,
        hostVersion: str,
        storageKey: str = "polyMods",
        coreMod: CoreModSettings | None = None,
        onPhysicsTouched: Callable[[PolyMod], Any] | None = None,
    ) -> None:
        self.storage = storage
        self.source = source
        self.notifier = notifier
        self.hostVersion = hostVersion
        self.storageKey = storageKey
        self.coreMod = coreMod or CoreModSettings()
        self.onPhysicsTouched = onPhysicsTouched
        self._mods: list[PolyMod] = []
        self._refs: list[PersistedModRef] | None = None

    # ----- Persistence -----

    def _coreRef(self) -> PersistedModRef:
        return PersistedModRef(base=self.coreMod.base, version=self.coreMod.version, loaded=self.coreMod.loaded)

    def _writeRefs(self, refs: list[PersistedModRef]) -> None:
        self.storage.setItem(self.storageKey, json.dumps([ref.model_dump() for ref in refs], ensure_ascii=False))
        self._refs = refs

    def list(self) -> list[PersistedModRef]:
        """
        Read the persisted reference list. An empty store is seeded with
        the core mod, and the seed is persisted.
        """
        raw = self.storage.getItem(self.storageKey)
        if raw:
            try:
                data = json.loads(raw)
                refs = [PersistedModRef.model_validate(item) for item in data]
            except (ValueError, TypeError, ValidationError) as err:
                logger.error("Persisted mod list under '%s' is unreadable (%s); using the core mod only", self.storageKey, err)
                refs = [self._coreRef()]
            self._refs = refs
            return list(refs)

        refs = [self._coreRef()]
        self._writeRefs(refs)
        logger.info("Seeded mod list with core mod '%s'", self.coreMod.id)
        return list(refs)

    def serializeMod(self, mod: PolyMod) -> PersistedModRef:
        return PersistedModRef(
            base=mod.baseUrl,
            version="latest" if mod.savedLatest else str(mod.version),
            loaded=bool(mod.loaded),
        )

    def save(self) -> None:
        self._writeRefs([self.serializeMod(mod) for mod in self._mods])
        logger.debug("Saved %d mod reference(s)", len(self._mods))

    # ----- Lookup -----

    def getMod(self, modId: str | None) -> PolyMod | None:
        for mod in self._mods:
            if mod.id == modId:
                return mod
        return None

    def getAllMods(self) -> list[PolyMod]:
        return list(self._mods)

    def isCore(self, mod: PolyMod) -> bool:
        return mod.id == self.coreMod.id

    # ----- Binding -----

    def _bind(self, polyMod: PolyMod, manifest: ModManifest, base: str, version: str, latest: bool) -> None:
        # The fetched version is the provenance, whatever the manifest says
        manifest.polymod.version = version
        polyMod.applyManifest(manifest)
        polyMod.baseUrl = base
        polyMod.savedLatest = latest
        polyMod.iconSrc = joinUrl(base, version, "icon.png")

    def _alert(self, message: str, **detail: Any) -> None:
        notifyUser(self.notifier, message, log=logger, **detail)

    # ----- Discovery -----

    async def importMods(self) -> list[PolyMod]:
        """
        Fetch and import every persisted reference, one at a time, in list order.

        A failed "latest" lookup alerts and continues with the literal
        version; a failed manifest or module fetch alerts and skips the mod
        for this session without touching the persisted list.
        """
        imported: list[PolyMod] = []
        for ref in self.list():
            setLogContext(phase="discovery", modBase=ref.base)
            try:
                mod = await self._importOne(ref)
            finally:
                clearLogContext()
            if mod is not None:
                imported.append(mod)
        logger.info("Imported %d of %d mod(s)", len(imported), len(self._refs or []))
        return imported

    async def _importOne(self, ref: PersistedModRef) -> PolyMod | None:
        version, latest = ref.version, False
        if ref.isLatest:
            try:
                version = await self.source.fetchLatest(ref.base)
                latest = True
            except ModFetchError as err:
                self._alert(f"Couldn't find latest version for {ref.base}", error=err, base=ref.base)

        modUrl = joinUrl(ref.base, version)
        try:
            manifest = await self.source.fetchManifest(ref.base, version)
        except ModFetchError as err:
            self._alert(f"Couldn't load mod with URL {modUrl}.", error=err, base=ref.base, version=version)
            return None

        info = manifest.polymod
        try:
            polyMod = await self.source.importModule(ref.base, version, manifest)
        except (ModFetchError, ModImportError) as err:
            self._alert(f"Mod {info.name} failed to load.", error=err, modId=info.id, url=err.url)
            return None

        if self.getMod(info.id) is not None:
            self._alert(f"Duplicate mod detected: {info.name}", modId=info.id, base=ref.base)
            return None

        self._bind(polyMod, manifest, ref.base, version, latest)
        polyMod.loaded = bool(ref.loaded)
        if polyMod.loaded and polyMod.touchesPhysics and self.onPhysicsTouched:
            self.onPhysicsTouched(polyMod)
        self._mods.append(polyMod)
        logger.info("Imported mod '%s@%s' from '%s' (loaded=%s)", polyMod.id, version, ref.base, polyMod.loaded)
        return polyMod

    # ----- Mutation -----

    async def add(self, ref: PersistedModRef, autoUpdate: bool = False) -> PolyMod | None:
        """
        Add a mod at the lowest priority. Returns the mod, or None after
        alerting the user about why it was rejected.
        """
        version, latest = ref.version, False
        if ref.isLatest:
            try:
                version = await self.source.fetchLatest(ref.base)
                latest = autoUpdate
            except ModFetchError as err:
                self._alert(f"Couldn't find latest version for {ref.base}", error=err, base=ref.base)

        try:
            manifest = await self.source.fetchManifest(ref.base, version)
        except ModFetchError as err:
            self._alert(f'Couldn\'t find mod manifest for "{ref.base}".', error=err, base=ref.base, version=version)
            return None

        info = manifest.polymod
        if self.getMod(info.id) is not None:
            self._alert("This mod is already present!", modId=info.id)
            return None
        if self.hostVersion not in info.targets:
            self._alert(
                f"Mod target version does not match host version! {info.name} version {version} targets "
                f"host versions {', '.join(info.targets)}, but current host version is {self.hostVersion}.",
                modId=info.id,
            )
            return None

        try:
            polyMod = await self.source.importModule(ref.base, version, manifest)
        except (ModFetchError, ModImportError) as err:
            self._alert("Something went wrong importing this mod!", error=err, modId=info.id)
            return None

        self._bind(polyMod, manifest, ref.base, version, latest)
        polyMod.loaded = False
        self._mods.append(polyMod)
        self.save()
        logger.info("Added mod '%s@%s' from '%s'", polyMod.id, version, ref.base)
        return self.getMod(polyMod.id)

    def remove(self, mod: PolyMod | None) -> None:
        if mod is None or self.isCore(mod):
            return
        if mod in self._mods:
            self._mods.remove(mod)
        self.save()

    def setLoaded(self, mod: PolyMod | None, state: bool) -> None:
        if mod is None or self.isCore(mod):
            return
        mod.loaded = bool(state)
        self.save()

    def reorder(self, mod: PolyMod | None, delta: int) -> None:
        """
        Swap `mod` with the entry `delta` places away. Only negative deltas
        (higher priority) move anything; the first two entries never move
        and nothing moves in front of the core mod.
        """
        if mod is None or self.isCore(mod):
            return
        if mod not in self._mods:
            self._alert("This mod isn't loaded", level="warn", modId=mod.id)
            return
        index = self._mods.index(mod)
        if index == 1 or delta >= 0:
            return
        target = index + delta
        if target < 1:
            return
        self._mods[target], self._mods[index] = self._mods[index], self._mods[target]
        self.save()
