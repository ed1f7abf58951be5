# pml/extensions/registrar.py
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any

from pml.config.settings import HostProfile, MixinSite
from pml.core.errors import ExtensionsFinalizedError
from pml.mixins.store import MixinStore
from pml.mixins.types import MixinType, Surface
from . import render
from .allocator import IdAllocator, IdKind
from .table import EntryKind, ExtensionEntry, ExtensionTable
from .volume import expandVolume

logger = logging.getLogger(__name__)

__all__ = ["SettingType", "ExtensionRegistrar"]

_IDENT_RE = re.compile(r"^[A-Za-z_$][\w$]*$")



class SettingType(str, Enum):
    BOOL = "boolean"
    SLIDER = "slider"
    CUSTOM = "custom"



def _requireIdent(value: str, what: str) -> str:
    if not isinstance(value, str) or not _IDENT_RE.match(value):
        raise ValueError(f"{what} must be a valid identifier, got {value!r}")
    return value



class ExtensionRegistrar:
    """
    Collects host enumeration extensions declared by mods during init.

    Registration allocates the numeric id right away and records a table
    entry. Nothing reaches the host until finalize(), which renders the
    table into mixins once the init queue has drained.
    """

    def __init__(self, profile: HostProfile | None = None, allocator: IdAllocator | None = None) -> None:
        self.profile = profile or HostProfile()
        self.allocator = allocator or IdAllocator(self.profile.seeds)
        self.table = ExtensionTable()
        self.ignoredBlocks: list[int] = []
        self.owner: str | None = None
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _checkOpen(self, what: str) -> None:
        if self._finalized:
            raise ExtensionsFinalizedError(f"Cannot register {what}: extensions were already finalized")

    def _checkUnique(self, kind: EntryKind, entryId: str) -> None:
        if self.table.find(kind, entryId) is not None:
            raise ValueError(f"{kind.value} '{entryId}' is already registered")

    def _add(self, kind: EntryKind, entryId: str, numericId: int | None = None, label: str = "", **data: Any) -> ExtensionEntry:
        entry = self.table.add(ExtensionEntry(kind, entryId, numericId, label, data, owner=self.owner))
        logger.debug(
            "Registered %s '%s'%s%s", kind.value, entryId,
            f" = {numericId}" if numericId is not None else "",
            f" (by {self.owner})" if self.owner else "",
        )
        return entry

    # ----- Editor: categories, blocks, models -----

    def registerCategory(self, id: str, defaultId: str) -> int:
        """Add a block category whose default mesh is block `defaultId`."""
        self._checkOpen("category")
        _requireIdent(id, "Category id")
        _requireIdent(defaultId, "Default block id")
        self._checkUnique(EntryKind.CATEGORY, id)
        numericId = self.allocator.next(IdKind.CATEGORY)
        self._add(EntryKind.CATEGORY, id, numericId, defaultId=defaultId)
        return numericId

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
        """
        Add a track block to both part registries.

        `overlapSpace` is a list of [start, end] corner pairs; overlapping
        ranges raise OverlappingVolumeError before any id is allocated.
        With `ignoreOnExport` the block is left out of editor exports but
        stays registered in the simulation.
        """
        self._checkOpen("block")
        _requireIdent(id, "Block id")
        _requireIdent(categoryId, "Category id")
        self._checkUnique(EntryKind.BLOCK, id)
        cells = expandVolume(overlapSpace)
        special = None
        if specialSettings:
            special = {
                "type": _requireIdent(specialSettings["type"], "Special shape type"),
                "center": list(specialSettings["center"]),
                "size": list(specialSettings["size"]),
            }

        numericId = self.allocator.next(IdKind.BLOCK)
        self._add(
            EntryKind.BLOCK, id, numericId,
            categoryId=categoryId,
            checksum=checksum,
            sceneName=sceneName,
            modelName=modelName,
            overlapSpace=[[list(start), list(end)] for start, end in overlapSpace],
            cellCount=len(cells),
            ignoreOnExport=ignoreOnExport,
            specialSettings=special,
        )
        if ignoreOnExport:
            self.ignoredBlocks.append(numericId)
        return numericId

    def registerModel(self, url: str) -> None:
        self._checkOpen("model")
        self._add(EntryKind.MODEL, url)

    @property
    def models(self) -> list[str]:
        return list(self.profile.defaultModels) + [e.id for e in self.table.ofKind(EntryKind.MODEL)]

    def blockNumberFromId(self, id: str) -> int | None:
        entry = self.table.find(EntryKind.BLOCK, id)
        return entry.numericId if entry else None

    @property
    def getSimBlocks(self) -> list[str]:
        return render.simFragments(self.table, self.profile)

    # ----- Settings -----

    def registerSettingCategory(self, name: str) -> None:
        self._checkOpen("setting category")
        self._add(EntryKind.SETTING_CATEGORY, name, label=name)

    def registerSetting(
        self,
        name: str,
        id: str,
        type: SettingType | str,
        default: Any,
        options: Sequence[Mapping[str, str]] | None = None,
    ) -> int:
        self._checkOpen("setting")
        _requireIdent(id, "Setting id")
        self._checkUnique(EntryKind.SETTING, id)
        settingType = SettingType(type)
        if settingType is SettingType.CUSTOM:
            if not options:
                raise ValueError(f"Custom setting '{id}' needs a list of options")
            options = [{"title": str(opt["title"]), "value": str(opt["value"])} for opt in options]
        numericId = self.allocator.next(IdKind.SETTING)
        self._add(
            EntryKind.SETTING, id, numericId, name,
            type=settingType.value,
            default=default,
            options=list(options) if options else None,
        )
        return numericId

    def getSetting(self, id: str) -> ExtensionEntry | None:
        return self.table.find(EntryKind.SETTING, id)

    # ----- Keybindings -----

    def registerBindCategory(self, name: str) -> None:
        self._checkOpen("bind category")
        self._add(EntryKind.BIND_CATEGORY, name, label=name)

    def registerKeybind(
        self,
        name: str,
        id: str,
        event: str,
        defaultBind: str,
        secondBind: str | None,
        callback: Callable[..., Any],
    ) -> int:
        self._checkOpen("keybind")
        _requireIdent(id, "Keybind id")
        self._checkUnique(EntryKind.KEYBIND, id)
        if not callable(callback):
            raise TypeError(f"Keybind '{id}' callback must be callable")
        numericId = self.allocator.next(IdKind.KEYBIND)
        self._add(
            EntryKind.KEYBIND, id, numericId, name,
            event=event,
            defaultBind=defaultBind,
            secondBind=secondBind,
            callback=callback,
        )
        return numericId

    def keybindHandlers(self, event: str) -> list[tuple[int, Callable[..., Any]]]:
        """(numericId, callback) pairs listening to `event`, in registration order."""
        return [
            (entry.numericId, entry.data["callback"])
            for entry in self.table.ofKind(EntryKind.KEYBIND)
            if entry.data["event"] == event
        ]

    # ----- Sounds -----

    def registerSoundOverride(self, id: str, url: str) -> None:
        self._checkOpen("sound override")
        self._add(EntryKind.SOUND_OVERRIDE, id, url=url)

    # ----- Finalization -----

    def _submit(
        self,
        store: MixinStore,
        site: MixinSite,
        mixinType: MixinType,
        code: str,
        code2: str | None = None,
        *,
        surface: Surface = Surface.MAIN,
        classWide: bool = False,
    ) -> None:
        store.register(surface, site.scope, site.path, mixinType, site.token, code, code2, classWide=classWide)

    def finalize(self, store: MixinStore) -> int:
        """
        Render the table into mixins. Called once, after the init queue drained.

        Returns the number of mixins submitted. Registrations after this
        raise ExtensionsFinalizedError.
        """
        self._checkOpen("finalize")
        profile, sites, table = self.profile, self.profile.sites, self.table
        before = len(store)
        previousOwner, store.owner = store.owner, None

        try:
            if table.has(EntryKind.CATEGORY):
                self._submit(store, sites.categoryEnum, MixinType.INSERT, render.categoryEnum(table, profile))
                self._submit(store, sites.simCategoryEnum, MixinType.INSERT,
                             render.categoryEnum(table, profile, simulation=True), surface=Surface.SIMULATION)
                self._submit(store, sites.categoryMesh, MixinType.INSERT, render.categoryMeshCases(table, profile))

            blocks = table.ofKind(EntryKind.BLOCK)
            if blocks:
                self._submit(store, sites.blockEnum, MixinType.INSERT, render.blockEnum(table, profile))
                self._submit(store, sites.partRegistry, MixinType.INSERT, render.mainPartFragments(table, profile))
                self._submit(store, sites.simBlockEnum, MixinType.INSERT,
                             render.blockEnum(table, profile, simulation=True), surface=Surface.SIMULATION)
                self._submit(store, sites.simPartRegistry, MixinType.INSERT,
                             "".join(render.partPush(e, profile, simulation=True) for e in blocks),
                             surface=Surface.SIMULATION)
                site = sites.partVolume
                self._submit(store, site, MixinType.CLASSREPLACE, render.VOLUME_RASTERIZER, site.endToken, classWide=True)

            if table.has(EntryKind.MODEL):
                self._submit(store, sites.modelList, MixinType.REPLACEBETWEEN, render.modelList(self.models))
            if self.ignoredBlocks:
                self._submit(store, sites.exportFilter, MixinType.INSERT, render.exportFilter(profile))

            # Settings
            self._submit(store, sites.soundLoad, MixinType.INSERT, render.soundClassCapture(profile))
            self._submit(store, sites.settingDefaultsHeader, MixinType.INSERT, render.settingClassCapture(table, profile))
            if table.has(EntryKind.SETTING):
                self._submit(store, sites.settingDefaultsList, MixinType.INSERT, render.settingDefaults(table, profile))
            if table.has(EntryKind.SETTING) or table.has(EntryKind.SETTING_CATEGORY):
                self._submit(store, sites.settingsMenu, MixinType.INSERT, render.settingsMenu(table, profile))

            # Keybindings
            if table.has(EntryKind.KEYBIND):
                self._submit(store, sites.keybindDefaultsHeader, MixinType.INSERT, render.bindConstructor(table, profile))
                self._submit(store, sites.keybindDefaultsList, MixinType.INSERT, render.bindDefaults(table, profile))
            if table.has(EntryKind.KEYBIND) or table.has(EntryKind.BIND_CATEGORY):
                self._submit(store, sites.keybindMenu, MixinType.INSERT, render.bindMenu(table, profile))
            self._submit(store, sites.editorConstruct, MixinType.INSERT, render.editorConstruct(profile))

            for entry in table.ofKind(EntryKind.SOUND_OVERRIDE):
                self._submit(store, sites.soundLoad, MixinType.INSERT, render.soundOverride(entry))
        finally:
            store.owner = previousOwner

        self._finalized = True
        submitted = len(store) - before
        logger.info(
            "Finalized %d extension entries into %d mixins (%d categories, %d blocks, %d settings, %d keybinds)",
            len(table), submitted,
            self.allocator.allocated(IdKind.CATEGORY), self.allocator.allocated(IdKind.BLOCK),
            self.allocator.allocated(IdKind.SETTING), self.allocator.allocated(IdKind.KEYBIND),
        )
        return submitted
