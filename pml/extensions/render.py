# pml/extensions/render.py
"""
Host fragments rendered from an ExtensionTable.

Every symbol name comes from the HostProfile; entry ids are validated
identifiers and every string literal goes through JSON quoting, so the
output stays valid script text.
"""
from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any

from pml.config.settings import HostProfile
from .table import EntryKind, ExtensionEntry, ExtensionTable

__all__ = [
    "VOLUME_RASTERIZER",
    "quote",
    "enumMember",
    "categoryEnum",
    "blockEnum",
    "partPush",
    "mainPartFragments",
    "simFragments",
    "modelList",
    "exportFilter",
    "categoryMeshCases",
    "settingClassCapture",
    "settingDefaults",
    "settingsMenu",
    "bindConstructor",
    "bindDefaults",
    "bindMenu",
    "soundClassCapture",
    "soundOverride",
    "editorConstruct",
    "popupCapture",
]

# Replaces the part constructor's occupied-space expansion with one that
# rejects overlapping ranges.
VOLUME_RASTERIZER = """const l = [];
for (const [start, end] of a) {
    const [x0, y0, z0] = start;
    const [x1, y1, z1] = end;

    const minX = Math.min(x0, x1), maxX = Math.max(x0, x1);
    const minY = Math.min(y0, y1), maxY = Math.max(y0, y1);
    const minZ = Math.min(z0, z1), maxZ = Math.max(z0, z1);

    for (let x = minX; x <= maxX; x++)
        for (let y = minY; y <= maxY; y++)
            for (let z = minZ; z <= maxZ; z++) {
                if (l.find(([a, b, c]) => a === x && b === y && c === z)) {
                    throw new Error("Duplicate tile in track part");
                }
                l.push([x, y, z]);
            }"""



def quote(value: str) -> str:
    return json.dumps(str(value), ensure_ascii=False)


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def enumMember(symbol: str, name: str, value: int) -> str:
    """EnumName[EnumName.NAME = n] = "NAME";"""
    return f"{symbol}[{symbol}.{name} = {value}] = {quote(name)};"


def _members(symbol: str, entries: Iterable[ExtensionEntry]) -> str:
    return "".join(enumMember(symbol, e.id, e.numericId) for e in entries)


def categoryEnum(table: ExtensionTable, profile: HostProfile, *, simulation: bool = False) -> str:
    symbol = profile.enums.simCategory if simulation else profile.enums.category
    return _members(symbol, table.ofKind(EntryKind.CATEGORY))


def blockEnum(table: ExtensionTable, profile: HostProfile, *, simulation: bool = False) -> str:
    symbol = profile.enums.simBlock if simulation else profile.enums.block
    return _members(symbol, table.ofKind(EntryKind.BLOCK))


def partPush(entry: ExtensionEntry, profile: HostProfile, *, simulation: bool = False) -> str:
    enums, parts = profile.enums, profile.parts
    if simulation:
        registry, ctor, shared = parts.simRegistry, parts.simCtor, parts.simShared
        category, block, shape = enums.simCategory, enums.simBlock, enums.simSpecialShape
    else:
        registry, ctor, shared = parts.registry, parts.ctor, parts.shared
        category, block, shape = enums.category, enums.block, enums.specialShape

    data = entry.data
    special = ""
    if data.get("specialSettings"):
        spec = data["specialSettings"]
        special = f", {{ type: {shape}.{spec['type']}, center: {_compact(spec['center'])}, size: {_compact(spec['size'])}}}"
    return (
        f"{registry}.push(new {ctor}({quote(data['checksum'])},{category}.{data['categoryId']},{block}.{entry.id},"
        f"[[{quote(data['sceneName'])}, {quote(data['modelName'])}]],{shared},{_compact(data['overlapSpace'])}{special}));"
    )


def mainPartFragments(table: ExtensionTable, profile: HostProfile) -> str:
    blocks = table.ofKind(EntryKind.BLOCK)
    if not blocks:
        return ""
    parts = profile.parts
    pushes = "".join(partPush(entry, profile) for entry in blocks)
    refresh = f"for (const e of {parts.registry}) {{if (!{parts.lookup}.has(e.id)){{ {parts.lookup}.set(e.id, e);}}; }}"
    return pushes + refresh


def simFragments(table: ExtensionTable, profile: HostProfile) -> list[str]:
    """Simulation-side declarations in registration order: enum members, then part pushes."""
    enums = profile.enums
    out: list[str] = []
    for entry in table.ofKind(EntryKind.CATEGORY, EntryKind.BLOCK):
        symbol = enums.simCategory if entry.kind is EntryKind.CATEGORY else enums.simBlock
        out.append(enumMember(symbol, entry.id, entry.numericId))
        if entry.kind is EntryKind.BLOCK:
            out.append(partPush(entry, profile, simulation=True))
    return out


def modelList(models: Sequence[str]) -> str:
    return "[" + ", ".join(quote(url) for url in models) + "]"


def exportFilter(profile: HostProfile) -> str:
    return f"if ({profile.loaderGlobal}.editorExtras.ignoredBlocks.includes(r)) {{continue;}};"


def categoryMeshCases(table: ExtensionTable, profile: HostProfile) -> str:
    enums = profile.enums
    return "".join(
        f"case {enums.category}.{e.id}:n = this.getPart({enums.block}.{e.data['defaultId']});break;"
        for e in table.ofKind(EntryKind.CATEGORY)
    )


# ----- Settings and keybindings -----

def _local(profile: HostProfile, label: str) -> str:
    menu = profile.menu
    return f'{menu.privateGet}(this, {menu.localeField}, "f").get({quote(label)})'


def _menuCall(profile: HostProfile, method: str, label: str, rest: str = "") -> str:
    menu = profile.menu
    return f'{menu.privateGet}(this, {menu.menuBrand}, "m", {method}).call(this, {_local(profile, label)}{rest})'


def settingClassCapture(table: ExtensionTable, profile: HostProfile) -> str:
    return f"{profile.loaderGlobal}.settingClass = this;" + _members(profile.enums.setting, table.ofKind(EntryKind.SETTING))


def _settingDefault(entry: ExtensionEntry) -> str:
    if entry.data["type"] == "boolean":
        return "true" if entry.data["default"] else "false"
    return str(entry.data["default"])


def settingDefaults(table: ExtensionTable, profile: HostProfile) -> str:
    symbol = profile.enums.setting
    return "".join(
        f", [{symbol}.{e.id}, {quote(_settingDefault(e))}]"
        for e in table.ofKind(EntryKind.SETTING)
    )


def settingsMenu(table: ExtensionTable, profile: HostProfile) -> str:
    menu, symbol = profile.menu, profile.enums.setting
    out: list[str] = []
    for entry in table.ofKind(EntryKind.SETTING_CATEGORY, EntryKind.SETTING):
        if entry.kind is EntryKind.SETTING_CATEGORY:
            out.append(_menuCall(profile, menu.addCategory, entry.label) + ",")
            continue
        settingType = entry.data["type"]
        if settingType == "boolean":
            options = (
                f'[{{title: {_local(profile, "Off")}, value: "false"}}, '
                f'{{title: {_local(profile, "On")}, value: "true"}}]'
            )
            out.append(_menuCall(profile, menu.addSelect, entry.label, f", {options}, {symbol}.{entry.id}") + ",")
        elif settingType == "slider":
            out.append(_menuCall(profile, menu.addSlider, entry.label, f", {symbol}.{entry.id}") + ",")
        else:
            options = _compact(entry.data.get("options") or [])
            out.append(_menuCall(profile, menu.addSelect, entry.label, f", {options}, {symbol}.{entry.id}") + ",")
    return "".join(out)


def bindConstructor(table: ExtensionTable, profile: HostProfile) -> str:
    return _members(profile.enums.keybind, table.ofKind(EntryKind.KEYBIND)) + ";"


def bindDefaults(table: ExtensionTable, profile: HostProfile) -> str:
    symbol = profile.enums.keybind
    out: list[str] = []
    for entry in table.ofKind(EntryKind.KEYBIND):
        second = entry.data.get("secondBind")
        out.append(f", [{symbol}.{entry.id}, [{quote(entry.data['defaultBind'])}, {quote(second) if second else 'null'}]]")
    return "".join(out)


def bindMenu(table: ExtensionTable, profile: HostProfile) -> str:
    menu, symbol = profile.menu, profile.enums.keybind
    out: list[str] = []
    for entry in table.ofKind(EntryKind.BIND_CATEGORY, EntryKind.KEYBIND):
        if entry.kind is EntryKind.BIND_CATEGORY:
            out.append("," + _menuCall(profile, menu.addBindCategory, entry.label))
        else:
            out.append("," + _menuCall(profile, menu.addKeybind, entry.label, f", {symbol}.{entry.id}"))
    return "".join(out)


# ----- Instance captures -----

def soundClassCapture(profile: HostProfile) -> str:
    return f"{profile.loaderGlobal}.soundClass = this;"


def soundOverride(entry: ExtensionEntry) -> str:
    return f"null;if(e === {quote(entry.id)}) {{t = [{quote(entry.data['url'])}];}}"


def editorConstruct(profile: HostProfile) -> str:
    return f"{profile.loaderGlobal}.editorExtras.construct(this),"


def popupCapture(profile: HostProfile) -> str:
    return f"{profile.loaderGlobal}.popUpClass = S;"
