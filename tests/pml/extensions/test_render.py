# tests/pml/extensions/test_render.py
from __future__ import annotations

from pml.config.settings import HostProfile
from pml.extensions import render
from pml.extensions.table import EntryKind, ExtensionEntry, ExtensionTable


def _table(*entries: ExtensionEntry) -> ExtensionTable:
    table = ExtensionTable()
    for entry in entries:
        table.add(entry)
    return table


def test_enum_member_shape():
    assert render.enumMember("KA", "Lava", 9) == 'KA[KA.Lava = 9] = "Lava";'


def test_string_literals_are_json_quoted():
    entry = ExtensionEntry(EntryKind.SOUND_OVERRIDE, 'a"b', data={"url": "x\\y</script>"})
    out = render.soundOverride(entry)
    assert 'e === "a\\"b"' in out
    assert '"x\\\\y</script>"' in out


def test_profile_symbols_drive_output():
    profile = HostProfile.model_validate({"enums": {"category": "QQ"}, "loaderGlobal": "PML"})
    table = _table(ExtensionEntry(EntryKind.CATEGORY, "Lava", 9, data={"defaultId": "LavaStart"}))
    assert render.categoryEnum(table, profile) == 'QQ[QQ.Lava = 9] = "Lava";'
    assert render.exportFilter(profile).startswith("if (PML.editorExtras")


def test_settings_menu_kinds():
    profile = HostProfile()
    table = _table(
        ExtensionEntry(EntryKind.SETTING_CATEGORY, "Mod", label="Mod"),
        ExtensionEntry(EntryKind.SETTING, "Glow", 19, "Glow", {"type": "boolean", "default": False}),
        ExtensionEntry(EntryKind.SETTING, "Heat", 20, "Heat", {"type": "slider", "default": 5}),
        ExtensionEntry(EntryKind.SETTING, "Mode", 21, "Mode", {
            "type": "custom", "default": "a", "options": [{"title": "A", "value": "a"}],
        }),
    )
    menu = render.settingsMenu(table, profile)
    assert menu.count("gI).call") == 1
    assert menu.count("wI).call") == 2
    assert menu.count("yI).call") == 1
    assert '[{"title":"A","value":"a"}], $o.Mode' in menu
    assert render.settingDefaults(table, profile) == ', [$o.Glow, "false"], [$o.Heat, "5"], [$o.Mode, "a"]'


def test_bind_defaults_without_second_bind():
    table = _table(ExtensionEntry(EntryKind.KEYBIND, "Boost", 31, "Boost", {"defaultBind": "KeyB", "secondBind": None}))
    assert render.bindDefaults(table, HostProfile()) == ', [Ix.Boost, ["KeyB", null]]'
