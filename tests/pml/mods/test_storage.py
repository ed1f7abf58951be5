# tests/pml/mods/test_storage.py
from __future__ import annotations

import logging

import json5

from pml.mods.storage import MemoryStorage, ModStorage


def test_memory_storage_basics():
    storage = MemoryStorage({"a": "1"})
    storage.setItem("b", 2)
    assert storage.getItem("a") == "1"
    assert storage.getItem("b") == "2"
    storage.removeItem("a")
    storage.removeItem("missing")
    assert storage.getItem("a") is None


def test_file_storage_survives_reopen(tmp_path):
    path = tmp_path / "nested" / "storage.json5"
    ModStorage(path).setItem("polyMods", '[{"base": "x"}]')

    assert path.exists()
    assert not path.with_suffix(".json5.tmp").exists()
    assert ModStorage(path).getItem("polyMods") == '[{"base": "x"}]'
    assert json5.loads(path.read_text(encoding="utf-8")) == {"polyMods": '[{"base": "x"}]'}


def test_remove_rewrites_file(tmp_path):
    path = tmp_path / "storage.json5"
    storage = ModStorage(path)
    storage.setItem("a", "1")
    storage.setItem("b", "2")
    storage.removeItem("a")
    assert json5.loads(path.read_text(encoding="utf-8")) == {"b": "2"}


def test_hand_edited_json5_is_accepted(tmp_path):
    path = tmp_path / "storage.json5"
    path.write_text("{\n  // edited by hand\n  polyMods: '[]',\n}\n", encoding="utf-8")
    assert ModStorage(path).getItem("polyMods") == "[]"


def test_broken_file_starts_empty(tmp_path, caplog):
    path = tmp_path / "storage.json5"
    path.write_text("{broken", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="pml.mods.storage"):
        storage = ModStorage(path)
    assert storage.getItem("polyMods") is None
    assert any("not valid JSON5" in rec.getMessage() for rec in caplog.records)
    # The broken file is left alone until the next write
    assert path.read_text(encoding="utf-8") == "{broken"


def test_non_object_file_starts_empty(tmp_path):
    path = tmp_path / "storage.json5"
    path.write_text("[1, 2]", encoding="utf-8")
    assert ModStorage(path).getItem("0") is None
