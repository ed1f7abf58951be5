# tests/pml/config/test_loader.py
from __future__ import annotations

from pathlib import Path

import pytest

from pml.config.loader import loadConfig, readConfigFile
from pml.config.settings import LoaderConfig
from pml.core.errors import ConfigError


def test_defaults_without_file():
    cfg = loadConfig()
    assert cfg == LoaderConfig()
    assert cfg.host.version == "0.5.0"
    assert cfg.host.profile.seeds.category == 8


def test_missing_file_reads_as_empty(tmp_path: Path):
    assert readConfigFile(tmp_path / "nope.json5") == {}
    assert loadConfig(tmp_path / "nope.json5") == LoaderConfig()


def test_json5_file_layers_over_defaults(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text(
        """
        {
            // comments and trailing commas are fine
            host: {version: "0.5.1", profile: {seeds: {block: 160}}},
            storage: {path: "storage.json5"},
        }
        """,
        encoding="utf-8",
    )
    cfg = loadConfig(path)
    assert cfg.host.version == "0.5.1"
    assert cfg.host.profile.seeds.block == 160
    # untouched siblings keep their defaults
    assert cfg.host.profile.seeds.category == 8
    assert cfg.storage.path == "storage.json5"


def test_list_merge_directive_appends_models(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text(
        '{host: {profile: {defaultModels: ["models/extra.glb"], defaultModels__merge: "append"}}}',
        encoding="utf-8",
    )
    cfg = loadConfig(path)
    assert cfg.host.profile.defaultModels[0] == "models/blocks.glb"
    assert cfg.host.profile.defaultModels[-1] == "models/extra.glb"


def test_overrides_win_over_file(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text('{patch: {strict: false}}', encoding="utf-8")
    cfg = loadConfig(path, overrides={"patch": {"strict": True}})
    assert cfg.patch.strict is True


def test_dotted_overrides_expand_into_sections(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text('{storage: {path: "storage.json5"}}', encoding="utf-8")
    cfg = loadConfig(path, overrides={"storage.key": "mods", "host.profile.seeds.block": 160})
    assert cfg.storage.key == "mods"
    # siblings from the file survive
    assert cfg.storage.path == "storage.json5"
    assert cfg.host.profile.seeds.block == 160


def test_malformed_dotted_override_raises_config_error():
    with pytest.raises(ConfigError, match="patch..strict"):
        loadConfig(overrides={"patch..strict": True})


def test_invalid_json5_raises_config_error(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text("{host: ", encoding="utf-8")
    with pytest.raises(ConfigError):
        loadConfig(path)


def test_non_object_top_level_raises(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError):
        loadConfig(path)


def test_unknown_key_is_rejected(tmp_path: Path):
    path = tmp_path / "pml.json5"
    path.write_text('{host: {flavour: "vanilla"}}', encoding="utf-8")
    with pytest.raises(ConfigError):
        loadConfig(path)
