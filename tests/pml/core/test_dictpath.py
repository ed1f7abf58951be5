# tests/pml/core/test_dictpath.py
from __future__ import annotations
import types
from typing import Any

import pytest

from pml.config.settings import LoaderConfig
from pml.core.dictpath import getByPath, setByPath


class Obj:
    def __init__(self):
        self.user = types.SimpleNamespace(name="Ada")
        self.meta = {"a.b": {"c": 1}}  # key with dot (escaped access)


def test_getByPath_simpleNestedDict() -> None:
    data = {"http": {"timeoutMs": 500}}
    assert getByPath(data, "http.timeoutMs") == 500


def test_getByPath_attributeFallback() -> None:
    assert getByPath(Obj(), "user.name") == "Ada"


def test_getByPath_escapedDot() -> None:
    assert getByPath(Obj(), "meta.a\\.b.c") == 1


def test_getByPath_pydanticModel() -> None:
    cfg = LoaderConfig()
    assert getByPath(cfg, "host.profile.enums.category") == "KA"
    assert getByPath(cfg, "host.profile.seeds.block") == 155


@pytest.mark.parametrize("path", ["", "a..b", "a.", "trailing\\"])
def test_getByPath_invalidPathReturnsDefault(path: str) -> None:
    assert getByPath({"a": 1}, path, default="fallback") == "fallback"


def test_getByPath_missingReturnsDefault() -> None:
    assert getByPath({"a": {"b": 1}}, "a.c", default=7) == 7


def test_setByPath_createsIntermediates() -> None:
    data: dict[str, Any] = {}
    setByPath(data, "patch.strict", True, createIfMissing=True)
    assert data == {"patch": {"strict": True}}


def test_setByPath_missingWithoutCreateRaises() -> None:
    with pytest.raises(KeyError):
        setByPath({}, "a.b", 1)


def test_setByPath_throughScalarRaises() -> None:
    with pytest.raises(TypeError):
        setByPath({"a": 1}, "a.b", 2)


def test_loaderConfig_get_defaults() -> None:
    cfg = LoaderConfig()
    assert cfg.get("http.timeoutMs") == 30_000
    assert cfg.get("non.existing.path", 3) == 3
    assert cfg.getBool("patch.strict") is False
