# pml/config/loader.py
from __future__ import annotations
import copy
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import json5
from pydantic import ValidationError

from pml.core.config_stack import mergeWithStrategy
from pml.core.dictpath import setByPath
from pml.core.errors import ConfigError
from .settings import LoaderConfig

logger = logging.getLogger(__name__)

__all__ = ["loadConfig", "readConfigFile", "expandOverrides"]



def readConfigFile(path: Path | str) -> dict[str, Any]:
    """Read a JSON5 config file into a dict. A missing file reads as empty."""
    path = Path(path).expanduser()
    if not path.exists():
        logger.debug("Config file '%s' not found, using defaults", path)
        return {}
    try:
        data = json5.loads(path.read_text(encoding="utf-8"))
    except ValueError as err:
        raise ConfigError(f"Config file '{path}' is not valid JSON5: {err}") from err
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config file '{path}' must contain an object at the top level")
    return dict(data)



def expandOverrides(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Turn dotted override keys into nested mappings. A backslash escapes a literal dot."""
    out: dict[str, Any] = {}
    for key, value in overrides.items():
        try:
            setByPath(out, key, copy.deepcopy(value), createIfMissing=True)
        except (ValueError, TypeError, KeyError) as err:
            raise ConfigError(f"Invalid config override '{key}': {err}") from err
    return out



def loadConfig(
    path: Path | str | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> LoaderConfig:
    """
    Build the effective loader configuration.

    Layers (later wins): built-in defaults <- config file <- overrides.
    Override keys may be dotted paths ("patch.strict").
    Layers are merged with mergeWithStrategy, so a file can append to lists
    with "<key>__merge" directives.
    """
    merged: dict[str, Any] = LoaderConfig().model_dump()
    if path is not None:
        merged = mergeWithStrategy(merged, readConfigFile(path))
    if overrides:
        merged = mergeWithStrategy(merged, expandOverrides(overrides))

    try:
        cfg = LoaderConfig.model_validate(merged)
    except ValidationError as err:
        raise ConfigError(f"Invalid loader configuration: {err}") from err

    logger.debug("Loader config ready (host %s, storage '%s')", cfg.host.version, cfg.storage.path)
    return cfg
