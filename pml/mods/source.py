# pml/mods/source.py
from __future__ import annotations

import importlib.util
import logging
import re
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import httpx
import json5
from pydantic import ValidationError

from pml.config.settings import HttpSettings, StorageSettings
from pml.core.errors import ModFetchError, ModImportError
from pml.http.client import HTTPError, getJson, getText
from .manifest import LatestLookup, ModManifest

logger = logging.getLogger(__name__)

__all__ = ["ModSource", "joinUrl", "isRemote"]

_MODULE_NAME_RE = re.compile(r"[^0-9A-Za-z_]")



def isRemote(url: str) -> bool:
    return urlparse(url).scheme in ("http", "https")


def joinUrl(base: str, *parts: str) -> str:
    return "/".join([base.rstrip("/"), *(p.strip("/") for p in parts)])


def _localPath(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(url2pathname(unquote(parsed.path)))
    return Path(url).expanduser()



def _quickImport(path: Path, moduleName: str) -> Any:
    spec = importlib.util.spec_from_file_location(moduleName, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load module from {path}")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod



def _cacheModule(cacheDir: Path, modId: str, version: str, fileName: str, code: str) -> Path:
    """Write a fetched module under <cacheDir>/<id>/<version>/ and return its path."""
    folder = cacheDir / _MODULE_NAME_RE.sub("_", modId) / _MODULE_NAME_RE.sub("_", version)
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / Path(fileName).name
    path.write_text(code, encoding="utf-8")
    return path



class ModSource:
    """
    Fetches mod documents and modules from a base URL.

    Layout under a base:
        <base>/latest.json               host version -> mod version
        <base>/<version>/manifest.json
        <base>/<version>/<polymod.main>  module exporting `polyMod`

    http(s) bases go through pml.http.client and their modules are cached
    under `cacheDir` before import; file:// URLs and plain paths are read
    from disk.
    """

    def __init__(self, hostVersion: str, http: HttpSettings | None = None, *, cacheDir: Path | str | None = None) -> None:
        self.hostVersion = hostVersion
        self.http = http or HttpSettings()
        self.cacheDir = Path(cacheDir).expanduser() if cacheDir is not None else StorageSettings().moduleCacheDir()

    def _httpKwargs(self) -> dict[str, Any]:
        return {
            "timeoutMs": self.http.timeoutMs,
            "retries": self.http.retries,
            "backoffBaseMs": self.http.backoffBaseMs,
            "backoffMaxMs": self.http.backoffMaxMs,
        }

    async def _fetchJson(self, url: str) -> Any:
        try:
            if isRemote(url):
                return await getJson(url, **self._httpKwargs())
            return json5.loads(_localPath(url).read_text(encoding="utf-8"))
        except (HTTPError, httpx.HTTPError, OSError) as err:
            raise ModFetchError(f"Could not fetch '{url}': {err}", url=url) from err
        except ValueError as err:
            raise ModFetchError(f"'{url}' is not valid JSON: {err}", url=url) from err

    async def fetchLatest(self, base: str) -> str:
        """Resolve the "latest" pointer of `base` for the running host version."""
        url = joinUrl(base, "latest.json")
        data = await self._fetchJson(url)
        try:
            lookup = LatestLookup.model_validate(data)
        except ValidationError as err:
            raise ModFetchError(f"Version lookup '{url}' is malformed", url=url) from err
        version = lookup.resolve(self.hostVersion)
        if version is None:
            raise ModFetchError(f"Version lookup '{url}' has no entry for host {self.hostVersion}", url=url)
        logger.debug("Resolved latest of '%s' for host %s -> %s", base, self.hostVersion, version)
        return version

    async def fetchManifest(self, base: str, version: str) -> ModManifest:
        url = joinUrl(base, version, "manifest.json")
        data = await self._fetchJson(url)
        try:
            return ModManifest.model_validate(data)
        except ValidationError as err:
            raise ModFetchError(f"Manifest '{url}' is invalid: {err}", url=url) from err

    async def importModule(self, base: str, version: str, manifest: ModManifest) -> Any:
        """
        Execute the mod's main module and return its `polyMod` export.
        A class export is instantiated.
        """
        url = joinUrl(base, version, manifest.polymod.main)
        moduleName = "pml_mod_" + _MODULE_NAME_RE.sub("_", f"{manifest.polymod.id}_{version}")
        try:
            if isRemote(url):
                code = await getText(url, **self._httpKwargs())
                path = _cacheModule(self.cacheDir, manifest.polymod.id, version, manifest.polymod.main, code)
            else:
                path = _localPath(url)
                if not path.exists():
                    raise FileNotFoundError(f"'{manifest.polymod.id}' - entry file not found: '{path}'")
        except (HTTPError, httpx.HTTPError, OSError) as err:
            raise ModFetchError(f"Could not fetch module '{url}': {err}", url=url) from err

        try:
            module = _quickImport(path.resolve(), moduleName)
        except Exception as err:
            raise ModImportError(f"Module '{url}' failed to execute: {err}", url=url) from err

        polyMod = getattr(module, "polyMod", None)
        if isinstance(polyMod, type):
            polyMod = polyMod()
        if polyMod is None or not callable(getattr(polyMod, "applyManifest", None)):
            raise ModImportError(f"Module '{url}' does not export a polyMod", url=url)
        logger.debug("Imported mod module '%s'", url)
        return polyMod
