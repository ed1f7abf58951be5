# pml/__main__.py
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

import json5

from pml.app.boot import patchBundleFiles
from pml.config.loader import loadConfig
from pml.config.settings import LoaderConfig
from pml.core.errors import AnchorNotFoundError, ConfigError, PmlError
from pml.core.logging import configureLogging
from pml.loader import PolyModLoader
from pml.mods.manifest import PersistedModRef

logger = logging.getLogger("pml.cli")



def _buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pml", description="Runtime mod loader: patch host bundles and manage mods")
    parser.add_argument("--config", type=Path, default=None, help="Loader config file (JSON5).")
    parser.add_argument("--set", dest="sets", action="append", default=[], metavar="KEY=VALUE",
                        help="Override a config value by dotted path, e.g. patch.strict=true (repeatable).")
    sub = parser.add_subparsers(dest="command", required=True)

    patch = sub.add_parser("patch", help="Boot all loaded mods and write patched bundle copies.")
    patch.add_argument("main", type=Path, help="Main bundle file.")
    patch.add_argument("--sim", type=Path, default=None, help="Simulation worker bundle file.")
    patch.add_argument("--out", type=Path, default=Path("patched"), help="Output directory.")
    patch.add_argument("--strict", action="store_true", help="Fail when a mixin anchor is missing.")

    mods = sub.add_parser("mods", help="Inspect or edit the persisted mod list.")
    modsSub = mods.add_subparsers(dest="action", required=True)
    modsSub.add_parser("list", help="Print the persisted mod references.")
    add = modsSub.add_parser("add", help="Add a mod by base URL.")
    add.add_argument("base")
    add.add_argument("--version", default="latest")
    add.add_argument("--auto-update", action="store_true", help="Keep following the latest version.")
    for name, helpText in (("remove", "Remove a mod."), ("enable", "Mark a mod loaded."), ("disable", "Mark a mod not loaded.")):
        action = modsSub.add_parser(name, help=helpText)
        action.add_argument("modId")
    return parser



def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Dotted-path overrides from --set; values parse as JSON5 and fall back to plain strings."""
    overrides: dict[str, Any] = {}
    for item in args.sets:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise ConfigError(f"--set expects KEY=VALUE, got '{item}'")
        try:
            overrides[key] = json5.loads(raw)
        except ValueError:
            overrides[key] = raw
    if getattr(args, "strict", False):
        overrides["patch.strict"] = True
    return overrides



async def _runMods(config: LoaderConfig, args: argparse.Namespace) -> int:
    loader = PolyModLoader(config)
    if args.action == "list":
        for ref in loader.registry.list():
            print(f"{ref.base}  {ref.version}  {'loaded' if ref.loaded else '-'}")
        return 0

    await loader.importMods()
    if args.action == "add":
        mod = await loader.addMod(PersistedModRef(base=args.base, version=args.version), args.auto_update)
        if mod is None:
            return 1
        print(f"Added {mod.id}@{mod.version}")
        return 0

    mod = loader.getMod(args.modId)
    if mod is None:
        print(f"No mod '{args.modId}' in the mod list", file=sys.stderr)
        return 1
    if args.action == "remove":
        loader.removeMod(mod)
    else:
        loader.setModLoaded(mod, args.action == "enable")
    return 0



def main(argv: list[str] | None = None) -> int:
    args = _buildParser().parse_args(argv)

    try:
        overrides = _overrides(args)
        config = loadConfig(args.config, overrides=overrides)
    except PmlError as err:
        print(f"pml: {err}", file=sys.stderr)
        return 2
    configureLogging(config.logging)

    try:
        if args.command == "patch":
            result = asyncio.run(patchBundleFiles(config, args.main, args.out, simulationPath=args.sim))
            missed = len(result.main.missed) + (len(result.simulation.missed) if result.simulation else 0)
            return 1 if missed else 0
        return asyncio.run(_runMods(config, args))
    except AnchorNotFoundError as err:
        logger.error("Strict patching failed: %s", err)
        return 1
    except PmlError as err:
        logger.error("%s", err)
        return 1


if __name__ == "__main__":
    sys.exit(main())
