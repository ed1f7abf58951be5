# pml/app/boot.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pml.config.settings import LoaderConfig
from pml.loader import PolyModLoader
from pml.mixins.applier import PatchResult
from pml.mods.lifecycle import InitReport
from pml.mods.source import ModSource
from pml.mods.storage import KeyValueStorage
from pml.ui.notifications import Notifier

logger = logging.getLogger(__name__)

__all__ = ["BootResult", "bootLoader", "patchBundleFiles"]



@dataclass
class BootResult:
    loader: PolyModLoader
    init: InitReport
    main: PatchResult
    simulation: PatchResult | None = None



async def bootLoader(
    config: LoaderConfig,
    *,
    mainText: str,
    simulationText: str | None = None,
    storage: KeyValueStorage | None = None,
    source: ModSource | None = None,
    notifier: Notifier | None = None,
) -> BootResult:
    """
    Full boot sequence:
      1. discover persisted mods
      2. init pass (dependency ordered), then extension finalization
      3. postInit
      4. simInit, when a simulation bundle is given
      5. patch the main bundle, then the simulation bundle
    Bundles are patched after every hook has run.
    Only a simInit failure aborts the boot.
    """
    loader = PolyModLoader(config, storage=storage, source=source, notifier=notifier)

    await loader.importMods()
    initReport = await loader.initMods()
    await loader.postInitMods()
    if simulationText is not None:
        await loader.simInitMods()

    main = loader.patchMain(mainText)
    simulation = loader.patchSimulation(simulationText) if simulationText is not None else None

    logger.info(
        "Boot done: %d mod(s) initialized, main %d/%d mixins applied%s",
        len(initReport.initialized), len(main.applied), len(main.applied) + len(main.missed),
        f", simulation {len(simulation.applied)}/{len(simulation.applied) + len(simulation.missed)}" if simulation else "",
    )
    return BootResult(loader=loader, init=initReport, main=main, simulation=simulation)



def _outputPath(outDir: Path, source: Path) -> Path:
    return outDir / source.name



async def patchBundleFiles(
    config: LoaderConfig,
    mainPath: Path,
    outDir: Path,
    *,
    simulationPath: Path | None = None,
    notifier: Notifier | None = None,
) -> BootResult:
    """Boot against bundle files on disk and write the patched copies into `outDir`."""
    mainText = mainPath.read_text(encoding="utf-8")
    simulationText = simulationPath.read_text(encoding="utf-8") if simulationPath else None

    result = await bootLoader(config, mainText=mainText, simulationText=simulationText, notifier=notifier)

    outDir.mkdir(parents=True, exist_ok=True)
    _outputPath(outDir, mainPath).write_text(result.main.text, encoding="utf-8")
    if simulationPath and result.simulation is not None:
        _outputPath(outDir, simulationPath).write_text(result.simulation.text, encoding="utf-8")
    logger.info("Wrote patched bundle(s) to '%s'", outDir)
    return result
