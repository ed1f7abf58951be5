# pml/extensions/volume.py
from __future__ import annotations

from collections.abc import Sequence

from pml.core.errors import OverlappingVolumeError

__all__ = ["Cell", "expandVolume"]

Cell = tuple[int, int, int]



def _corner(value: Sequence[int], label: str) -> Cell:
    if isinstance(value, (str, bytes)) or len(value) != 3:
        raise ValueError(f"Volume {label} corner must have 3 coordinates, got {value!r}")
    try:
        x, y, z = (int(c) for c in value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Volume {label} corner must be integers, got {value!r}") from err
    return x, y, z



def expandVolume(ranges: Sequence[Sequence[Sequence[int]]]) -> list[Cell]:
    """
    Rasterize [start, end] corner pairs into the integer cells they cover.

    Corners are inclusive and may be given in any order per axis. A cell
    produced twice, by one range overlapping another, raises
    OverlappingVolumeError.

        expandVolume([[[0, 0, 0], [1, 0, 0]]])  -> [(0, 0, 0), (1, 0, 0)]
    """
    cells: list[Cell] = []
    seen: set[Cell] = set()
    for pair in ranges:
        if len(pair) != 2:
            raise ValueError(f"Volume range must be a [start, end] pair, got {pair!r}")
        x0, y0, z0 = _corner(pair[0], "start")
        x1, y1, z1 = _corner(pair[1], "end")
        for x in range(min(x0, x1), max(x0, x1) + 1):
            for y in range(min(y0, y1), max(y0, y1) + 1):
                for z in range(min(z0, z1), max(z0, z1) + 1):
                    cell = (x, y, z)
                    if cell in seen:
                        raise OverlappingVolumeError(cell)
                    seen.add(cell)
                    cells.append(cell)
    return cells
