# pml/extensions/allocator.py
from __future__ import annotations

import logging
from enum import Enum

from pml.config.settings import IdSeeds

logger = logging.getLogger(__name__)

__all__ = ["IdKind", "IdAllocator"]



class IdKind(Enum):
    CATEGORY = "category"
    BLOCK = "block"
    SETTING = "setting"
    KEYBIND = "keybind"



class IdAllocator:
    """
    Per-kind counters for host enumeration extensions.

    Each counter starts at the highest built-in value of its enumeration, so
    the n-th allocation of a kind returns seed + n.
    """

    def __init__(self, seeds: IdSeeds | None = None) -> None:
        seeds = seeds or IdSeeds()
        self._seeds = {kind: int(getattr(seeds, kind.value)) for kind in IdKind}
        self._latest = dict(self._seeds)

    def next(self, kind: IdKind | str) -> int:
        kind = IdKind(kind)
        self._latest[kind] += 1
        logger.debug("Allocated %s id %d", kind.value, self._latest[kind])
        return self._latest[kind]

    def peek(self, kind: IdKind | str) -> int:
        """Last value handed out for `kind` (the seed before any allocation)."""
        return self._latest[IdKind(kind)]

    def allocated(self, kind: IdKind | str) -> int:
        kind = IdKind(kind)
        return self._latest[kind] - self._seeds[kind]
