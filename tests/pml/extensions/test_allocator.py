# tests/pml/extensions/test_allocator.py
from __future__ import annotations

import pytest

from pml.config.settings import IdSeeds
from pml.extensions.allocator import IdAllocator, IdKind


def test_first_allocation_is_seed_plus_one():
    allocator = IdAllocator()
    assert allocator.peek(IdKind.CATEGORY) == 8
    assert allocator.next(IdKind.CATEGORY) == 9
    assert allocator.next("block") == 156
    assert allocator.next(IdKind.SETTING) == 19
    assert allocator.next(IdKind.KEYBIND) == 31


def test_kinds_are_independent():
    allocator = IdAllocator(IdSeeds(category=0, block=100))
    allocator.next(IdKind.BLOCK)
    allocator.next(IdKind.BLOCK)
    assert allocator.next(IdKind.CATEGORY) == 1
    assert allocator.allocated(IdKind.BLOCK) == 2
    assert allocator.allocated(IdKind.SETTING) == 0


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        IdAllocator().next("sound")
