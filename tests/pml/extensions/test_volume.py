# tests/pml/extensions/test_volume.py
from __future__ import annotations

import pytest

from pml.core.errors import OverlappingVolumeError
from pml.extensions.volume import expandVolume


def test_single_range_cells_in_order():
    assert expandVolume([[[0, 0, 0], [1, 0, 0]]]) == [(0, 0, 0), (1, 0, 0)]


def test_reversed_corners_cover_same_cells():
    forward = expandVolume([[[0, 0, 0], [1, 1, 1]]])
    backward = expandVolume([[[1, 1, 1], [0, 0, 0]]])
    assert sorted(forward) == sorted(backward)
    assert len(forward) == 8


def test_disjoint_ranges_sum_their_sizes():
    cells = expandVolume([
        [[0, 0, 0], [1, 0, 1]],
        [[0, 1, 0], [0, 1, 0]],
        [[5, 5, 5], [5, 5, 7]],
    ])
    assert len(cells) == 4 + 1 + 3
    assert len(set(cells)) == len(cells)


def test_overlapping_ranges_raise():
    with pytest.raises(OverlappingVolumeError) as info:
        expandVolume([[[0, 0, 0], [2, 0, 0]], [[2, 0, 0], [3, 0, 0]]])
    assert info.value.cell == (2, 0, 0)
    assert "Duplicate tile" in str(info.value)


@pytest.mark.parametrize("ranges", [
    [[[0, 0], [1, 1, 1]]],
    [[[0, 0, 0]]],
    [[["a", 0, 0], [1, 1, 1]]],
])
def test_malformed_ranges_raise_value_error(ranges):
    with pytest.raises(ValueError):
        expandVolume(ranges)


def test_empty_volume():
    assert expandVolume([]) == []
