"""Tests for default level resolution."""

import pytest
from conftest import entry
from core.errors import InvalidLocationText, LocationOutsideGrid, NoStockAtShelf, TargetFull
from core.locations import Location
from core.occupancy import OccupancyIndex
from core.resolver import (
    find_bottom_empty_level,
    ensure_in_grid,
    find_top_occupied_level,
    resolve_source,
    resolve_source_level,
    resolve_target,
    resolve_target_level,
)

LEVELS = [5, 4, 3, 2, 1]


def _index(*entries):
    return OccupancyIndex.from_records(entries)


class TestResolveSource:
    def test_topmost_occupied_level(self):
        index = OccupancyIndex(
            {
                Location("C1", 5): [],
                Location("C1", 4): [entry("C1", 4, "A")],
                Location("C1", 3): [],
                Location("C1", 2): [entry("C1", 2, "B")],
            }
        )
        assert resolve_source_level("C1", index, LEVELS) == 4

    def test_level_order_does_not_depend_on_input_order(self):
        index = _index(entry("C1", 2, "A"), entry("C1", 3, "B"))
        assert find_top_occupied_level("C1", index, [1, 2, 3, 4, 5]) == 3

    def test_explicit_level_is_returned_unchanged(self):
        index = _index(entry("C1", 4, "A"))
        assert resolve_source_level("C1", index, LEVELS, level=2) == 2

    def test_empty_shelf_gives_none(self):
        index = _index(entry("C2", 4, "A"))
        assert resolve_source_level("C1", index, LEVELS) is None

    def test_resolve_source_from_text(self):
        index = _index(entry("C5", 4, "A"), entry("C5", 1, "B"))
        assert resolve_source("c5", index, LEVELS) == Location("C5", 4)

    def test_resolve_source_explicit_empty_level(self):
        assert resolve_source("C5-L3", _index(), LEVELS) == Location("C5", 3)

    def test_resolve_source_no_stock(self):
        with pytest.raises(NoStockAtShelf) as exc_info:
            resolve_source("C5", _index(), LEVELS)
        assert exc_info.value.shelf == "C5"

    def test_resolve_source_invalid_text(self):
        with pytest.raises(InvalidLocationText):
            resolve_source("Z9", _index(), LEVELS)

    def test_resolve_source_outside_grid(self):
        with pytest.raises(LocationOutsideGrid):
            resolve_source("C99", _index(), LEVELS, shelf_count=38)
        with pytest.raises(LocationOutsideGrid):
            resolve_source("C5-L9", _index(), LEVELS)


class TestResolveTarget:
    def test_bottommost_empty_level(self):
        index = OccupancyIndex({Location("C2", 1): [entry("C2", 1, "A")], Location("C2", 2): []})
        assert resolve_target_level("C2", index, LEVELS) == 2

    def test_skips_occupied_levels(self):
        index = _index(entry("C2", 1, "A"), entry("C2", 2, "B"), entry("C2", 4, "C"))
        assert find_bottom_empty_level("C2", index, LEVELS) == 3

    def test_explicit_level_is_returned_unchanged(self):
        index = _index(entry("C2", 1, "A"))
        assert resolve_target_level("C2", index, LEVELS, level=1) == 1

    def test_full_shelf_gives_none(self):
        index = _index(*(entry("C2", lvl, "A") for lvl in LEVELS))
        assert resolve_target_level("C2", index, LEVELS) is None

    def test_resolve_target_full(self):
        index = _index(*(entry("C2", lvl, "A") for lvl in LEVELS))
        with pytest.raises(TargetFull) as exc_info:
            resolve_target("C2", index, LEVELS)
        assert exc_info.value.shelf == "C2"

    def test_resolve_target_from_text(self):
        index = _index(entry("C2", 1, "A"))
        assert resolve_target("C2", index, LEVELS) == Location("C2", 2)

    def test_resolve_target_outside_grid(self):
        with pytest.raises(LocationOutsideGrid) as exc_info:
            resolve_target("C1-L0", _index(), LEVELS, shelf_count=38)
        assert exc_info.value.level == 0


class TestGridBounds:
    def test_grid_edges_are_accepted(self):
        ensure_in_grid("C1", 1, LEVELS, shelf_count=38)
        ensure_in_grid("C38", 5, LEVELS, shelf_count=38)
        ensure_in_grid("C38", None, LEVELS, shelf_count=38)

    @pytest.mark.parametrize("shelf, level", [("C39", 1), ("C0", 1), ("C99", 4), ("C1", 0), ("C1", 6), ("C1", 9)])
    def test_outside_grid(self, shelf, level):
        with pytest.raises(LocationOutsideGrid):
            ensure_in_grid(shelf, level, LEVELS, shelf_count=38)

    def test_shelf_not_checked_without_count(self):
        ensure_in_grid("C99", 4, LEVELS)
