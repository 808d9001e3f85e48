"""Pick the level to act on when a scan names only the shelf.

Source: topmost occupied level (take from the most accessible stock).
Target: bottommost empty level (put into the most accessible free slot).
An explicit level is always returned unchanged.
"""

from typing import Optional, Sequence

from core.errors import LocationOutsideGrid, NoStockAtShelf, TargetFull
from core.locations import Location, ParsedPlace, parse_place_or_raise
from core.occupancy import OccupancyIndex


def find_top_occupied_level(shelf: str, occupancy: OccupancyIndex, levels_top_down: Sequence[int]) -> Optional[int]:
    for lvl in sorted(levels_top_down, reverse=True):
        if occupancy.is_occupied(Location(shelf, lvl)):
            return lvl
    return None


def find_bottom_empty_level(shelf: str, occupancy: OccupancyIndex, levels_top_down: Sequence[int]) -> Optional[int]:
    for lvl in sorted(levels_top_down):
        if not occupancy.is_occupied(Location(shelf, lvl)):
            return lvl
    return None


def resolve_source_level(
    shelf: str, occupancy: OccupancyIndex, levels_top_down: Sequence[int], level: Optional[int] = None
) -> Optional[int]:
    if level is not None:
        return level
    return find_top_occupied_level(shelf, occupancy, levels_top_down)


def resolve_target_level(
    shelf: str, occupancy: OccupancyIndex, levels_top_down: Sequence[int], level: Optional[int] = None
) -> Optional[int]:
    if level is not None:
        return level
    return find_bottom_empty_level(shelf, occupancy, levels_top_down)


def ensure_in_grid(shelf: str, level: Optional[int], levels_top_down: Sequence[int], shelf_count: Optional[int] = None) -> None:
    """Raise LocationOutsideGrid for a shelf or level the grid does not have."""
    if shelf_count is not None and not 1 <= int(shelf[1:]) <= shelf_count:
        raise LocationOutsideGrid(shelf, level)
    if level is not None and level not in levels_top_down:
        raise LocationOutsideGrid(shelf, level)


def resolve_source(
    text: str, occupancy: OccupancyIndex, levels_top_down: Sequence[int], shelf_count: Optional[int] = None
) -> Location:
    """Parse a scanned source code and fill in the level. Raises before any write."""
    place: ParsedPlace = parse_place_or_raise(text)
    ensure_in_grid(place.shelf, place.level, levels_top_down, shelf_count)
    level = resolve_source_level(place.shelf, occupancy, levels_top_down, place.level)
    if level is None:
        raise NoStockAtShelf(place.shelf)
    return place.at(level)


def resolve_target(
    text: str, occupancy: OccupancyIndex, levels_top_down: Sequence[int], shelf_count: Optional[int] = None
) -> Location:
    place: ParsedPlace = parse_place_or_raise(text)
    ensure_in_grid(place.shelf, place.level, levels_top_down, shelf_count)
    level = resolve_target_level(place.shelf, occupancy, levels_top_down, place.level)
    if level is None:
        raise TargetFull(place.shelf)
    return place.at(level)
