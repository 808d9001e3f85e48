"""Occupancy index: which entries sit at which slot.

A snapshot is built from the live entry feed and handed to the resolver
as a plain value. Nothing writes to it; the next feed refresh builds a
new one.
"""

from collections import defaultdict
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

import structlog

from core.entries import CorruptEntry, InventoryEntry, classify_record
from core.locations import Location

logger = structlog.get_logger(__name__)


class OccupancyIndex:
    def __init__(self, slots: Mapping[Location, Iterable[InventoryEntry]], corrupt_count: int = 0):
        self._slots: Mapping[Location, Tuple[InventoryEntry, ...]] = MappingProxyType(
            {loc: tuple(entries) for loc, entries in slots.items() if entries}
        )
        self.corrupt_count = corrupt_count

    @classmethod
    def from_records(cls, records: Iterable[Union[InventoryEntry, Mapping[str, Any]]]) -> "OccupancyIndex":
        grouped: Dict[Location, List[InventoryEntry]] = defaultdict(list)
        corrupt = 0
        for rec in records:
            entry = rec if isinstance(rec, (InventoryEntry, CorruptEntry)) else classify_record(rec)
            if isinstance(entry, CorruptEntry):
                corrupt += 1
                logger.warning(
                    "Skipping corrupt entry in occupancy feed",
                    location=str(entry.location) if entry.location else None,
                    doc_id=entry.doc_id,
                    reason=entry.reason,
                )
                continue
            grouped[entry.location].append(entry)

        for entries in grouped.values():
            entries.sort(key=lambda e: e.item_key)
        return cls(grouped, corrupt_count=corrupt)

    def entries_at(self, location: Location) -> Tuple[InventoryEntry, ...]:
        return self._slots.get(location, ())

    def is_occupied(self, location: Location) -> bool:
        return bool(self.entries_at(location))

    def total_quantity(self, location: Location) -> int:
        return sum(e.quantity for e in self.entries_at(location))

    def locations(self) -> List[Location]:
        return sorted(self._slots, key=lambda loc: (loc.shelf, loc.level))

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, location: object) -> bool:
        return location in self._slots
