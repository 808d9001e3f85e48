"""Inventory entries as read from the store or the live feed.

Every raw record is classified once, at the read boundary: either a
valid ``InventoryEntry`` (item key present, quantity a positive integer)
or a ``CorruptEntry`` that callers route to cleanup. Malformed
quantities are never coerced to zero stock.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from core.locations import Location, location_from_path, location_from_slot_id, safe_doc_id


@dataclass(frozen=True)
class InventoryEntry:
    location: Location
    item_key: str
    quantity: int
    item_type: Optional[str] = None
    timestamp: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_source: Optional[str] = None
    last_destination: Optional[str] = None
    # key the record is stored under; item_key is its sanitized form
    doc_id: Optional[str] = None

    @property
    def stored_key(self) -> str:
        return self.doc_id if self.doc_id is not None else self.item_key


@dataclass(frozen=True)
class CorruptEntry:
    location: Optional[Location]
    doc_id: str
    reason: str


StoredEntry = Union[InventoryEntry, CorruptEntry]


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in record and record[k] is not None:
            return record[k]
    return None


def parse_quantity(value: Any) -> Optional[int]:
    """Return the quantity as int, or None when it is not a whole number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _record_location(record: Mapping[str, Any]) -> Optional[Location]:
    shelf = _first(record, "shelf")
    level = parse_quantity(_first(record, "level"))
    if shelf and level is not None:
        return Location(str(shelf), level)
    slot_id = _first(record, "slot_id", "slotId")
    if slot_id:
        return location_from_slot_id(slot_id)
    path = _first(record, "path")
    if path:
        return location_from_path(path)
    return None


def classify_record(record: Mapping[str, Any], doc_id: Optional[str] = None) -> StoredEntry:
    """Classify one raw entry record (feed document or table row mapping)."""
    location = _record_location(record)
    item_key = safe_doc_id(_first(record, "item_key", "itemKey") or doc_id)
    raw_qty = _first(record, "quantity")
    qty = parse_quantity(raw_qty)

    # deletes must hit the stored key, not the sanitized one
    key = doc_id if doc_id is not None else item_key

    if location is None:
        return CorruptEntry(location=None, doc_id=key, reason="unknown location")
    if not item_key:
        return CorruptEntry(location=location, doc_id=key, reason="missing item key")
    if qty is None:
        return CorruptEntry(location=location, doc_id=key, reason=f"malformed quantity {raw_qty!r}")
    if qty <= 0:
        return CorruptEntry(location=location, doc_id=key, reason=f"non-positive quantity {qty}")

    return InventoryEntry(
        location=location,
        item_key=item_key,
        quantity=qty,
        item_type=_first(record, "item_type", "type"),
        timestamp=_first(record, "timestamp"),
        updated_at=_first(record, "updated_at", "updatedAt"),
        last_source=_first(record, "last_source", "lastSource"),
        last_destination=_first(record, "last_destination", "lastDestination"),
        doc_id=key,
    )
