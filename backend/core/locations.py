"""Shelf locations and the codes that identify them.

Location codes come from QR labels or manual entry: ``C1``, ``c12``,
``C1-L5``, ``C1 L5``, ``C1_L5``. Slot ids are the persisted form:
``C1_L5``.
"""

import re
from dataclasses import dataclass
from typing import Optional

from core.errors import InvalidLocationText

# Shelf token C<1-2 digits>, optional level token L<digit>
_PLACE_RE = re.compile(r"^C(\d{1,2})(?:\s*[-_ ]?\s*L(\d))?$")
_SLOT_ID_RE = re.compile(r"^(.+)_L(\d+)$")


@dataclass(frozen=True)
class Location:
    shelf: str
    level: int

    @property
    def slot_id(self) -> str:
        return slot_id_for(self.shelf, self.level)

    def __str__(self) -> str:
        return f"{self.shelf}-L{self.level}"


@dataclass(frozen=True)
class ParsedPlace:
    """Result of parsing a location code. ``level`` is None when omitted."""

    shelf: str
    level: Optional[int] = None

    def at(self, level: int) -> Location:
        return Location(self.shelf, level)


def parse_place(text: Optional[str]) -> Optional[ParsedPlace]:
    raw = str(text or "").strip().upper()
    m = _PLACE_RE.match(raw)
    if not m:
        return None
    shelf = f"C{int(m.group(1))}"
    level = int(m.group(2)) if m.group(2) else None
    return ParsedPlace(shelf=shelf, level=level)


def parse_place_or_raise(text: Optional[str]) -> ParsedPlace:
    parsed = parse_place(text)
    if parsed is None:
        raise InvalidLocationText(str(text or ""))
    return parsed


def safe_doc_id(value) -> str:
    return str(value or "").replace("/", "_").strip()


def slot_id_for(shelf: str, level: int) -> str:
    return f"{shelf}_L{int(level)}"


def location_from_slot_id(slot_id: Optional[str]) -> Optional[Location]:
    m = _SLOT_ID_RE.match(str(slot_id or ""))
    if not m:
        return None
    return Location(shelf=m.group(1), level=int(m.group(2)))


def location_from_path(path: str) -> Optional[Location]:
    """Derive the slot from a store path like ``.../slots/C1_L5/items/ABC``."""
    parts = str(path).split("/")
    if "slots" not in parts:
        return None
    idx = parts.index("slots")
    slot_id = parts[idx + 1] if idx + 1 < len(parts) else None
    if not slot_id:
        return None
    return location_from_slot_id(slot_id)
