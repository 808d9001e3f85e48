"""Write operations accepted by ``SlotStore.execute_batch``.

A batch is all-or-nothing; there is no atomicity across batches.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union

from core.locations import Location


@dataclass(frozen=True)
class Increment:
    """Field value applied as a store-side atomic add."""

    delta: int

    def apply(self, current: Any) -> int:
        return int(current or 0) + self.delta


@dataclass(frozen=True)
class MergeWrite:
    """Create the entry or update only the given fields. ``Increment`` values add to the stored value."""

    location: Location
    item_key: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Delete:
    location: Location
    item_key: str


BatchOp = Union[MergeWrite, Delete]
