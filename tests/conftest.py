import asyncio
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

# Must be set before core.config is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from core.batch import Delete, Increment, MergeWrite  # noqa: E402
from core.entries import InventoryEntry, classify_record  # noqa: E402
from core.errors import StoreError  # noqa: E402
from core.locations import Location  # noqa: E402


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))
        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


def run(coro):
    return asyncio.run(coro)


def entry(shelf: str, level: int, item_key: str, quantity: int = 1, **kwargs) -> InventoryEntry:
    return InventoryEntry(location=Location(shelf, level), item_key=item_key, quantity=quantity, **kwargs)


class InMemorySlotStore:
    """Slot store kept in dicts. Batches apply all-or-nothing, like the real store.

    ``fail_on_batch`` makes the n-th batch (1-based) raise StoreError.
    ``before_batch`` runs before each batch is applied, to simulate other writers.
    """

    def __init__(self):
        self.slots: Dict[str, Dict[str, Any]] = {}
        self.items: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.batches_attempted = 0
        self.batches_committed = 0
        self.batch_sizes: List[int] = []
        self.fail_on_batch: Optional[int] = None
        self.before_batch: Optional[Callable[["InMemorySlotStore"], None]] = None

    def put(self, location: Location, item_key: str, quantity: Any, **fields) -> None:
        self.slots.setdefault(location.slot_id, {"shelf": location.shelf, "level": location.level})
        self.items[(location.slot_id, item_key)] = {
            "shelf": location.shelf,
            "level": location.level,
            "item_key": item_key,
            "quantity": quantity,
            **fields,
        }

    def add_stock(self, location: Location, item_key: str, quantity: int) -> None:
        self.slots.setdefault(location.slot_id, {"shelf": location.shelf, "level": location.level})
        self._apply(self.items, MergeWrite(location, item_key, {"quantity": Increment(quantity)}))

    def quantities_at(self, location: Location) -> Dict[str, Any]:
        return {key: rec["quantity"] for (slot_id, key), rec in self.items.items() if slot_id == location.slot_id}

    def total_at(self, location: Location) -> int:
        return sum(self.quantities_at(location).values())

    @staticmethod
    def _apply(items, op) -> None:
        key = (op.location.slot_id, op.item_key)
        if isinstance(op, Delete):
            items.pop(key, None)
            return
        rec = items.setdefault(
            key,
            {"shelf": op.location.shelf, "level": op.location.level, "item_key": op.item_key},
        )
        for name, value in op.fields.items():
            rec[name] = value.apply(rec.get(name)) if isinstance(value, Increment) else value

    async def read_entries_at(self, location: Location):
        keys = sorted(k for k in self.items if k[0] == location.slot_id)
        return [classify_record(self.items[k], doc_id=k[1]) for k in keys]

    async def upsert_slot_meta(self, location: Location, updated_at=None) -> None:
        meta = self.slots.setdefault(location.slot_id, {})
        meta.update(shelf=location.shelf, level=location.level, updated_at=updated_at)

    async def execute_batch(self, ops) -> None:
        self.batches_attempted += 1
        if self.before_batch is not None:
            self.before_batch(self)
        if self.fail_on_batch == self.batches_attempted:
            raise StoreError("store unavailable")
        staged = {k: dict(v) for k, v in self.items.items()}
        for op in ops:
            self._apply(staged, op)
        self.items = staged
        self.batches_committed += 1
        self.batch_sizes.append(len(ops))


@pytest.fixture()
def store():
    return InMemorySlotStore()


@pytest.fixture()
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'warehouse.db'}"
