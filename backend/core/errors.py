"""Warehouse error taxonomy.

Parse and resolution errors are raised before any write and are safe to
retry with corrected input. A StoreError raised during a relocation may
leave earlier chunks applied.
"""

from typing import Optional


class WarehouseError(Exception):
    message = "Warehouse operation failed"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidLocationText(WarehouseError):
    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid location code: {text!r} (expected e.g. C1, C1-L5)")


class InvalidRequest(WarehouseError):
    message = "Source and target are identical"


class EmptySource(WarehouseError):
    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Nothing to move: no stock at {slot_id}")


class NoStockAtShelf(WarehouseError):
    def __init__(self, shelf: str):
        self.shelf = shelf
        super().__init__(f"No stock at shelf {shelf}")


class TargetFull(WarehouseError):
    def __init__(self, shelf: str):
        self.shelf = shelf
        super().__init__(f"Shelf {shelf} is full: no empty level")


class EntryNotFound(WarehouseError):
    def __init__(self, slot_id: str, item_key: str):
        self.slot_id = slot_id
        self.item_key = item_key
        super().__init__(f"Item {item_key!r} not found at {slot_id}")


class StoreError(WarehouseError):
    message = "Inventory store unavailable"


class RelocationFailed(StoreError):
    """A chunk failed to commit; chunks before it remain applied."""

    def __init__(self, source_slot: str, target_slot: str, chunks_committed: int, chunk_count: int, cause: Exception):
        self.source_slot = source_slot
        self.target_slot = target_slot
        self.chunks_committed = chunks_committed
        self.chunk_count = chunk_count
        self.cause = cause
        super().__init__(
            f"Relocation {source_slot} -> {target_slot} stopped after "
            f"{chunks_committed}/{chunk_count} batches: {cause}. "
            "Re-check both slots before retrying."
        )

    @property
    def partial(self) -> bool:
        return self.chunks_committed > 0


class LocationOutsideGrid(WarehouseError):
    def __init__(self, shelf: str, level=None):
        self.shelf = shelf
        self.level = level
        where = shelf if level is None else f"{shelf}-L{level}"
        super().__init__(f"{where} is not on the shelf grid")
