"""Slot store: the persistence primitives the warehouse core runs on.

Slots and their items are addressed hierarchically by (slot_id, item_key).
Every public method ends its own transaction (commit on success,
rollback on failure) and reports database failures as StoreError.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.batch import BatchOp, Delete, Increment, MergeWrite
from core.config import settings
from core.entries import StoredEntry, classify_record
from core.errors import EntryNotFound, StoreError
from core.locations import Location, safe_doc_id
from core.occupancy import OccupancyIndex
from db.slot import Slot
from db.slot_item import SlotItem

logger = structlog.get_logger(__name__)

slot_tbl = Slot.__table__
item_tbl = SlotItem.__table__


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SlotStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self, table):
        # ON CONFLICT upserts are dialect specific
        if self.session.get_bind().dialect.name == "sqlite":
            return sqlite_insert(table)
        return pg_insert(table)

    async def _run(self, statements: Iterable[Any], what: str) -> None:
        try:
            for stmt in statements:
                await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Store write failed", operation=what, error=str(e))
            raise StoreError(f"Failed to {what}: {e}") from e

    def _slot_meta_stmt(self, location: Location, updated_at: Optional[datetime] = None):
        updated_at = updated_at or _now()
        return (
            self._insert(slot_tbl)
            .values(slot_id=location.slot_id, shelf=location.shelf, level=location.level, updated_at=updated_at)
            .on_conflict_do_update(
                index_elements=[slot_tbl.c.slot_id],
                set_={"shelf": location.shelf, "level": location.level, "updated_at": updated_at},
            )
        )

    def _merge_write_stmt(self, op: MergeWrite, insert_only: Optional[Dict[str, Any]] = None):
        values: Dict[str, Any] = {"shelf": op.location.shelf, "level": op.location.level, **(insert_only or {})}
        set_: Dict[str, Any] = {}
        for name, value in op.fields.items():
            if isinstance(value, Increment):
                values[name] = value.delta
                set_[name] = item_tbl.c[name] + value.delta
            else:
                values[name] = value
                set_[name] = value
        values.update(slot_id=op.location.slot_id, item_key=safe_doc_id(op.item_key))
        stmt = self._insert(item_tbl).values(**values)
        if not set_:
            return stmt.on_conflict_do_nothing(index_elements=[item_tbl.c.slot_id, item_tbl.c.item_key])
        return stmt.on_conflict_do_update(
            index_elements=[item_tbl.c.slot_id, item_tbl.c.item_key],
            set_=set_,
        )

    @staticmethod
    def _delete_stmt(op: Delete):
        return delete(item_tbl).where(
            item_tbl.c.slot_id == op.location.slot_id,
            item_tbl.c.item_key == op.item_key,
        )

    async def upsert_slot_meta(self, location: Location, updated_at: Optional[datetime] = None) -> None:
        await self._run([self._slot_meta_stmt(location, updated_at)], f"upsert slot {location.slot_id}")

    async def read_entries_at(self, location: Location) -> List[StoredEntry]:
        q = select(item_tbl).where(item_tbl.c.slot_id == location.slot_id).order_by(item_tbl.c.item_key)
        try:
            res = await self.session.execute(q)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to read slot {location.slot_id}: {e}") from e
        return [classify_record(row._mapping, doc_id=row.item_key) for row in res]

    async def execute_batch(self, ops: List[BatchOp]) -> None:
        """Apply all ops in one transaction. Nothing is applied if any op fails."""
        statements = []
        for op in ops:
            if isinstance(op, MergeWrite):
                statements.append(self._merge_write_stmt(op))
            elif isinstance(op, Delete):
                statements.append(self._delete_stmt(op))
            else:
                raise TypeError(f"Unsupported batch op: {op!r}")
        await self._run(statements, f"commit batch of {len(ops)} writes")

    async def load_occupancy(self) -> OccupancyIndex:
        q = select(item_tbl).order_by(item_tbl.c.shelf, item_tbl.c.level, item_tbl.c.item_key)
        try:
            res = await self.session.execute(q)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to load occupancy: {e}") from e
        return OccupancyIndex.from_records(classify_record(row._mapping, doc_id=row.item_key) for row in res)

    async def add_stock(self, location: Location, item_key: str, quantity: int, item_type: Optional[str] = None) -> int:
        """Add ``quantity`` of an item to a slot, creating slot and entry as needed. Returns the new quantity."""
        if quantity <= 0:
            raise ValueError("quantity must be > 0")
        key = safe_doc_id(item_key)
        if not key:
            raise ValueError("item key is required")

        now = _now()
        write = self._merge_write_stmt(
            MergeWrite(
                location,
                key,
                {"quantity": Increment(quantity), "updated_at": now, "last_destination": location.slot_id},
            ),
            # item_type and timestamp only on first insert
            insert_only={"item_type": item_type or settings.default_item_type, "timestamp": now},
        ).returning(item_tbl.c.quantity)
        try:
            await self.session.execute(self._slot_meta_stmt(location, now))
            row = (await self.session.execute(write)).first()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to add stock at {location.slot_id}: {e}") from e

        new_qty = int(row.quantity) if row else quantity
        logger.info("Stock added", slot=location.slot_id, item_key=key, quantity=quantity, new_quantity=new_qty)
        return new_qty

    async def remove_stock(self, location: Location, item_key: str, quantity: int) -> int:
        """Take ``quantity`` away; the entry is deleted once it reaches zero. Returns what is left."""
        if quantity <= 0:
            raise ValueError("quantity must be > 0")
        key = safe_doc_id(item_key)

        dec = (
            update(item_tbl)
            .where(item_tbl.c.slot_id == location.slot_id, item_tbl.c.item_key == key)
            .values(
                quantity=item_tbl.c.quantity - quantity,
                updated_at=_now(),
                last_source=location.slot_id,
            )
            .returning(item_tbl.c.quantity)
        )
        try:
            row = (await self.session.execute(dec)).first()
            if row is None:
                await self.session.rollback()
                raise EntryNotFound(location.slot_id, key)
            remaining = int(row.quantity)
            if remaining <= 0:
                await self.session.execute(self._delete_stmt(Delete(location, key)))
                remaining = 0
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreError(f"Failed to remove stock at {location.slot_id}: {e}") from e

        logger.info("Stock removed", slot=location.slot_id, item_key=key, quantity=quantity, remaining=remaining)
        return remaining
