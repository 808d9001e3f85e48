"""Whole-slot relocation.

Moves every entry at one slot to another slot in sequential, chunked
batches. The target quantity is always written as an increment so stock
added to the target by other writers in the meantime is kept.

The operation is not atomic as a whole: each chunk commits on its own,
and a failed chunk stops the run with earlier chunks applied. The error
says how many chunks made it. A retry after full success finds the
source empty and fails with EmptySource.

``store`` is any object providing the slot store primitives:
``read_entries_at``, ``upsert_slot_meta`` and ``execute_batch``
(see ``db.store.SlotStore``).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import structlog

from core.batch import BatchOp, Delete, Increment, MergeWrite
from core.config import settings
from core.entries import CorruptEntry, InventoryEntry, StoredEntry
from core.errors import EmptySource, InvalidRequest, RelocationFailed, StoreError
from core.locations import Location
from core.occupancy import OccupancyIndex
from core.resolver import resolve_source, resolve_target

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RelocationResult:
    source: Location
    target: Location
    moved_types: int
    discarded: int
    chunks_committed: int

    @property
    def message(self) -> str:
        if self.moved_types == 0:
            return (
                f"Nothing moved from {self.source.slot_id}: "
                f"removed {self.discarded} invalid entries, {self.target.slot_id} unchanged"
            )
        text = f"Moved {self.moved_types} item types from {self.source.slot_id} to {self.target.slot_id}"
        if self.discarded:
            text += f" ({self.discarded} invalid entries removed)"
        return text


def chunked(items: Sequence[StoredEntry], size: int) -> List[Sequence[StoredEntry]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


def build_chunk_ops(
    chunk: Sequence[StoredEntry],
    source: Location,
    target: Location,
    now: datetime,
    default_item_type: str,
) -> List[BatchOp]:
    ops: List[BatchOp] = []
    for entry in chunk:
        if isinstance(entry, CorruptEntry):
            ops.append(Delete(source, entry.doc_id))
            continue

        ops.append(
            MergeWrite(
                target,
                entry.item_key,
                {
                    "shelf": target.shelf,
                    "level": target.level,
                    "item_type": entry.item_type or default_item_type,
                    "quantity": Increment(entry.quantity),
                    "updated_at": now,
                    "timestamp": entry.timestamp or now,
                    "last_source": source.slot_id,
                    "last_destination": target.slot_id,
                },
            )
        )
        ops.append(Delete(source, entry.stored_key))
    return ops


async def relocate_slot(
    store,
    source: Location,
    target: Location,
    chunk_size: Optional[int] = None,
    default_item_type: Optional[str] = None,
) -> RelocationResult:
    if source == target:
        raise InvalidRequest()

    chunk_size = chunk_size or settings.relocation_chunk_size
    default_item_type = default_item_type or settings.default_item_type

    entries = list(await store.read_entries_at(source))
    if not entries:
        raise EmptySource(source.slot_id)

    now = datetime.now(timezone.utc)
    await store.upsert_slot_meta(target, updated_at=now)

    chunks = chunked(entries, chunk_size)
    logger.info(
        "Relocating slot",
        source=source.slot_id,
        target=target.slot_id,
        entries=len(entries),
        chunks=len(chunks),
    )

    moved = 0
    discarded = 0
    for idx, chunk in enumerate(chunks):
        ops = build_chunk_ops(chunk, source, target, now, default_item_type)
        try:
            await store.execute_batch(ops)
        except StoreError as e:
            logger.error(
                "Relocation batch failed",
                source=source.slot_id,
                target=target.slot_id,
                chunks_committed=idx,
                chunk_count=len(chunks),
                exc_info=True,
            )
            raise RelocationFailed(source.slot_id, target.slot_id, idx, len(chunks), e) from e

        bad = [e for e in chunk if isinstance(e, CorruptEntry)]
        for c in bad:
            logger.warning("Discarded corrupt entry", slot=source.slot_id, doc_id=c.doc_id, reason=c.reason)
        discarded += len(bad)
        moved += sum(1 for e in chunk if isinstance(e, InventoryEntry))
        logger.debug("Relocation batch committed", chunk=idx + 1, chunk_count=len(chunks))

    if moved == 0:
        logger.warning("Relocation moved no stock", source=source.slot_id, discarded=discarded)
    logger.info(
        "Slot relocated",
        source=source.slot_id,
        target=target.slot_id,
        moved_types=moved,
        discarded=discarded,
    )
    return RelocationResult(
        source=source,
        target=target,
        moved_types=moved,
        discarded=discarded,
        chunks_committed=len(chunks),
    )


async def relocate_by_text(
    store,
    occupancy: OccupancyIndex,
    source_text: str,
    target_text: str,
    levels_top_down: Optional[Sequence[int]] = None,
    chunk_size: Optional[int] = None,
) -> RelocationResult:
    """Scan flow: resolve both codes against the snapshot, then relocate."""
    levels = levels_top_down or settings.levels_top_down
    source = resolve_source(source_text, occupancy, levels, settings.shelf_count)
    target = resolve_target(target_text, occupancy, levels, settings.shelf_count)
    return await relocate_slot(store, source, target, chunk_size=chunk_size)
