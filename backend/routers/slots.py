from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.entries import CorruptEntry, InventoryEntry
from core.errors import (
    EmptySource,
    EntryNotFound,
    InvalidLocationText,
    InvalidRequest,
    LocationOutsideGrid,
    NoStockAtShelf,
    RelocationFailed,
    StoreError,
    TargetFull,
    WarehouseError,
)
from core.locations import Location, parse_place_or_raise
from core.relocation import relocate_by_text
from core.resolver import ensure_in_grid, resolve_source, resolve_target
from db.database import get_async_session
from db.store import SlotStore
from schemas.slots import (
    GridOut,
    LevelSummary,
    LocationOut,
    RelocationCreate,
    RelocationOut,
    ResolveRequest,
    ShelfSummary,
    SlotEntryOut,
    SlotOut,
    StockChange,
    StockChangeOut,
)

router = APIRouter()

logger = structlog.get_logger(__name__)

_STATUS_BY_ERROR = {
    InvalidLocationText: status.HTTP_400_BAD_REQUEST,
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    LocationOutsideGrid: status.HTTP_400_BAD_REQUEST,
    NoStockAtShelf: status.HTTP_404_NOT_FOUND,
    EmptySource: status.HTTP_404_NOT_FOUND,
    EntryNotFound: status.HTTP_404_NOT_FOUND,
    TargetFull: status.HTTP_409_CONFLICT,
}


def _http_error(e: WarehouseError) -> HTTPException:
    if isinstance(e, RelocationFailed):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "message": e.message,
                "chunks_committed": e.chunks_committed,
                "chunk_count": e.chunk_count,
            },
        )
    if isinstance(e, StoreError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message)
    code = _STATUS_BY_ERROR.get(type(e), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=e.message)


def _location_out(loc: Location) -> LocationOut:
    return LocationOut(shelf=loc.shelf, level=loc.level, slot_id=loc.slot_id)


def _exact_location(text: str) -> Location:
    """A grid location code that names the level (C1-L5, C1_L5, c1 l5)."""
    place = parse_place_or_raise(text)
    if place.level is None:
        raise InvalidLocationText(text)
    ensure_in_grid(place.shelf, place.level, settings.levels_top_down, settings.shelf_count)
    return place.at(place.level)


async def get_slot_store(db: AsyncSession = Depends(get_async_session)) -> SlotStore:
    return SlotStore(db)


@router.get("/", response_model=GridOut)
async def get_grid(store: SlotStore = Depends(get_slot_store)):
    try:
        occupancy = await store.load_occupancy()
    except WarehouseError as e:
        raise _http_error(e)

    shelves: List[ShelfSummary] = []
    for shelf in settings.shelves:
        levels = []
        for lvl in settings.levels_top_down:
            loc = Location(shelf, lvl)
            levels.append(
                LevelSummary(
                    level=lvl,
                    slot_id=loc.slot_id,
                    entry_count=len(occupancy.entries_at(loc)),
                    total_quantity=occupancy.total_quantity(loc),
                )
            )
        shelves.append(ShelfSummary(shelf=shelf, levels=levels))

    return GridOut(shelves=shelves, occupied_slots=len(occupancy), corrupt_entries=occupancy.corrupt_count)


@router.get("/{slot_id}", response_model=SlotOut)
async def get_slot(slot_id: str, store: SlotStore = Depends(get_slot_store)):
    try:
        loc = _exact_location(slot_id)
        stored = await store.read_entries_at(loc)
    except WarehouseError as e:
        raise _http_error(e)

    entries = [
        SlotEntryOut(
            item_key=e.item_key,
            quantity=e.quantity,
            item_type=e.item_type,
            timestamp=e.timestamp,
            updated_at=e.updated_at,
            last_source=e.last_source,
            last_destination=e.last_destination,
        )
        for e in stored
        if isinstance(e, InventoryEntry)
    ]
    corrupt = sum(1 for e in stored if isinstance(e, CorruptEntry))
    return SlotOut(location=_location_out(loc), entries=entries, corrupt=corrupt)


@router.post("/resolve", response_model=LocationOut)
async def resolve_location(payload: ResolveRequest, store: SlotStore = Depends(get_slot_store)):
    """
    Resolve a scanned code to a slot.

    - source without level: topmost occupied level of the shelf.
    - target without level: bottommost empty level of the shelf.
    """
    try:
        occupancy = await store.load_occupancy()
        if payload.role == "source":
            loc = resolve_source(payload.text, occupancy, settings.levels_top_down, settings.shelf_count)
        else:
            loc = resolve_target(payload.text, occupancy, settings.levels_top_down, settings.shelf_count)
    except WarehouseError as e:
        raise _http_error(e)
    return _location_out(loc)


@router.post("/stock", response_model=StockChangeOut, status_code=status.HTTP_201_CREATED)
async def add_stock(payload: StockChange, store: SlotStore = Depends(get_slot_store)):
    try:
        loc = _exact_location(payload.location)
        qty = await store.add_stock(loc, payload.item_key, payload.quantity, payload.item_type)
    except WarehouseError as e:
        raise _http_error(e)
    return StockChangeOut(location=_location_out(loc), item_key=payload.item_key, quantity=qty)


@router.post("/stock/remove", response_model=StockChangeOut)
async def remove_stock(payload: StockChange, store: SlotStore = Depends(get_slot_store)):
    try:
        loc = _exact_location(payload.location)
        qty = await store.remove_stock(loc, payload.item_key, payload.quantity)
    except WarehouseError as e:
        raise _http_error(e)
    return StockChangeOut(location=_location_out(loc), item_key=payload.item_key, quantity=qty)


@router.post("/relocations", response_model=RelocationOut, status_code=status.HTTP_201_CREATED)
async def create_relocation(payload: RelocationCreate, store: SlotStore = Depends(get_slot_store)):
    """
    Move everything in the source slot to the target slot.

    Not atomic across batches: on 503 with chunks_committed > 0 part of the
    stock has moved. Re-read both slots before retrying.
    """
    try:
        occupancy = await store.load_occupancy()
        result = await relocate_by_text(store, occupancy, payload.source, payload.target)
    except WarehouseError as e:
        raise _http_error(e)
    except Exception as e:
        await store.session.rollback()
        logger.exception("Relocation failed unexpectedly", source=payload.source, target=payload.target)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to relocate: {e}")

    return RelocationOut(
        source=_location_out(result.source),
        target=_location_out(result.target),
        moved_types=result.moved_types,
        discarded=result.discarded,
        chunks_committed=result.chunks_committed,
        message=result.message,
    )
