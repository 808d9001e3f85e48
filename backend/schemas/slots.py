from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator


ResolveRole = Literal["source", "target"]


def _strip_code(v: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError("location code is required")
    return v


class LocationOut(BaseModel):
    shelf: str
    level: int
    slot_id: str


class ResolveRequest(BaseModel):
    text: str
    role: ResolveRole = "source"

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        return _strip_code(v)


class StockChange(BaseModel):
    location: str
    item_key: str
    quantity: int
    item_type: Optional[str] = None

    @field_validator("location")
    @classmethod
    def _location(cls, v: str) -> str:
        return _strip_code(v)

    @field_validator("item_key")
    @classmethod
    def _item_key(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("item_key is required")
        return v

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @field_validator("item_type")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class StockChangeOut(BaseModel):
    location: LocationOut
    item_key: str
    quantity: int


class RelocationCreate(BaseModel):
    source: str
    target: str

    @field_validator("source", "target")
    @classmethod
    def _codes(cls, v: str) -> str:
        return _strip_code(v)


class RelocationOut(BaseModel):
    source: LocationOut
    target: LocationOut
    moved_types: int
    discarded: int
    chunks_committed: int
    message: str


class SlotEntryOut(BaseModel):
    item_key: str
    quantity: int
    item_type: Optional[str] = None
    timestamp: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_source: Optional[str] = None
    last_destination: Optional[str] = None


class SlotOut(BaseModel):
    location: LocationOut
    entries: List[SlotEntryOut]
    corrupt: int = 0


class LevelSummary(BaseModel):
    level: int
    slot_id: str
    entry_count: int
    total_quantity: int


class ShelfSummary(BaseModel):
    shelf: str
    levels: List[LevelSummary]


class GridOut(BaseModel):
    shelves: List[ShelfSummary]
    occupied_slots: int
    corrupt_entries: int
