from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class SlotItem(Base):
    """Quantity of one item type at one slot. Rows with quantity <= 0 are deleted, not kept."""
    __tablename__ = "slot_items"

    slot_id = Column(String, ForeignKey("slots.slot_id", ondelete="CASCADE"), primary_key=True)
    item_key = Column(String, primary_key=True)

    # denormalized from slot_id for the occupancy feed
    shelf = Column(Text, nullable=False, index=True)
    level = Column(Integer, nullable=False)

    item_type = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)

    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_source = Column(Text, nullable=True)
    last_destination = Column(Text, nullable=True)
