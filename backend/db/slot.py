from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class Slot(Base):
    """Metadata record for one shelf slot. Created the first time the slot receives stock."""
    __tablename__ = "slots"

    slot_id = Column(String, primary_key=True)  # e.g. 'C7_L3'
    shelf = Column(Text, nullable=False, index=True)
    level = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
