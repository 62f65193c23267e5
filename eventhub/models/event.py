"""Event ORM model."""
import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventhub.database import Base


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (Index("ix_events_date", "date"),)

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    creator_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    creator = relationship("User", lazy="joined")
    attendees = relationship(
        "EventAttendee",
        back_populates="event",
        order_by="EventAttendee.joined_at",
        lazy="selectin",
    )
