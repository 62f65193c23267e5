"""EventAttendee ORM model: one row per (user, event) membership.

``user_id`` is the primary key, so a user can appear in at most one
attendee set across the whole events table.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from eventhub.database import Base


def _now():
    return datetime.now(timezone.utc)


class EventAttendee(Base):
    __tablename__ = "event_attendees"

    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    event = relationship("Event", back_populates="attendees")
    user = relationship("User", lazy="joined")
