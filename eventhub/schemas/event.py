"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from eventhub.schemas.user import UserSummary


class EventCreate(BaseModel):
    # Presence of title/date/category is checked by the attendance service so
    # that a missing field is reported as a domain ValidationError.
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    category: Optional[str] = None


class EventOut(BaseModel):
    id: str = Field(validation_alias="event_id")
    title: str
    description: Optional[str] = None
    date: datetime
    category: str
    creator: UserSummary
    attendees: list[UserSummary] = []
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}

    @classmethod
    def from_event(cls, event) -> "EventOut":
        """Resolve creator and attendee rows into display identities."""
        return cls(
            event_id=event.event_id,
            title=event.title,
            description=event.description,
            date=event.date,
            category=event.category,
            creator=UserSummary.model_validate(event.creator),
            attendees=[UserSummary.model_validate(a.user) for a in event.attendees],
            created_at=event.created_at,
        )
