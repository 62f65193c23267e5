"""Messages pushed over the realtime channel."""
from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, Field

from eventhub.schemas.event import EventOut
from eventhub.schemas.user import UserSummary


class EventUpdatedMessage(BaseModel):
    type: Literal["eventUpdated"] = "eventUpdated"
    event_id: str = Field(serialization_alias="eventId")
    attendees: list[UserSummary]


class NewEventMessage(BaseModel):
    type: Literal["newEvent"] = "newEvent"
    event: EventOut


def dump_message(message: BaseModel) -> dict:
    """JSON-ready dict using the wire field names."""
    return message.model_dump(mode="json", by_alias=True)
