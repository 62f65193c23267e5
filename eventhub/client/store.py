"""Client-side mirror of the event list, reconciled from server pushes.

``joined_event_id`` only changes through the explicit join/leave flow. It is
never inferred from pushed attendee lists, so a join made from another
browser context leaves it untouched until the events are re-fetched and the
user joins or leaves here.
"""
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class EventStore:
    """Local state for one client session."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []
        self.joined_event_id: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None

    def find(self, event_id: str) -> Optional[dict[str, Any]]:
        for event in self.events:
            if event.get("id") == event_id:
                return event
        return None

    def replace_events(self, events: list[dict[str, Any]]) -> None:
        """Adopt a full re-fetch; the only way to catch up on missed pushes."""
        self.events = list(events)

    def upsert_event(self, event: dict[str, Any]) -> None:
        """Replace the event with the same id, or append it."""
        for index, existing in enumerate(self.events):
            if existing.get("id") == event.get("id"):
                self.events[index] = event
                return
        self.events.append(event)

    def update_event_attendees(self, event_id: str, attendees: list[dict[str, Any]]) -> None:
        """Replace the attendee list wholesale; the latest push wins."""
        event = self.find(event_id)
        if event is None:
            logger.debug("Attendee update for unknown event %s ignored", event_id)
            return
        event["attendees"] = list(attendees)

    def add_event(self, event: dict[str, Any]) -> None:
        # the creating client may already hold it from its own create response
        if self.find(event.get("id")) is None:
            self.events.append(event)

    def mark_joined(self, event_id: str) -> None:
        self.joined_event_id = event_id

    def mark_left(self) -> None:
        self.joined_event_id = None

    def apply(self, message: dict[str, Any]) -> None:
        """Reconcile one realtime message into local state."""
        kind = message.get("type")
        if kind == "eventUpdated":
            self.update_event_attendees(message["eventId"], message.get("attendees", []))
        elif kind == "newEvent":
            self.add_event(message["event"])
        else:
            logger.debug("Ignoring realtime message of type %r", kind)
