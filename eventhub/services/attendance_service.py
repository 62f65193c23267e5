"""Attendance coordinator: event creation and single-event join/leave.

Invariant: a user attends at most one event at a time. The store enforces
it; ``event_attendees.user_id`` is a primary key, so the INSERT performed by
a join is the atomic "add to set" and a concurrent second join by the same
user fails on the constraint instead of slipping past a read-then-write check.

Every committed attendee change is followed by an ``eventUpdated`` broadcast,
every created event by ``newEvent``. Mutation, commit, post-commit snapshot and
enqueue for one event happen under a per-event lock so that broadcasts for an
event leave in commit order.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from eventhub.errors import AlreadyAttending, NotFound, StoreUnavailable, ValidationError
from eventhub.models.attendee import EventAttendee
from eventhub.models.event import Event
from eventhub.realtime.broadcaster import broadcaster
from eventhub.schemas.event import EventCreate, EventOut
from eventhub.schemas.realtime import EventUpdatedMessage, NewEventMessage, dump_message
from eventhub.schemas.user import UserSummary

logger = logging.getLogger(__name__)

REQUIRED_EVENT_FIELDS = ("title", "date", "category")


class KeyedLocks:
    """Lazily created ``threading.Lock`` per key, discarded when unused."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


_event_locks = KeyedLocks()


@contextmanager
def _store_errors(db: Session, action: str):
    """Roll back and surface store failures and timeouts as ``StoreUnavailable``."""
    try:
        yield
    except IntegrityError:
        db.rollback()
        raise
    except (PoolTimeoutError, DBAPIError) as exc:
        db.rollback()
        logger.error("Store failure during %s: %s", action, exc)
        raise StoreUnavailable() from exc


def _get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def _current_attendance(db: Session, user_id: str) -> Optional[EventAttendee]:
    return db.query(EventAttendee).filter(EventAttendee.user_id == user_id).first()


def _publish_attendees(event: Event) -> None:
    message = EventUpdatedMessage(
        event_id=event.event_id,
        attendees=[UserSummary.model_validate(a.user) for a in event.attendees],
    )
    broadcaster.publish(dump_message(message))


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def list_events(
    db: Session,
    category: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list[Event]:
    """Events sorted by date; the date range applies only when both bounds are given."""
    with _store_errors(db, "list"):
        query = db.query(Event)
        if category:
            query = query.filter(Event.category == category)
        if start_date and end_date:
            query = query.filter(Event.date >= start_date, Event.date <= end_date)
        return query.order_by(Event.date).all()


def get_event(db: Session, event_id: str) -> Event:
    with _store_errors(db, "get"):
        return _get_event_or_404(db, event_id)


def create_event(db: Session, creator_id: str, payload: EventCreate) -> Event:
    """Persist a new event with an empty attendee set and announce it."""
    missing = [name for name in REQUIRED_EVENT_FIELDS if _is_blank(getattr(payload, name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    with _store_errors(db, "create"):
        event = Event(
            title=payload.title.strip(),
            description=payload.description,
            date=payload.date,
            category=payload.category.strip(),
            creator_id=creator_id,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        resolved = EventOut.from_event(event)

    logger.info("Created event '%s' (%s) by %s", event.title, event.event_id, creator_id)
    broadcaster.publish(dump_message(NewEventMessage(event=resolved)))
    return event


def join_event(db: Session, user_id: str, event_id: str) -> Event:
    """Add ``user_id`` to the event's attendee set.

    Joining the event the user already attends is a no-op. Joining any other
    event while attending one raises ``AlreadyAttending``.
    """
    with _event_locks.hold(event_id), _store_errors(db, "join"):
        current = _current_attendance(db, user_id)
        if current is not None:
            if current.event_id == event_id:
                logger.info("User %s already attends event %s, nothing to do", user_id, event_id)
                return _get_event_or_404(db, event_id)
            logger.warning(
                "User %s tried to join %s while attending %s", user_id, event_id, current.event_id
            )
            raise AlreadyAttending()

        event = _get_event_or_404(db, event_id)
        db.add(EventAttendee(user_id=user_id, event_id=event_id))
        try:
            db.commit()
        except IntegrityError:
            # A concurrent join by the same user committed first.
            db.rollback()
            current = _current_attendance(db, user_id)
            if current is not None and current.event_id == event_id:
                return _get_event_or_404(db, event_id)
            logger.warning("User %s lost a concurrent join race for event %s", user_id, event_id)
            raise AlreadyAttending()

        db.refresh(event)
        logger.info("User %s joined event %s", user_id, event_id)
        _publish_attendees(event)
        return event


def leave_event(db: Session, user_id: str, event_id: str) -> Event:
    """Remove ``user_id`` from the event's attendee set; leaving as a non-member is a no-op."""
    with _event_locks.hold(event_id), _store_errors(db, "leave"):
        event = _get_event_or_404(db, event_id)
        removed = (
            db.query(EventAttendee)
            .filter(EventAttendee.user_id == user_id, EventAttendee.event_id == event_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        db.refresh(event)

        if not removed:
            logger.info("User %s is not attending event %s, nothing to do", user_id, event_id)
            return event

        logger.info("User %s left event %s", user_id, event_id)
        _publish_attendees(event)
        return event
