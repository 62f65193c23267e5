"""Event API routes: listing, creation and single-event attendance."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from eventhub.database import get_db
from eventhub.models.user import User
from eventhub.schemas.event import EventCreate, EventOut
from eventhub.security import get_current_user
from eventhub.services import attendance_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[EventOut])
def list_events(
    category: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    """List events sorted by date, optionally filtered by category and date range."""
    events = attendance_service.list_events(db, category=category, start_date=start_date, end_date=end_date)
    return [EventOut.from_event(e) for e in events]


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create an event owned by the caller and announce it to connected clients."""
    event = attendance_service.create_event(db, creator_id=current_user.user_id, payload=payload)
    return EventOut.from_event(event)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return EventOut.from_event(attendance_service.get_event(db, event_id))


@router.post("/{event_id}/join", response_model=EventOut)
def join_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join an event. Fails with 400 while the caller attends a different one."""
    event = attendance_service.join_event(db, user_id=current_user.user_id, event_id=event_id)
    return EventOut.from_event(event)


@router.post("/{event_id}/leave", response_model=EventOut)
def leave_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = attendance_service.leave_event(db, user_id=current_user.user_id, event_id=event_id)
    return EventOut.from_event(event)
