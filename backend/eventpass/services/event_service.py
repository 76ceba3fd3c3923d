"""Event service — the event repository surface the credential engine reads.

Times are normalized to UTC before they are stored; the capacity
coordinator compares the deadline inside SQL and relies on that.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from eventpass.models.event import Event
from eventpass.timeutil import as_utc

logger = logging.getLogger(__name__)


def create_event(
    db: Session,
    title: str,
    date: datetime,
    registration_deadline: datetime,
    max_participants: int,
    venue: Optional[str] = None,
) -> Event:
    """Create an event with an empty participant counter."""
    date = as_utc(date)
    registration_deadline = as_utc(registration_deadline)

    if max_participants < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="max_participants must be positive")
    if registration_deadline > date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Registration deadline must not be after the event date",
        )

    event = Event(
        title=title,
        venue=venue,
        date=date,
        registration_deadline=registration_deadline,
        max_participants=max_participants,
        current_participants=0,
        version=1,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) with %d places", title, event.event_id, max_participants)
    return event


def get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event
