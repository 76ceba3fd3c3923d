"""Capacity coordinator — claims and returns event registration slots.

The participant counter is shared by every concurrent registration request,
so it is only ever changed by one guarded UPDATE. The deadline and the cap
are part of the WHERE clause: the database evaluates check and increment
as one statement, and N concurrent reservations against K free slots
produce exactly K increments. ``reserve`` commits immediately so that a
reservation outlives a failed registration insert and can be released;
``release`` commits unless the caller owns the transaction.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from eventpass.exceptions import DeadlinePassed, EventFull, EventNotFound
from eventpass.models.event import Event
from eventpass.timeutil import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationToken:
    """Permission to create exactly one registration for ``event_id``."""

    reservation_id: str
    event_id: str
    reserved_at: datetime


def reserve(db: Session, event_id: str, now: Optional[datetime] = None) -> ReservationToken:
    """Atomically take one slot.

    Raises DeadlinePassed, EventFull or EventNotFound when no slot was taken.
    """
    now = as_utc(now) if now else utcnow()

    updated = (
        db.query(Event)
        .filter(
            Event.event_id == event_id,
            Event.registration_deadline >= now,
            Event.current_participants < Event.max_participants,
        )
        .update(
            {
                Event.current_participants: Event.current_participants + 1,
                Event.version: Event.version + 1,
            },
            synchronize_session=False,
        )
    )
    db.commit()

    if updated == 1:
        token = ReservationToken(reservation_id=uuid.uuid4().hex, event_id=event_id, reserved_at=now)
        logger.info("Reserved slot %s for event %s", token.reservation_id, event_id)
        return token

    # Nothing matched: work out which guard refused.
    event = db.query(Event).filter(Event.event_id == event_id).populate_existing().first()
    if event is None:
        raise EventNotFound()
    if now > as_utc(event.registration_deadline):
        logger.info("Reservation refused for event %s: deadline passed", event_id)
        raise DeadlinePassed()
    logger.info(
        "Reservation refused for event %s: full (%d/%d)",
        event_id, event.current_participants, event.max_participants,
    )
    raise EventFull()


def release(db: Session, event_id: str, commit: bool = True) -> bool:
    """Return one slot. Never drives the counter below zero.

    With ``commit=False`` the decrement joins the caller's transaction, so it
    lands or rolls back together with the status change that freed the slot.
    """
    updated = (
        db.query(Event)
        .filter(Event.event_id == event_id, Event.current_participants > 0)
        .update(
            {
                Event.current_participants: Event.current_participants - 1,
                Event.version: Event.version + 1,
            },
            synchronize_session=False,
        )
    )
    if commit:
        db.commit()
    if updated:
        logger.info("Released one slot for event %s", event_id)
    else:
        logger.warning("Release for event %s found no slot to return", event_id)
    return updated == 1


def snapshot(db: Session, event_id: str) -> Event:
    """Fresh read of the event's counters."""
    event = db.query(Event).filter(Event.event_id == event_id).populate_existing().first()
    if event is None:
        raise EventNotFound()
    return event
