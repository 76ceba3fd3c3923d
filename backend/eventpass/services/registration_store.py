"""Registration store — registration records and their lifecycle state.

Store operations run inside the caller's unit of work: they flush but never
commit. The issuer, validator and cancellation paths own the transaction.

Status changes go exclusively through ``transition``, a single conditional
UPDATE, so two concurrent callers can never both move a registration out of
the same state.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventpass.exceptions import DuplicateRegistration, RegistrationNotFound
from eventpass.models.registration import Registration, RegistrationStatus
from eventpass.models.scan_log import ScanLog
from eventpass.schemas.credential import CredentialPayload
from eventpass.services import scan_ledger
from eventpass.timeutil import utcnow

logger = logging.getLogger(__name__)

# Timestamp column stamped when a registration enters the given status.
_STATUS_TIMESTAMPS = {
    RegistrationStatus.attended: "attended_at",
    RegistrationStatus.cancelled: "cancelled_at",
}


def find_active(db: Session, student_id: str, event_id: str) -> Optional[Registration]:
    """The student's non-cancelled registration for the event, if any."""
    return (
        db.query(Registration)
        .filter(
            Registration.student_id == student_id,
            Registration.event_id == event_id,
            Registration.status != RegistrationStatus.cancelled,
        )
        .first()
    )


def create(db: Session, student_id: str, event_id: str, payload: CredentialPayload) -> Registration:
    """Insert a registration carrying its signed credential.

    Raises DuplicateRegistration if the student already holds a non-cancelled
    registration for the event, including when a concurrent insert wins the
    unique index.
    """
    if find_active(db, student_id, event_id) is not None:
        raise DuplicateRegistration()

    registration = Registration(
        registration_id=payload.registration_id,
        student_id=student_id,
        event_id=event_id,
        status=RegistrationStatus.registered,
        credential=payload.model_dump(exclude_none=True),
        registered_at=utcnow(),
    )
    db.add(registration)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Concurrent registration for student %s / event %s lost the unique index", student_id, event_id)
        raise DuplicateRegistration() from exc
    return registration


def get(db: Session, registration_id: str) -> Registration:
    registration = db.get(Registration, registration_id)
    if registration is None:
        raise RegistrationNotFound()
    return registration


def find(db: Session, registration_id: str, student_id: str, event_id: str) -> Registration:
    """Exact (registration, student, event) match; a substituted field is a miss."""
    registration = (
        db.query(Registration)
        .filter(
            Registration.registration_id == registration_id,
            Registration.student_id == student_id,
            Registration.event_id == event_id,
        )
        .populate_existing()
        .first()
    )
    if registration is None:
        raise RegistrationNotFound()
    return registration


def get_status(db: Session, registration_id: str) -> RegistrationStatus:
    return get(db, registration_id).status


def transition(
    db: Session,
    registration_id: str,
    from_status: RegistrationStatus,
    to_status: RegistrationStatus,
    at: Optional[datetime] = None,
) -> bool:
    """Compare-and-set the status. Returns False, not an error, when the current status differs."""
    values = {Registration.status: to_status}
    stamp = _STATUS_TIMESTAMPS.get(to_status)
    if stamp:
        values[getattr(Registration, stamp)] = at or utcnow()

    updated = (
        db.query(Registration)
        .filter(
            Registration.registration_id == registration_id,
            Registration.status == from_status,
        )
        .update(values, synchronize_session=False)
    )
    if updated:
        logger.info("Registration %s: %s -> %s", registration_id, from_status.value, to_status.value)
    return updated == 1


def append_scan_record(db: Session, registration_id: str, entry: ScanLog) -> ScanLog:
    """Record ``entry`` in the ledger and in the registration's scan history.

    Both views are the same row, so they cannot diverge. Idempotent on
    ``entry.scan_id``.
    """
    entry.matched_registration_id = registration_id
    return scan_ledger.append_entry(db, entry)


def scan_history(db: Session, registration_id: str) -> list[ScanLog]:
    get(db, registration_id)
    return (
        db.query(ScanLog)
        .filter(ScanLog.matched_registration_id == registration_id)
        .order_by(ScanLog.scanned_at)
        .all()
    )


def list_registrations(
    db: Session,
    student_id: Optional[str] = None,
    event_id: Optional[str] = None,
    status: Optional[RegistrationStatus] = None,
) -> list[Registration]:
    query = db.query(Registration)
    if student_id:
        query = query.filter(Registration.student_id == student_id)
    if event_id:
        query = query.filter(Registration.event_id == event_id)
    if status:
        query = query.filter(Registration.status == status)
    return query.order_by(Registration.registered_at).all()
