"""Credential issuer — eligibility → capacity reservation → signed registration.

Responsibilities:
- Refuse a second active registration for the same (student, event)
- Reserve a slot through the capacity coordinator before writing anything
- Mint a 128-bit registration id and sign one canonical payload shape
- Release the reserved slot if the registration cannot be persisted
- Batch issuance with per-event outcomes
- Unregistration (registered -> cancelled, slot released)

Business rejections come back as ``IssuanceResult(ok=False)``. Only storage
failures raise (``StorageUnavailable``), after compensation.
"""
import enum
import logging
import secrets
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventpass.exceptions import (
    CapacityError,
    DeadlinePassed,
    DuplicateRegistration,
    EngineError,
    EventFull,
    EventNotFound,
    RegistrationNotCancellable,
    RegistrationNotFound,
    StorageUnavailable,
)
from eventpass.models.event import Event
from eventpass.models.registration import TERMINAL_STATUSES, Registration, RegistrationStatus
from eventpass.models.user import User
from eventpass.schemas.credential import CredentialPayload
from eventpass.schemas.registration import BatchIssuanceResult, IssuanceResult, IssuedCredential
from eventpass.services import capacity_service, registration_store
from eventpass.services.credential_codec import CredentialCodec
from eventpass.timeutil import as_utc, to_iso, utcnow

logger = logging.getLogger(__name__)

REGISTRATION_ID_BYTES = 16  # 128 bits


class IssuanceFailure(str, enum.Enum):
    already_registered = "already_registered"
    student_not_found = "student_not_found"
    event_not_found = "event_not_found"
    event_full = "event_full"
    deadline_passed = "deadline_passed"
    storage_unavailable = "storage_unavailable"


STUDENT_NOT_FOUND_REASON = "User not found"

_CAPACITY_FAILURES = {
    EventFull: IssuanceFailure.event_full,
    DeadlinePassed: IssuanceFailure.deadline_passed,
    EventNotFound: IssuanceFailure.event_not_found,
}


def new_registration_id() -> str:
    return secrets.token_hex(REGISTRATION_ID_BYTES)


def _rejected(event_id: str, failure: IssuanceFailure, reason: str) -> IssuanceResult:
    logger.info("Issuance for event %s rejected: %s", event_id, failure.value)
    return IssuanceResult(event_id=event_id, ok=False, failure=failure.value, reason=reason)


def build_payload(
    registration_id: str,
    student: User,
    event: Event,
    issued_at: datetime,
) -> CredentialPayload:
    """The unsigned payload. Every issuance path uses this one shape."""
    return CredentialPayload(
        registration_id=registration_id,
        student_id=student.user_id,
        event_id=event.event_id,
        issued_at=to_iso(issued_at),
        expires_at=to_iso(event.date),
        event_title=event.title,
        student_name=student.display_name,
    )


def issue(
    db: Session,
    codec: CredentialCodec,
    student_id: str,
    event_id: str,
    now: Optional[datetime] = None,
) -> IssuanceResult:
    """Register ``student_id`` for ``event_id`` and return the signed credential."""
    now = as_utc(now) if now else utcnow()

    try:
        if registration_store.find_active(db, student_id, event_id) is not None:
            return _rejected(event_id, IssuanceFailure.already_registered, DuplicateRegistration.reason)

        student = db.get(User, student_id)
        if student is None:
            return _rejected(event_id, IssuanceFailure.student_not_found, STUDENT_NOT_FOUND_REASON)

        token = capacity_service.reserve(db, event_id, now=now)
    except CapacityError as exc:
        return _rejected(event_id, _CAPACITY_FAILURES[type(exc)], exc.reason)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage error before reserving a slot for event %s: %s", event_id, exc)
        raise StorageUnavailable() from exc

    # A slot is held from here on; any failure must give it back.
    try:
        event = capacity_service.snapshot(db, event_id)
        payload = codec.sign(build_payload(new_registration_id(), student, event, now))
        registration_store.create(db, student_id, event_id, payload)
        db.commit()
    except DuplicateRegistration:
        _compensate(db, token)
        return _rejected(event_id, IssuanceFailure.already_registered, DuplicateRegistration.reason)
    except (SQLAlchemyError, EngineError) as exc:
        _compensate(db, token)
        logger.error("Could not persist registration for event %s: %s", event_id, exc)
        raise StorageUnavailable() from exc

    logger.info(
        "Issued credential %s to student %s for event %s",
        payload.registration_id, student_id, event_id,
    )
    return IssuanceResult(
        event_id=event_id,
        ok=True,
        credential=IssuedCredential(
            registration_id=payload.registration_id,
            payload=payload,
            qr_data=codec.serialize(payload),
        ),
    )


def _compensate(db: Session, token: capacity_service.ReservationToken) -> None:
    """Give back a reserved slot after a failed insert."""
    db.rollback()
    try:
        capacity_service.release(db, token.event_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Could not release reservation %s for event %s; counter needs reconciliation",
            token.reservation_id, token.event_id,
        )
        raise StorageUnavailable() from exc


def issue_batch(
    db: Session,
    codec: CredentialCodec,
    student_id: str,
    event_ids: Iterable[str],
    now: Optional[datetime] = None,
) -> BatchIssuanceResult:
    """Apply ``issue`` to each event independently; partial success is normal."""
    results = []
    for event_id in event_ids:
        try:
            results.append(issue(db, codec, student_id, event_id, now=now))
        except StorageUnavailable as exc:
            results.append(_rejected(event_id, IssuanceFailure.storage_unavailable, exc.reason))

    succeeded = sum(1 for r in results if r.ok)
    logger.info("Batch issuance for student %s: %d/%d succeeded", student_id, succeeded, len(results))
    return BatchIssuanceResult(
        student_id=student_id,
        total_events=len(results),
        successful_registrations=succeeded,
        failed_registrations=[r for r in results if not r.ok],
        results=results,
    )


def unregister(db: Session, student_id: str, event_id: str, now: Optional[datetime] = None) -> Registration:
    """Cancel the student's active registration and return its slot.

    The status change and the slot release commit as one transaction.

    Raises RegistrationNotFound when there is nothing to cancel,
    RegistrationNotCancellable once the credential has been redeemed and
    StorageUnavailable when the transaction fails (nothing is changed).
    """
    registration = registration_store.find_active(db, student_id, event_id)
    if registration is None:
        raise RegistrationNotFound()
    if registration.status in TERMINAL_STATUSES:
        raise RegistrationNotCancellable()

    try:
        cancelled = registration_store.transition(
            db,
            registration.registration_id,
            RegistrationStatus.registered,
            RegistrationStatus.cancelled,
            at=as_utc(now) if now else None,
        )
        if not cancelled:
            db.rollback()
            raise RegistrationNotCancellable()
        capacity_service.release(db, event_id, commit=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Could not unregister student %s from event %s: %s", student_id, event_id, exc)
        raise StorageUnavailable() from exc

    db.refresh(registration)
    logger.info("Student %s unregistered from event %s (%s)", student_id, event_id, registration.registration_id)
    return registration
