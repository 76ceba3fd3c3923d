"""Credential validator — redeems a scanned QR payload for attendance.

Stages, each short-circuiting:

    decode -> required fields -> signature -> event match -> lookup
    -> cancelled -> expiry -> already attended -> commit

The status read in the "already attended" stage only labels the common case.
Single use is enforced at commit by the registered -> attended
compare-and-set; a scan that loses that race is reported as a duplicate.

Every call writes exactly one scan ledger entry, whatever the outcome.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventpass.exceptions import MalformedPayload, RegistrationNotFound, StorageUnavailable
from eventpass.models.registration import Registration, RegistrationStatus
from eventpass.models.scan_log import ScanLog, ScanOutcome
from eventpass.schemas.credential import CredentialPayload
from eventpass.schemas.scan import ScanLogOut, ValidationResult
from eventpass.services import registration_store, scan_ledger
from eventpass.services.credential_codec import CredentialCodec
from eventpass.timeutil import as_utc, parse_iso, utcnow

logger = logging.getLogger(__name__)

REASON_BAD_SIGNATURE = "bad signature"
REASON_WRONG_EVENT = "wrong event"
REASON_NOT_FOUND = "registration not found"
REASON_CANCELLED = "cancelled"
REASON_EXPIRED = "expired"
REASON_DUPLICATE = "already attended"

NOTE_VALID = "Valid scan - marked as attended"
NOTE_RACE_LOST = "Concurrent scan already marked attendance"
NOTE_STORAGE_ERROR = "Validation aborted: storage error"


def _expires_at(registration: Registration, payload: CredentialPayload) -> Optional[datetime]:
    """Expiry from the stored credential; the presented copy is unsigned in that field."""
    raw = (registration.credential or {}).get("expires_at") or payload.expires_at
    return parse_iso(raw) if raw else None


def _result(
    outcome: ScanOutcome,
    entry: ScanLog,
    reason: Optional[str] = None,
    payload: Optional[CredentialPayload] = None,
    registration: Optional[Registration] = None,
) -> ValidationResult:
    # Display fields are unsigned: once matched, show what was issued.
    if registration is not None:
        display = registration.credential or {}
    elif payload is not None:
        display = {"student_name": payload.student_name, "event_title": payload.event_title}
    else:
        display = {}
    return ValidationResult(
        valid=outcome == ScanOutcome.valid,
        outcome=outcome.value,
        reason=reason,
        registration_id=payload.registration_id if payload else None,
        student_id=payload.student_id if payload else None,
        event_id=payload.event_id if payload else None,
        student_name=display.get("student_name"),
        event_title=display.get("event_title"),
        status=registration.status.value if registration is not None else None,
        scan_log=ScanLogOut.model_validate(entry),
    )


def validate(
    db: Session,
    codec: CredentialCodec,
    raw_payload: str,
    expected_event_id: Optional[str] = None,
    scanned_by: Optional[str] = None,
    location: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Run one redemption attempt and audit it."""
    now = as_utc(now) if now else utcnow()

    def reject(outcome, reason, payload=None, registration=None, notes=None):
        entry = scan_ledger.new_entry(
            outcome, now, payload=payload, scanned_by=scanned_by, location=location, notes=notes or reason,
        )
        if registration is not None:
            registration_store.append_scan_record(db, registration.registration_id, entry)
        else:
            scan_ledger.append_entry(db, entry)
        db.commit()
        if registration is not None:
            db.refresh(registration)
        return _result(outcome, entry, reason=reason, payload=payload, registration=registration)

    payload = None
    try:
        try:
            payload = codec.decode(raw_payload)
        except MalformedPayload as exc:
            return reject(ScanOutcome.invalid, exc.reason)

        if not codec.verify(payload):
            logger.warning(
                "Signature mismatch for registration %s (event %s, scanner %s)",
                payload.registration_id, payload.event_id, scanned_by or scan_ledger.DEFAULT_SCANNED_BY,
            )
            return reject(ScanOutcome.invalid, REASON_BAD_SIGNATURE, payload)

        if expected_event_id and payload.event_id != expected_event_id:
            return reject(
                ScanOutcome.invalid, REASON_WRONG_EVENT, payload,
                notes=f"Credential for event {payload.event_id} presented at event {expected_event_id}",
            )

        try:
            registration = registration_store.find(
                db, payload.registration_id, payload.student_id, payload.event_id,
            )
        except RegistrationNotFound:
            return reject(ScanOutcome.invalid, REASON_NOT_FOUND, payload)

        if registration.status == RegistrationStatus.cancelled:
            return reject(ScanOutcome.invalid, REASON_CANCELLED, payload, registration)

        expires_at = _expires_at(registration, payload)
        if expires_at is not None and now > expires_at:
            return reject(ScanOutcome.expired, REASON_EXPIRED, payload, registration)

        if registration.status == RegistrationStatus.attended:
            return reject(ScanOutcome.duplicate, REASON_DUPLICATE, payload, registration)

        committed = registration_store.transition(
            db,
            registration.registration_id,
            RegistrationStatus.registered,
            RegistrationStatus.attended,
            at=now,
        )
        if not committed:
            return reject(ScanOutcome.duplicate, REASON_DUPLICATE, payload, registration, notes=NOTE_RACE_LOST)

        entry = scan_ledger.new_entry(
            ScanOutcome.valid, now, payload=payload, scanned_by=scanned_by, location=location, notes=NOTE_VALID,
        )
        registration_store.append_scan_record(db, registration.registration_id, entry)
        db.commit()
        db.refresh(registration)
        logger.info("Attendance marked for registration %s", registration.registration_id)
        return _result(ScanOutcome.valid, entry, payload=payload, registration=registration)

    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage error while validating a credential: %s", exc)
        _audit_failure(db, now, payload, scanned_by, location)
        raise StorageUnavailable() from exc


def _audit_failure(db, now, payload, scanned_by, location) -> None:
    """Best-effort ledger entry for a validation the storage layer aborted."""
    entry = scan_ledger.new_entry(
        ScanOutcome.invalid, now, payload=payload, scanned_by=scanned_by, location=location,
        notes=NOTE_STORAGE_ERROR,
    )
    try:
        scan_ledger.append_entry(db, entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not audit aborted validation (registration %s)",
                         payload.registration_id if payload else None)
