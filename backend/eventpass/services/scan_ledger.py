"""Scan ledger — append-only audit trail of redemption attempts."""
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from eventpass.models.scan_log import ScanLog, ScanOutcome
from eventpass.schemas.credential import CredentialPayload

logger = logging.getLogger(__name__)

DEFAULT_SCANNED_BY = "system"
DEFAULT_LOCATION = "unknown"


def new_entry(
    outcome: ScanOutcome,
    scanned_at: datetime,
    payload: Optional[CredentialPayload] = None,
    scanned_by: Optional[str] = None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
) -> ScanLog:
    """Build (but do not persist) a ledger entry for one redemption attempt."""
    return ScanLog(
        scan_id=str(uuid.uuid4()),
        registration_id=payload.registration_id if payload else None,
        event_id=payload.event_id if payload else None,
        student_id=payload.student_id if payload else None,
        scanned_at=scanned_at,
        scanned_by=scanned_by or DEFAULT_SCANNED_BY,
        location=location or DEFAULT_LOCATION,
        outcome=outcome,
        notes=notes,
    )


def append_entry(db: Session, entry: ScanLog) -> ScanLog:
    """Persist ``entry`` once. Re-appending the same scan_id returns the stored row."""
    existing = db.get(ScanLog, entry.scan_id)
    if existing is not None:
        return existing
    db.add(entry)
    db.flush()
    logger.info(
        "Scan %s: outcome=%s registration=%s by=%s at=%s",
        entry.scan_id, entry.outcome.value, entry.registration_id, entry.scanned_by, entry.location,
    )
    return entry


def list_entries(
    db: Session,
    event_id: Optional[str] = None,
    student_id: Optional[str] = None,
    outcome: Optional[ScanOutcome] = None,
    limit: Optional[int] = None,
) -> list[ScanLog]:
    """Ledger query, newest first."""
    query = db.query(ScanLog)
    if event_id:
        query = query.filter(ScanLog.event_id == event_id)
    if student_id:
        query = query.filter(ScanLog.student_id == student_id)
    if outcome:
        query = query.filter(ScanLog.outcome == outcome)
    query = query.order_by(ScanLog.scanned_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
