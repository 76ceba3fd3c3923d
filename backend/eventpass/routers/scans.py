"""QR redemption and scan ledger routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from eventpass.database import get_db
from eventpass.deps import get_codec
from eventpass.exceptions import StorageUnavailable
from eventpass.models.scan_log import ScanOutcome
from eventpass.schemas.scan import ScanLogOut, ValidateRequest, ValidationResult
from eventpass.services import credential_validator, scan_ledger
from eventpass.services.credential_codec import CredentialCodec

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/qr/validate", response_model=ValidationResult)
def validate_qr(
    payload: ValidateRequest,
    db: Session = Depends(get_db),
    codec: CredentialCodec = Depends(get_codec),
):
    """Redeem a scanned credential. Rejections are normal 200 responses with valid=false."""
    try:
        return credential_validator.validate(
            db,
            codec,
            payload.qr_data,
            expected_event_id=payload.event_id,
            scanned_by=payload.scanned_by,
            location=payload.location,
        )
    except StorageUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.reason)


@router.get("/scan-logs", response_model=list[ScanLogOut])
def list_scan_logs(
    event_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    outcome: Optional[ScanOutcome] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Audit view of every redemption attempt, newest first."""
    return scan_ledger.list_entries(db, event_id=event_id, student_id=user_id, outcome=outcome, limit=limit)
