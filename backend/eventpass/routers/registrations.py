"""Registration read API — status, credential and scan history."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from eventpass.database import get_db
from eventpass.exceptions import RegistrationNotFound
from eventpass.models.registration import RegistrationStatus
from eventpass.schemas.registration import RegistrationDetailOut, RegistrationOut
from eventpass.schemas.scan import ScanLogOut
from eventpass.services import registration_store

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[RegistrationOut])
def list_registrations(
    user_id: Optional[str] = Query(None),
    event_id: Optional[str] = Query(None),
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    """List registrations, optionally for one student, event or status."""
    return registration_store.list_registrations(db, student_id=user_id, event_id=event_id, status=status_filter)


@router.get("/{registration_id}", response_model=RegistrationDetailOut)
def get_registration(registration_id: str, db: Session = Depends(get_db)):
    """Fetch a registration with its credential and redemption history."""
    try:
        return registration_store.get(db, registration_id)
    except RegistrationNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.reason)


@router.get("/{registration_id}/scans", response_model=list[ScanLogOut])
def get_scan_history(registration_id: str, db: Session = Depends(get_db)):
    """Redemption attempts recorded against this registration, oldest first."""
    try:
        return registration_store.scan_history(db, registration_id)
    except RegistrationNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.reason)
