"""Event API routes — listing plus registration (credential issuance)."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from eventpass.database import get_db
from eventpass.deps import get_codec
from eventpass.exceptions import RegistrationNotCancellable, RegistrationNotFound, StorageUnavailable
from eventpass.models.event import Event
from eventpass.schemas.event import EventCreate, EventOut
from eventpass.schemas.registration import (
    BatchIssuanceResult,
    IssuanceResult,
    RegisterMultipleRequest,
    RegisterRequest,
    RegistrationOut,
    UnregisterRequest,
)
from eventpass.services import credential_issuer, event_service
from eventpass.services.credential_codec import CredentialCodec
from eventpass.services.credential_issuer import IssuanceFailure

logger = logging.getLogger(__name__)
router = APIRouter()

_FAILURE_STATUS = {
    IssuanceFailure.already_registered.value: status.HTTP_409_CONFLICT,
    IssuanceFailure.student_not_found.value: status.HTTP_404_NOT_FOUND,
    IssuanceFailure.event_not_found.value: status.HTTP_404_NOT_FOUND,
    IssuanceFailure.event_full.value: status.HTTP_400_BAD_REQUEST,
    IssuanceFailure.deadline_passed.value: status.HTTP_400_BAD_REQUEST,
    IssuanceFailure.storage_unavailable.value: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    """Create an event with its participant cap and registration deadline."""
    return event_service.create_event(
        db=db,
        title=payload.title,
        venue=payload.venue,
        date=payload.date,
        registration_deadline=payload.registration_deadline,
        max_participants=payload.max_participants,
    )


@router.get("/", response_model=list[EventOut])
def list_events(db: Session = Depends(get_db)):
    """List events, soonest first."""
    return db.query(Event).order_by(Event.date).all()


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single event with its current participant count."""
    return event_service.get_event(db, event_id)


@router.post("/register-multiple", response_model=BatchIssuanceResult)
def register_multiple(
    payload: RegisterMultipleRequest,
    db: Session = Depends(get_db),
    codec: CredentialCodec = Depends(get_codec),
):
    """Register for several events at once; each event succeeds or fails on its own."""
    return credential_issuer.issue_batch(db, codec, payload.user_id, payload.event_ids)


@router.post("/{event_id}/register", response_model=IssuanceResult)
def register(
    event_id: str,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    codec: CredentialCodec = Depends(get_codec),
):
    """Register for one event and return the signed QR credential."""
    try:
        result = credential_issuer.issue(db, codec, payload.user_id, event_id)
    except StorageUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.reason)
    if not result.ok:
        raise HTTPException(status_code=_FAILURE_STATUS[result.failure], detail=result.reason)
    return result


@router.post("/{event_id}/unregister", response_model=RegistrationOut)
def unregister(event_id: str, payload: UnregisterRequest, db: Session = Depends(get_db)):
    """Cancel the caller's registration and free its place."""
    try:
        return credential_issuer.unregister(db, payload.user_id, event_id)
    except RegistrationNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.reason)
    except RegistrationNotCancellable as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.reason)
    except StorageUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.reason)
