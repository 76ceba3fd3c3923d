"""User API routes — the directory the engine reads display names from."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventpass.database import get_db
from eventpass.exceptions import StorageUnavailable
from eventpass.models.registration import Registration, RegistrationStatus
from eventpass.models.user import User
from eventpass.schemas.user import UserCreate, UserOut
from eventpass.services import capacity_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Create a new user."""
    if payload.email and db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    user = User(**payload.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.display_name)
    return user


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    """List all users."""
    return db.query(User).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
def delete_user(user_id: str, db: Session = Depends(get_db)):
    """Administrative delete — removes the user's registrations and frees their places.

    Scan ledger entries are kept; they lose only their registration link.
    """
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    held_events = [
        r.event_id
        for r in db.query(Registration).filter(
            Registration.student_id == user_id,
            Registration.status != RegistrationStatus.cancelled,
        )
    ]
    deleted = len(user.registrations)
    try:
        for event_id in held_events:
            capacity_service.release(db, event_id, commit=False)
        db.delete(user)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Could not delete user %s: %s", user_id, exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=StorageUnavailable.reason)

    logger.info("Deleted user %s with %d registration(s)", user_id, deleted)
    return {"status": "ok", "deleted_registrations": deleted}
