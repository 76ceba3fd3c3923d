"""Event ORM model — capacity counter and deadlines consumed by the engine."""
import uuid
from sqlalchemy import Column, String, DateTime, Integer, CheckConstraint
from sqlalchemy.sql import func
from eventpass.database import Base


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="ck_events_participants_non_negative"),
        CheckConstraint("current_participants <= max_participants", name="ck_events_participants_within_cap"),
    )

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    venue = Column(String(255), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)  # end-time anchor for credential expiry
    registration_deadline = Column(DateTime(timezone=True), nullable=False)
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
