"""ScanLog ORM model — append-only ledger of every redemption attempt.

Each row is both a ledger entry and, when ``matched_registration_id`` is set,
an item of that registration's scan history.
"""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from eventpass.database import Base


class ScanOutcome(str, enum.Enum):
    valid = "valid"
    invalid = "invalid"
    expired = "expired"
    duplicate = "duplicate"


class ScanLog(Base):
    __tablename__ = "scan_logs"

    scan_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    registration_id = Column(String(128), nullable=True, index=True)  # as claimed by the payload
    matched_registration_id = Column(
        String(64),
        ForeignKey("registrations.registration_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    event_id = Column(String(128), nullable=True, index=True)
    student_id = Column(String(128), nullable=True, index=True)
    scanned_at = Column(DateTime(timezone=True), nullable=False)
    scanned_by = Column(String(255), nullable=False, default="system")
    location = Column(String(255), nullable=False, default="unknown")
    outcome = Column(SAEnum(ScanOutcome, native_enum=False, length=20), nullable=False)
    notes = Column(String(500), nullable=True)

    registration = relationship("Registration", back_populates="scan_logs")
