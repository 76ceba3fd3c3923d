"""Registration ORM model — one credential-bearing registration per (student, event)."""
import enum
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Index, Enum as SAEnum, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from eventpass.database import Base


class RegistrationStatus(str, enum.Enum):
    registered = "registered"
    attended = "attended"
    absent = "absent"
    cancelled = "cancelled"


TERMINAL_STATUSES = (RegistrationStatus.attended, RegistrationStatus.cancelled)


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        # A student may re-register only after cancelling.
        Index(
            "uq_registrations_active_student_event",
            "student_id",
            "event_id",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    registration_id = Column(String(64), primary_key=True)
    student_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.event_id"), nullable=False, index=True)
    status = Column(SAEnum(RegistrationStatus, native_enum=False, length=20), nullable=False, default=RegistrationStatus.registered)
    credential = Column(JSON, nullable=False)
    registered_at = Column(DateTime(timezone=True), server_default=func.now())
    attended_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    student = relationship("User", back_populates="registrations")
    scan_logs = relationship("ScanLog", back_populates="registration", order_by="ScanLog.scanned_at")
