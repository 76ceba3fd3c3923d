"""Pydantic schemas for QR redemption and the scan ledger."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

# Issued payloads are a few hundred bytes.
MAX_QR_DATA_LENGTH = 4096


class ValidateRequest(BaseModel):
    qr_data: str = Field(max_length=MAX_QR_DATA_LENGTH)
    event_id: Optional[str] = None  # the scanner's event, when it is bound to one
    scanned_by: Optional[str] = None
    location: Optional[str] = None


class ScanLogOut(BaseModel):
    scan_id: str
    registration_id: Optional[str] = None
    event_id: Optional[str] = None
    student_id: Optional[str] = None
    scanned_at: datetime
    scanned_by: str
    location: str
    outcome: str
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class ValidationResult(BaseModel):
    valid: bool
    outcome: str
    reason: Optional[str] = None
    registration_id: Optional[str] = None
    student_id: Optional[str] = None
    event_id: Optional[str] = None
    student_name: Optional[str] = None
    event_title: Optional[str] = None
    status: Optional[str] = None  # registration status after the scan
    scan_log: Optional[ScanLogOut] = None
