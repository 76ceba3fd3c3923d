"""Pydantic schemas for registrations and issuance."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from eventpass.schemas.credential import CredentialPayload
from eventpass.schemas.scan import ScanLogOut


class RegisterRequest(BaseModel):
    user_id: str


class RegisterMultipleRequest(BaseModel):
    user_id: str
    event_ids: list[str] = Field(min_length=1)


class UnregisterRequest(BaseModel):
    user_id: str


class IssuedCredential(BaseModel):
    registration_id: str
    payload: CredentialPayload
    qr_data: str  # the exact text to embed in the QR code


class IssuanceResult(BaseModel):
    event_id: str
    ok: bool
    credential: Optional[IssuedCredential] = None
    failure: Optional[str] = None  # IssuanceFailure value
    reason: Optional[str] = None


class BatchIssuanceResult(BaseModel):
    student_id: str
    total_events: int
    successful_registrations: int
    failed_registrations: list[IssuanceResult] = []
    results: list[IssuanceResult]


class RegistrationOut(BaseModel):
    registration_id: str
    student_id: str
    event_id: str
    status: str
    credential: CredentialPayload
    registered_at: Optional[datetime] = None
    attended_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RegistrationDetailOut(RegistrationOut):
    scan_logs: list[ScanLogOut] = []
