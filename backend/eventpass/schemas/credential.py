"""Credential payload — the signed content of a registration QR code."""
from typing import Optional
from pydantic import BaseModel


class CredentialPayload(BaseModel):
    registration_id: str
    student_id: str
    event_id: str
    issued_at: str = ""
    expires_at: Optional[str] = None
    signature: str = ""
    # Display only; not covered by the signature.
    event_title: Optional[str] = None
    student_name: Optional[str] = None

    model_config = {"frozen": True, "extra": "ignore"}
