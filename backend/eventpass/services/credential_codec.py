"""Credential codec — signs, serializes, parses and verifies QR payloads.

Wire format is a compact JSON object (see ``CredentialPayload``). The
signature is a lowercase hex HMAC-SHA256 over the canonical string

    registration_id:student_id:event_id:issued_at

The field order is part of the wire contract: changing it invalidates every
credential already issued. Display fields and ``expires_at`` are not signed.
"""
import hashlib
import hmac
import json
import logging
from typing import Union

from pydantic import SecretStr, ValidationError

from eventpass.exceptions import MalformedPayload
from eventpass.schemas.credential import CredentialPayload
from eventpass.timeutil import parse_iso

logger = logging.getLogger(__name__)

CANONICAL_FIELDS = ("registration_id", "student_id", "event_id", "issued_at")
REQUIRED_FIELDS = ("registration_id", "student_id", "event_id", "signature")


class CredentialCodec:
    """HMAC codec bound to one secret key for the life of the process."""

    def __init__(self, secret_key: Union[SecretStr, str, bytes]):
        if isinstance(secret_key, SecretStr):
            secret_key = secret_key.get_secret_value()
        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")
        if not secret_key:
            raise ValueError("credential secret key must not be empty")
        self._key = secret_key

    def __repr__(self) -> str:
        return "CredentialCodec(secret_key=**********)"

    @staticmethod
    def canonicalize(payload: CredentialPayload) -> bytes:
        return ":".join(getattr(payload, field) for field in CANONICAL_FIELDS).encode("utf-8")

    def _digest(self, payload: CredentialPayload) -> bytes:
        return hmac.new(self._key, self.canonicalize(payload), hashlib.sha256).digest()

    def sign(self, payload: CredentialPayload) -> CredentialPayload:
        """Return a copy of ``payload`` carrying its signature."""
        return payload.model_copy(update={"signature": self._digest(payload).hex()})

    def encode(self, payload: CredentialPayload) -> str:
        """Sign ``payload`` and serialize it for embedding in a QR code."""
        return self.serialize(self.sign(payload))

    @staticmethod
    def serialize(payload: CredentialPayload) -> str:
        return json.dumps(payload.model_dump(exclude_none=True), separators=(",", ":"))

    def decode(self, text: Union[str, bytes]) -> CredentialPayload:
        """Parse a scanned payload.

        Raises MalformedPayload when the text is not a JSON object, a field
        has the wrong type, or a required field is absent or empty. The
        signature is not checked here; see ``verify``.
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError, RecursionError) as exc:
            raise MalformedPayload() from exc
        if not isinstance(data, dict):
            raise MalformedPayload()

        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise MalformedPayload(missing_fields=missing)

        try:
            payload = CredentialPayload.model_validate(data)
        except ValidationError as exc:
            raise MalformedPayload() from exc

        if payload.expires_at is not None:
            try:
                parse_iso(payload.expires_at)
            except ValueError as exc:
                raise MalformedPayload() from exc
        return payload

    def verify(self, payload: CredentialPayload) -> bool:
        """Constant-time check of the embedded signature against the payload fields."""
        # Compare the hex text itself: the wire form is lowercase only.
        try:
            presented = payload.signature.encode("ascii")
        except UnicodeEncodeError:
            return False
        return hmac.compare_digest(presented, self._digest(payload).hex().encode("ascii"))
