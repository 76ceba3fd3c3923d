"""Shared FastAPI dependencies."""
from functools import lru_cache

from eventpass.config import settings
from eventpass.services.credential_codec import CredentialCodec


@lru_cache(maxsize=1)
def get_codec() -> CredentialCodec:
    """The process-wide codec, built once from the configured secret."""
    return CredentialCodec(settings.QR_CODE_SECRET)
