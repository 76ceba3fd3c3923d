"""Domain errors raised by the credential engine services.

Business-rule rejections are raised inside the services and converted to
typed results by the issuer and validator. Only ``StorageUnavailable`` is
expected to reach callers as an exception; it is safe to retry.
"""
from typing import Sequence


class EngineError(Exception):
    """Base class for credential engine errors."""

    reason = "credential engine error"

    def __init__(self, reason: str | None = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)


class MalformedPayload(EngineError):
    """The presented credential is not a parseable payload."""

    reason = "malformed payload"

    def __init__(self, reason: str | None = None, missing_fields: Sequence[str] = ()):
        self.missing_fields = list(missing_fields)
        if reason is None and self.missing_fields:
            reason = "missing required fields: " + ", ".join(self.missing_fields)
        super().__init__(reason)


class CapacityError(EngineError):
    """A capacity reservation was refused."""


class EventNotFound(CapacityError):
    reason = "Event not found"


class EventFull(CapacityError):
    reason = "Event is full"


class DeadlinePassed(CapacityError):
    reason = "Registration deadline has passed"


class DuplicateRegistration(EngineError):
    reason = "Already registered for this event"


class RegistrationNotFound(EngineError):
    reason = "Registration not found"


class RegistrationNotCancellable(EngineError):
    reason = "Registration can no longer be cancelled"


class StorageUnavailable(EngineError):
    """Persistence failed; the operation left no partial state and may be retried."""

    reason = "Storage unavailable, please retry"
