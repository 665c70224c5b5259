"""collector.core.exceptions

Errors are part of the interface.

Every pipeline failure is classified. The class decides the HTTP status and the
message a client is allowed to see; internal detail stays in the logs.
"""

from __future__ import annotations

from collections.abc import Iterable


class CollectorError(Exception):
    """Base exception for the collector."""

    code: str = "collector.error"
    status: int = 500
    public_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class ConfigError(CollectorError):
    """Configuration is missing, invalid, or inconsistent."""

    code = "config.invalid"


class HeaderError(CollectorError):
    """One or more required transport headers are missing or malformed."""

    code = "headers.missing"
    status = 400

    def __init__(self, missing: Iterable[str], invalid: Iterable[str] = ()) -> None:
        self.missing = list(missing)
        self.invalid = list(invalid)
        parts = []
        if self.missing:
            parts.append("missing headers: " + ", ".join(self.missing))
        if self.invalid:
            parts.append("invalid headers: " + ", ".join(self.invalid))
        super().__init__("; ".join(parts))

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return str(self)


class BodyError(CollectorError):
    """Request body is not a JSON array of events."""

    code = "body.invalid"
    status = 400
    public_message = "request body must be a JSON array"


class IdentityAnomaly(CollectorError):
    """Identity store holds more than one record for a (userId, publicKey) pair.

    Non-fatal: reported, then the first match is used.
    """

    code = "identity.duplicated"
    status = 409
    public_message = "duplicated identity"


class ValidationError(CollectorError):
    """Signature or public key absent; nothing to verify against."""

    code = "signature.missing"
    status = 401
    public_message = "signature can not be verified"


class SignatureError(CollectorError):
    """Signature does not match the request body."""

    code = "signature.mismatch"
    status = 401
    public_message = "signature does not match request body"


class EventTypeError(CollectorError):
    """Event discriminator not recognized. Collected per event, never raised past the normalizer."""

    code = "event.invalid_type"
    status = 422
    public_message = "invalid event type"


class StoreError(CollectorError):
    """Persistence or lookup failure. Fatal for the request, no retry."""

    code = "store.unavailable"
    status = 503
    public_message = "storage unavailable"


class AlarmError(CollectorError):
    """Anomaly notification could not be recorded."""

    code = "alarm.unavailable"
    status = 503
    public_message = "notification sink unavailable"


class AuthError(CollectorError):
    """Operator endpoint called with a wrong or malformed bearer token."""

    code = "auth.invalid_token"
    status = 401
    public_message = "invalid bearer token"


class MissingTokenError(AuthError):
    code = "auth.missing_token"
    public_message = "missing bearer token"
