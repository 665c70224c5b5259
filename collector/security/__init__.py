"""collector.security

Signature and redaction primitives.
"""

from collector.security.redaction import redact_secrets, sanitize_for_log
from collector.security.signing import ClientKeyPair, verify_signature

__all__ = [
    "ClientKeyPair",
    "verify_signature",
    "redact_secrets",
    "sanitize_for_log",
]
