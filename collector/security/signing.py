"""collector.security.signing

Ed25519 request signatures.

Clients sign the exact bytes of the request body with their private key and send
the signature and public key as headers. Keys and signatures travel as text,
hex or base64 depending on ``signing.encoding``.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Literal

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

Encoding = Literal["hex", "base64"]


def decode(value: str, encoding: Encoding) -> bytes:
    """Decode key material or a signature. Raises ValueError on malformed input."""

    try:
        if encoding == "hex":
            return bytes.fromhex(value.strip())
        return base64.b64decode(value.strip(), validate=True)
    except binascii.Error as e:
        raise ValueError(f"malformed {encoding} value") from e


def encode(raw: bytes, encoding: Encoding) -> str:
    if encoding == "hex":
        return raw.hex()
    return base64.b64encode(raw).decode("ascii")


def verify_signature(message: bytes, signature: str, public_key: str, *, encoding: Encoding = "hex") -> bool:
    """True iff ``signature`` is a valid Ed25519 signature of ``message`` under ``public_key``.

    Never raises: malformed keys or signatures simply do not verify.
    """

    try:
        pub = Ed25519PublicKey.from_public_bytes(decode(public_key, encoding))
        pub.verify(decode(signature, encoding), message)
    except (InvalidSignature, ValueError):
        return False
    return True


@dataclass(frozen=True)
class ClientKeyPair:
    """Client-side key pair, for tooling and tests."""

    public_key: str
    private_key: str
    encoding: Encoding = "hex"

    @classmethod
    def generate(cls, encoding: Encoding = "hex") -> ClientKeyPair:
        priv = Ed25519PrivateKey.generate()
        priv_raw = priv.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        pub_raw = priv.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return cls(public_key=encode(pub_raw, encoding), private_key=encode(priv_raw, encoding), encoding=encoding)

    @classmethod
    def from_private_key(cls, private_key: str, encoding: Encoding = "hex") -> ClientKeyPair:
        priv = Ed25519PrivateKey.from_private_bytes(decode(private_key, encoding))
        pub_raw = priv.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return cls(public_key=encode(pub_raw, encoding), private_key=private_key, encoding=encoding)

    def sign(self, message: bytes) -> str:
        priv = Ed25519PrivateKey.from_private_bytes(decode(self.private_key, self.encoding))
        return encode(priv.sign(message), self.encoding)
