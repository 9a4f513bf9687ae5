"""
Agent signing identity.

The federator's identity is derived ONCE from its private key at startup
and reused for every broadcast and every confirmation check.

KEY FORMAT:
- 32-byte Ed25519 seed, hex-encoded (optional 0x prefix)

DERIVATION:
- address = "0x" + last 20 bytes of SHA256(raw public key), hex
- key_id  = first 16 hex chars of SHA256(raw public key)
"""

from __future__ import annotations

import hashlib

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives import serialization
from cryptography.exceptions import InvalidSignature

from federator.protocol.errors import ConfigurationError
from federator.protocol.models import AgentIdentity


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def parse_private_key(private_key: str) -> bytes:
    """Decode a hex private key into its 32 raw bytes."""
    if not isinstance(private_key, str) or not private_key.strip():
        raise ConfigurationError("Private key is empty")
    text = private_key.strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    try:
        raw = bytes.fromhex(text)
    except ValueError:
        raise ConfigurationError("Private key is not valid hex") from None
    if len(raw) != 32:
        raise ConfigurationError(f"Private key must be 32 bytes, got {len(raw)}")
    return raw


class AgentSigner:
    """
    Ed25519 signer bound to one federator key.

    Usage:
        signer = AgentSigner.from_hex(settings.private_key.get_secret_value())
        identity = signer.identity
        signature = signer.sign(payload_bytes)
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self._public_bytes = _raw_public_bytes(private_key.public_key())
        digest = hashlib.sha256(self._public_bytes).hexdigest()
        self._identity = AgentIdentity(address="0x" + digest[-40:], key_id=digest[:16])

    @classmethod
    def from_hex(cls, private_key: str) -> AgentSigner:
        return cls(Ed25519PrivateKey.from_private_bytes(parse_private_key(private_key)))

    @property
    def identity(self) -> AgentIdentity:
        return self._identity

    @property
    def address(self) -> str:
        return self._identity.address

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_bytes

    def sign(self, data: bytes) -> bytes:
        """Sign data using Ed25519. Returns 64-byte signature."""
        return self._private_key.sign(data)


def derive_identity(private_key: str) -> AgentIdentity:
    return AgentSigner.from_hex(private_key).identity


def verify_signature(public_key_bytes: bytes, data: bytes, signature: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(public_key_bytes).verify(signature, data)
        return True
    except InvalidSignature:
        return False
