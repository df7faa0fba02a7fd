"""
WireGuard key handling.

Keys are Curve25519 keys encoded in base64, the format produced by
``wg genkey`` and ``wg pubkey``.
"""

import base64
import binascii
from dataclasses import (
    dataclass,
)

from nacl.public import (
    PrivateKey,
)
import nacl.utils

from wgpunch.exceptions import (
    ValidationError,
)

KEY_LENGTH = 32


@dataclass(frozen=True)
class WireGuardKeyPair:
    private_key: str
    public_key: str


def _clamp(raw: bytes) -> bytes:
    # Same clamping as `wg genkey`
    key = bytearray(raw)
    key[0] &= 248
    key[31] &= 127
    key[31] |= 64
    return bytes(key)


def decode_key(key: str) -> bytes:
    """
    Decode a base64 WireGuard key.

    :raises ValidationError: if ``key`` is not 32 bytes of base64
    """
    try:
        raw = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError) as error:
        raise ValidationError(f"Key is not valid base64: {error}") from error
    if len(raw) != KEY_LENGTH:
        raise ValidationError(f"Key must be {KEY_LENGTH} bytes, got {len(raw)}")
    return raw


def encode_key(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def public_key_from_private(private_key: str) -> str:
    return encode_key(bytes(PrivateKey(decode_key(private_key)).public_key))


def generate_keypair() -> WireGuardKeyPair:
    private = PrivateKey(_clamp(nacl.utils.random(KEY_LENGTH)))
    return WireGuardKeyPair(
        private_key=encode_key(bytes(private)),
        public_key=encode_key(bytes(private.public_key)),
    )


def keypair_from_private(private_key: str) -> WireGuardKeyPair:
    return WireGuardKeyPair(private_key, public_key_from_private(private_key))
