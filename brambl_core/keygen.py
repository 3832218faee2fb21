"""
Fresh key material for a new keystore.

Every random value is hashed with blake2b-256 before use; the raw output of
the random source never becomes a key, IV or salt directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from brambl_core import curve25519
from brambl_core.crypto_utils import blake2b256, random_bytes


@dataclass(frozen=True)
class KeyMaterial:
    """A keypair plus the IV and salt used to encrypt its private half."""
    public_key: bytes
    private_key: bytes = field(repr=False)
    iv: bytes
    salt: bytes


def generate(key_bytes: int = 32, iv_bytes: int = 16) -> KeyMaterial:
    """
    Generate a curve25519 keypair, an IV of *iv_bytes* and a 32-byte salt.

    There is no deterministic mode: each call draws new randomness.
    """
    if iv_bytes > 32:
        raise ValueError(f"iv_bytes must be at most 32, got {iv_bytes}")

    seed = blake2b256(random_bytes(key_bytes + iv_bytes + key_bytes))
    keypair = curve25519.generate_keypair(seed)

    return KeyMaterial(
        public_key=keypair.public_key,
        private_key=keypair.private_key,
        iv=blake2b256(random_bytes(key_bytes + iv_bytes + key_bytes))[:iv_bytes],
        salt=blake2b256(random_bytes(key_bytes + iv_bytes)),
    )
