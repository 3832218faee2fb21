"""
Low-level helpers shared by the key-store modules.

  - base58 text encoding of binary fields
  - blake2b-256 (Bifrost's fast cryptographic hash)
  - keccak-256 (MAC digest)
  - secure random bytes
"""

from __future__ import annotations

import hashlib
import os

import base58
from Crypto.Hash import keccak


def b58encode(data: bytes) -> str:
    """Encode raw bytes as base58 text."""
    return base58.b58encode(bytes(data)).decode("ascii")


def b58decode(text: str) -> bytes:
    """Decode base58 text. Raises ValueError on characters outside the alphabet."""
    return base58.b58decode(text)


def to_bytes(value: bytes | bytearray | str) -> bytes:
    """
    Normalise a binary value.

    Byte strings pass through unchanged; text is assumed to be base58.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return b58decode(value)
    raise TypeError(f"Expected bytes or base58 str, got {type(value).__name__}")


def blake2b256(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=32).digest()


def keccak256(data: bytes) -> bytes:
    """Original Keccak-256 (pre-NIST padding), not SHA3-256."""
    return keccak.new(digest_bits=256, data=data).digest()


def random_bytes(n: int) -> bytes:
    return os.urandom(n)
