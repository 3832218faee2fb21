"""
Bifrost's "fast cryptographic hash" (blake2b-256) for client-side use.

Values hashed with :func:`hash_any` are first serialised with the JSON
Canonicalization Scheme (RFC 8785), the form other Bifrost clients hash:
keys sorted by UTF-16 code units and numbers written the way ECMAScript
prints them (``1.0`` becomes ``1``).
"""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path
from typing import Any

import rfc8785

from brambl_core.crypto_utils import b58encode

ENCODINGS = ("base58", "hex", "base64", None)

_CHUNK = 64 * 1024


def _new_hash():
    return hashlib.blake2b(digest_size=32)


def _digest_and_encode(h, encoding: str | None) -> str | bytes:
    digest = h.digest()
    if encoding == "base58":
        return b58encode(digest)
    if encoding == "hex":
        return digest.hex()
    if encoding == "base64":
        return base64.b64encode(digest).decode("ascii")
    if encoding is None:
        return digest
    raise ValueError(f"Invalid encoding {encoding!r}. Must be one of {ENCODINGS}")


def canonical_json(value: Any) -> bytes:
    """RFC 8785 bytes for *value*. Raises ValueError for NaN, infinities and unsupported types."""
    try:
        return rfc8785.dumps(value)
    except rfc8785.CanonicalizationError as exc:
        raise ValueError(f"Cannot canonicalize value: {exc}") from exc


def hash_string(message: str, encoding: str | None = "base58") -> str | bytes:
    """blake2b-256 of the UTF-8 bytes of *message*."""
    if not isinstance(message, str):
        raise TypeError("hash_string expects a str")
    h = _new_hash()
    h.update(message.encode("utf-8"))
    return _digest_and_encode(h, encoding)


def hash_file(path: str | Path, encoding: str | None = "base58") -> str | bytes:
    """blake2b-256 of a file's contents, read in chunks."""
    h = _new_hash()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return _digest_and_encode(h, encoding)


def hash_any(value: Any, encoding: str | None = "base58") -> str | bytes:
    """blake2b-256 of the canonical JSON form of *value*."""
    h = _new_hash()
    h.update(canonical_json(value))
    return _digest_and_encode(h, encoding)
