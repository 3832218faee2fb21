"""
Message authentication code for keystore ciphertexts.

The MAC is keccak-256 over the second half of the derived key followed by
the ciphertext.  It binds one ``(derived_key, ciphertext)`` pair: a wrong
password or a modified ciphertext produces a different tag.
"""

from __future__ import annotations

import hmac

from brambl_core.crypto_utils import keccak256, to_bytes

MAC_KEY_SLICE = slice(16, 32)


def compute_mac(derived_key: bytes, ciphertext: bytes) -> bytes:
    derived_key = to_bytes(derived_key)
    if len(derived_key) < MAC_KEY_SLICE.stop:
        raise ValueError(f"Derived key must be at least {MAC_KEY_SLICE.stop} bytes")
    return keccak256(derived_key[MAC_KEY_SLICE] + to_bytes(ciphertext))


def verify_mac(derived_key: bytes, ciphertext: bytes, expected: bytes) -> bool:
    """Constant-time comparison of the recomputed tag against *expected*."""
    return hmac.compare_digest(compute_mac(derived_key, ciphertext), to_bytes(expected))
