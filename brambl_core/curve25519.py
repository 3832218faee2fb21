"""
curve25519 keypairs and signatures.

Keys are X25519 (Montgomery form), matching what Bifrost stores in a
keyfile's ``publicKeyId``.  Signatures are Ed25519 signatures made with the
birationally equivalent Edwards key:

  - the private scalar is the clamped X25519 private key,
  - the nonce is hashed from the scalar, the message and 64 caller-supplied
    random bytes, so two signatures over the same message differ,
  - the Edwards public key's sign bit travels in the top bit of the
    signature's last byte, since a Montgomery u-coordinate does not carry it.

Verification rebuilds the Edwards key from the u-coordinate and hands the
signature to libsodium (PyNaCl).
"""

from __future__ import annotations

import hashlib
from typing import NamedTuple

from nacl.bindings import crypto_scalarmult_base, crypto_scalarmult_ed25519_base_noclamp
from nacl.exceptions import CryptoError
from nacl.signing import VerifyKey

KEY_SIZE = 32
SIGNATURE_SIZE = 64
RANDOM_SIZE = 64

# Field prime and group order of edwards25519
P = 2 ** 255 - 19
L = 2 ** 252 + 27742317777372353535851937790883648493

# Domain separation prefix for nonce hashing
_NONCE_PREFIX = b"\xfe" + b"\xff" * 31


class Curve25519Keypair(NamedTuple):
    public_key: bytes
    private_key: bytes


def clamp(seed: bytes) -> bytes:
    """Turn 32 seed bytes into a valid X25519 private scalar."""
    if len(seed) != KEY_SIZE:
        raise ValueError(f"curve25519 seed must be {KEY_SIZE} bytes, got {len(seed)}")
    sk = bytearray(seed)
    sk[0] &= 248
    sk[31] &= 127
    sk[31] |= 64
    return bytes(sk)


def public_key_from_private(private_key: bytes) -> bytes:
    """X25519 public key (u-coordinate) for *private_key*."""
    return crypto_scalarmult_base(clamp(private_key))


def generate_keypair(seed: bytes) -> Curve25519Keypair:
    """Deterministic keypair from a 32-byte seed."""
    sk = clamp(seed)
    return Curve25519Keypair(public_key=crypto_scalarmult_base(sk), private_key=sk)


def _sha512_mod_l(*parts: bytes) -> int:
    h = hashlib.sha512()
    for part in parts:
        h.update(part)
    return int.from_bytes(h.digest(), "little") % L


def sign(private_key: bytes, message: bytes, random: bytes) -> bytes:
    """
    Sign *message* with a curve25519 private key.

    *random* must be 64 fresh bytes from a secure source; it makes the
    signature non-deterministic without weakening it.
    """
    if len(random) != RANDOM_SIZE:
        raise ValueError(f"Signing needs {RANDOM_SIZE} random bytes, got {len(random)}")
    sk = clamp(private_key)
    a = int.from_bytes(sk, "little")

    edwards_pk = crypto_scalarmult_ed25519_base_noclamp(sk)
    sign_bit = edwards_pk[31] & 0x80

    r = _sha512_mod_l(_NONCE_PREFIX, sk, message, random)
    big_r = crypto_scalarmult_ed25519_base_noclamp(r.to_bytes(32, "little"))
    h = _sha512_mod_l(big_r, edwards_pk, message)
    s = (r + h * a) % L

    signature = bytearray(big_r + s.to_bytes(32, "little"))
    signature[63] |= sign_bit
    return bytes(signature)


def _montgomery_to_edwards(public_key: bytes, sign_bit: int) -> bytes:
    u = int.from_bytes(public_key, "little") & ((1 << 255) - 1)
    y = (u - 1) * pow(u + 1, P - 2, P) % P
    edwards = bytearray(y.to_bytes(32, "little"))
    edwards[31] |= sign_bit
    return bytes(edwards)


def verify(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """True when *signature* is a valid signature of *message* under *public_key*."""
    if len(public_key) != KEY_SIZE or len(signature) != SIGNATURE_SIZE:
        return False

    sig = bytearray(signature)
    edwards_pk = _montgomery_to_edwards(public_key, sig[63] & 0x80)
    sig[63] &= 0x7F

    try:
        VerifyKey(edwards_pk).verify(message, bytes(sig))
        return True
    except (CryptoError, ValueError):
        return False
