"""
Symmetric encryption of raw private-key bytes.

Ciphers are named the way OpenSSL names them (``aes-256-ctr``) so keyfiles
written by other Bifrost clients open here unchanged.  Only stream-style
modes are offered: the ciphertext has exactly the plaintext's length and
encryption is deterministic for a given key, IV and plaintext.
"""

from __future__ import annotations

from dataclasses import dataclass

from Crypto.Cipher import AES

from brambl_core.crypto_utils import to_bytes
from brambl_core.errors import CipherError, UnsupportedCipherError


@dataclass(frozen=True)
class CipherSpec:
    key_size: int   # bytes taken from the derived key
    mode: str       # "ctr" | "cfb" | "ofb"


SUPPORTED_CIPHERS: dict[str, CipherSpec] = {
    f"aes-{bits}-{mode}": CipherSpec(bits // 8, mode)
    for bits in (128, 192, 256)
    for mode in ("ctr", "cfb", "ofb")
}

DEFAULT_CIPHER = "aes-256-ctr"

IV_SIZE = AES.block_size


def get_ciphers() -> list[str]:
    """Names of every cipher the provider offers."""
    return sorted(SUPPORTED_CIPHERS)


def is_cipher_available(name: str) -> bool:
    return name in SUPPORTED_CIPHERS


def _new_cipher(key: bytes, iv: bytes, algo: str):
    if not is_cipher_available(algo):
        raise UnsupportedCipherError(f"{algo} is not available")
    spec = SUPPORTED_CIPHERS[algo]

    key = to_bytes(key)
    iv = to_bytes(iv)
    if len(key) < spec.key_size:
        raise CipherError(
            f"{algo} needs a {spec.key_size}-byte key, got {len(key)} bytes"
        )
    if len(iv) != IV_SIZE:
        raise CipherError(f"{algo} needs a {IV_SIZE}-byte IV, got {len(iv)} bytes")
    key = key[: spec.key_size]

    if spec.mode == "ctr":
        # The whole IV is the initial 128-bit big-endian counter block.
        return AES.new(key, AES.MODE_CTR, nonce=b"", initial_value=iv)
    if spec.mode == "cfb":
        return AES.new(key, AES.MODE_CFB, iv=iv, segment_size=128)
    return AES.new(key, AES.MODE_OFB, iv=iv)


def encrypt(plaintext: bytes, key: bytes, iv: bytes, algo: str = DEFAULT_CIPHER) -> bytes:
    """Encrypt *plaintext* with the derived *key* and *iv*."""
    return _new_cipher(key, iv, algo).encrypt(to_bytes(plaintext))


def decrypt(ciphertext: bytes, key: bytes, iv: bytes, algo: str = DEFAULT_CIPHER) -> bytes:
    """Decrypt *ciphertext* with the derived *key* and *iv*."""
    return _new_cipher(key, iv, algo).decrypt(to_bytes(ciphertext))
