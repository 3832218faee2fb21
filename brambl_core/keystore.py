"""
Keystore records: the portable, password-encrypted form of a private key.

A record is written to disk as Bifrost-compatible JSON:

    {
      "publicKeyId": "<base58 public key>",
      "crypto": {
        "cipher": "aes-256-ctr",
        "cipherText": "<base58>",
        "cipherParams": {"iv": "<base58>"},
        "mac": "<base58 keccak-256>",
        "kdf": "scrypt",
        "kdfSalt": "<base58>"
      }
    }

Opening a record derives the key, checks the MAC and only then decrypts,
so a wrong password never yields decrypted bytes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from brambl_core import curve25519
from brambl_core.cipher import IV_SIZE, decrypt, encrypt, is_cipher_available
from brambl_core.config import CryptoParams, ScryptParams
from brambl_core.crypto_utils import b58decode, b58encode
from brambl_core.errors import (
    IntegrityError,
    KeyImportError,
    UnsupportedCipherError,
)
from brambl_core.kdf import KDF_NAME, derive_key
from brambl_core.keygen import KeyMaterial
from brambl_core.mac import compute_mac, verify_mac

logger = logging.getLogger("brambl_keystore")

MAC_MISMATCH = "message authentication code mismatch"


@dataclass(frozen=True)
class KeystoreRecord:
    """Encrypted private key plus everything needed to decrypt it (all base58 text)."""
    public_key_id: str
    cipher: str
    cipher_text: str
    cipher_iv: str
    mac: str
    kdf: str = KDF_NAME
    kdf_salt: str = ""

    @classmethod
    def uninitialized(cls) -> KeystoreRecord:
        return cls(public_key_id="", cipher="", cipher_text="", cipher_iv="", mac="")

    @property
    def is_initialized(self) -> bool:
        return bool(self.public_key_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "publicKeyId": self.public_key_id,
            "crypto": {
                "cipher": self.cipher,
                "cipherText": self.cipher_text,
                "cipherParams": {"iv": self.cipher_iv},
                "mac": self.mac,
                "kdf": self.kdf,
                "kdfSalt": self.kdf_salt,
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> KeystoreRecord:
        """Parse the JSON form. Raises KeyImportError when a field is missing or mistyped."""
        try:
            crypto = data["crypto"]
            fields = {
                "public_key_id": data["publicKeyId"],
                "cipher": crypto["cipher"],
                "cipher_text": crypto["cipherText"],
                "cipher_iv": crypto["cipherParams"]["iv"],
                "mac": crypto["mac"],
                "kdf": crypto["kdf"],
                "kdf_salt": crypto["kdfSalt"],
            }
        except (KeyError, TypeError) as exc:
            raise KeyImportError(f"Malformed keystore record: missing field {exc}") from exc

        for name, value in fields.items():
            if not isinstance(value, str):
                raise KeyImportError(
                    f"Malformed keystore record: {name} must be a string, "
                    f"got {type(value).__name__}"
                )
        return cls(**fields)

    @classmethod
    def from_json(cls, text: str | bytes) -> KeystoreRecord:
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise KeyImportError(f"Keystore is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


# ── marshal / dump ──────────────────────────────────────────────────

def marshal(
    derived_key: bytes,
    keypair: KeyMaterial | curve25519.Curve25519Keypair,
    salt: bytes,
    iv: bytes,
    cipher: str,
) -> KeystoreRecord:
    """Encrypt the private key with *derived_key* and package the result."""
    ciphertext = encrypt(keypair.private_key, derived_key, iv, cipher)
    return KeystoreRecord(
        public_key_id=b58encode(keypair.public_key),
        cipher=cipher,
        cipher_text=b58encode(ciphertext),
        cipher_iv=b58encode(iv),
        mac=b58encode(compute_mac(derived_key, ciphertext)),
        kdf=KDF_NAME,
        kdf_salt=b58encode(salt),
    )


def dump(password: str | bytes, material: KeyMaterial, params: CryptoParams | None = None) -> KeystoreRecord:
    """Derive a key from *password* and marshal *material* into a record."""
    params = params or CryptoParams()
    if not is_cipher_available(params.cipher):
        raise UnsupportedCipherError(f"{params.cipher} is not available")
    derived = derive_key(password, material.salt, params.scrypt)
    record = marshal(derived, material, material.salt, material.iv, params.cipher)
    logger.debug("Marshalled keystore",
                 extra={"public_key_id": record.public_key_id, "cipher": record.cipher})
    return record


async def dump_async(
    password: str | bytes, material: KeyMaterial, params: CryptoParams | None = None,
) -> KeystoreRecord:
    return await asyncio.to_thread(dump, password, material, params)


# ── unmarshal / recover ─────────────────────────────────────────────

def _decode(record: KeystoreRecord, name: str) -> bytes:
    value = getattr(record, name)
    if not value:
        raise KeyImportError(f"Malformed keystore record: {name} is empty")
    try:
        return b58decode(value)
    except ValueError as exc:
        raise KeyImportError(f"Malformed keystore record: {name} is not base58") from exc


def unmarshal(
    password: str | bytes,
    record: KeystoreRecord,
    kdf_params: ScryptParams | None = None,
) -> bytes:
    """
    Recover the plaintext private key from *record*.

    Raises
    ------
    KeyImportError
        A field is missing, not base58 or of the wrong length, or the kdf
        is not scrypt.
    UnsupportedCipherError
        The record names a cipher this provider does not offer.
    IntegrityError
        Wrong password or a tampered record.
    """
    iv = _decode(record, "cipher_iv")
    salt = _decode(record, "kdf_salt")
    ciphertext = _decode(record, "cipher_text")
    mac = _decode(record, "mac")
    if len(iv) != IV_SIZE:
        raise KeyImportError(
            f"Malformed keystore record: cipher_iv must be {IV_SIZE} bytes, got {len(iv)}"
        )
    expected = _decode(record, "public_key_id") if record.public_key_id else None
    if expected is not None and len(expected) != curve25519.KEY_SIZE:
        raise KeyImportError(
            f"Malformed keystore record: public_key_id must be {curve25519.KEY_SIZE} bytes, "
            f"got {len(expected)}"
        )
    if record.kdf != KDF_NAME:
        raise KeyImportError(f"Unsupported key derivation function: {record.kdf}")
    if not is_cipher_available(record.cipher):
        raise UnsupportedCipherError(f"{record.cipher} is not available")

    derived = derive_key(password, salt, kdf_params)
    if not verify_mac(derived, ciphertext, mac):
        raise IntegrityError(MAC_MISMATCH)

    private_key = decrypt(ciphertext, derived, iv, record.cipher)

    # The IV is outside the MAC; a modified IV shows up as a key that no
    # longer matches the stored public key.
    if expected is not None:
        if len(private_key) != curve25519.KEY_SIZE or (
            curve25519.public_key_from_private(private_key) != expected
        ):
            raise IntegrityError("recovered private key does not match publicKeyId")
    return private_key


recover = unmarshal


async def unmarshal_async(
    password: str | bytes,
    record: KeystoreRecord,
    kdf_params: ScryptParams | None = None,
) -> bytes:
    return await asyncio.to_thread(unmarshal, password, record, kdf_params)


# ── keyfiles ────────────────────────────────────────────────────────

def generate_keystore_filename(public_key_id: str, now: datetime | None = None) -> str:
    """
    ``<ISO-8601 UTC timestamp>-<public_key_id>.json`` with ``:`` replaced by ``-``.

    >>> generate_keystore_filename("ABC123", datetime(2020, 4, 3, 10, tzinfo=timezone.utc))
    '2020-04-03T10-00-00.000Z-ABC123.json'
    """
    if not isinstance(public_key_id, str):
        raise TypeError("PublicKey must be given as a string for the filename")
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    stamp = stamp.replace("+00:00", "Z")
    return f"{stamp}-{public_key_id}.json".replace(":", "-")


def write_keyfile(record: KeystoreRecord, key_path: str | Path = "keyfiles") -> str:
    """Write *record* under *key_path* and return the full output path."""
    directory = Path(key_path)
    directory.mkdir(parents=True, exist_ok=True)
    outpath = directory / generate_keystore_filename(record.public_key_id)
    outpath.write_text(record.to_json(), encoding="utf-8")
    logger.info("Keystore exported",
                extra={"public_key_id": record.public_key_id, "keyfile": str(outpath)})
    return str(outpath)


def read_keyfile(path: str | Path) -> KeystoreRecord:
    """Load a record from disk. Filesystem and parse failures raise KeyImportError."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise KeyImportError(f"Cannot read keyfile {path}: {exc}") from exc
    return KeystoreRecord.from_json(text)
