"""
Key manager for Topl Bifrost keys.

A KeyManager owns one keystore record and the decrypted private key that
goes with it.  It is always created unlocked, either by generating a new
keypair or by importing an existing keystore, and from then on:

  - ``lock_key()`` drops the decrypted key from memory,
  - ``unlock_key(password)`` restores it after checking the password,
  - ``sign(message)`` works only while unlocked,
  - ``export_to_file()`` writes the keystore JSON without changing state.

Operations that run scrypt are coroutines; the derivation happens on a
worker thread so an event loop keeps running meanwhile.  Instances are not
thread-safe; callers sharing one instance across threads must serialise
access themselves.

Usage:
    km = await KeyManager.create("correct-horse")
    sig = km.sign(b"message")
    assert verify(km.public_key, b"message", sig)
    path = km.export_to_file("keyfiles")
    same = await KeyManager.import_from_file(path, "correct-horse")
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from pathlib import Path
from typing import Any

from brambl_core import curve25519, keygen
from brambl_core.cipher import is_cipher_available
from brambl_core.config import CryptoParams
from brambl_core.crypto_utils import b58decode, random_bytes, to_bytes
from brambl_core.errors import (
    AlreadyUnlockedError,
    IntegrityError,
    InvalidPasswordError,
    KeyfileIntegrityError,
    KeyLockedError,
    MissingPasswordError,
    UninitializedKeyError,
    UnsupportedCipherError,
)
from brambl_core.keystore import (
    KeystoreRecord,
    dump_async,
    read_keyfile,
    unmarshal_async,
    write_keyfile,
)

logger = logging.getLogger("brambl_keys")

DEFAULT_KEYFILE_DIR = "keyfiles"


def _require_password(password: str | None) -> None:
    if not password:
        raise MissingPasswordError("A password must be provided at initialization")


def _checked_params(params: CryptoParams | None) -> CryptoParams:
    params = params or CryptoParams()
    params.validate()
    return params


def _message_bytes(message: str | bytes) -> bytes:
    if isinstance(message, str):
        return message.encode("utf-8")
    if isinstance(message, (bytes, bytearray)):
        return bytes(message)
    raise TypeError(f"Message must be str or bytes, got {type(message).__name__}")


def verify(public_key: str | bytes, message: str | bytes, signature: str | bytes) -> bool:
    """
    Check whether *signature* was made over *message* by the key behind *public_key*.

    Needs no KeyManager.  Keys and signatures may be raw bytes or base58
    text; text messages are signed as UTF-8.
    """
    try:
        pk = to_bytes(public_key)
        sig = to_bytes(signature)
    except (TypeError, ValueError):
        return False
    return curve25519.verify(pk, _message_bytes(message), sig)


class KeyManager:
    """Holds one keypair and gates access to its private half.

    Build instances with :meth:`create`, :meth:`from_keystore` or
    :meth:`import_from_file`; the constructor takes already-decrypted state.
    """

    verify = staticmethod(verify)

    def __init__(
        self,
        record: KeystoreRecord,
        private_key: bytes,
        password: str,
        params: CryptoParams,
    ):
        if not record.is_initialized:
            raise UninitializedKeyError("A key must be initialized before using this key manager")
        public_key = b58decode(record.public_key_id)
        if curve25519.public_key_from_private(private_key) != public_key:
            raise ValueError("Private key does not belong to the keystore record")

        self._record = record
        self._public_key = public_key
        self.__sk: bytes | None = bytes(private_key)
        self.__password = password
        self._params = params
        self._is_locked = False

    # ---- factory methods ----

    @classmethod
    async def create(cls, password: str, params: CryptoParams | None = None) -> KeyManager:
        """Generate a fresh keypair and encrypt it under *password*."""
        _require_password(password)
        params = _checked_params(params)
        if not is_cipher_available(params.cipher):
            raise UnsupportedCipherError(f"{params.cipher} is not available")

        material = keygen.generate(params.key_bytes, params.iv_bytes)
        record = await dump_async(password, material, params)
        logger.info(f"Generated key {record.public_key_id}",
                    extra={"public_key_id": record.public_key_id})
        return cls(record, material.private_key, password, params)

    @classmethod
    async def from_keystore(
        cls,
        record: KeystoreRecord | dict[str, Any],
        password: str,
        params: CryptoParams | None = None,
    ) -> KeyManager:
        """
        Open an in-memory keystore record (or its JSON dict form).

        A wrong password or altered record raises KeyfileIntegrityError,
        which is both a KeyImportError and an IntegrityError.
        """
        _require_password(password)
        params = _checked_params(params)
        if not isinstance(record, KeystoreRecord):
            record = KeystoreRecord.from_dict(record)
        if not record.is_initialized:
            raise UninitializedKeyError("A key must be initialized before using this key manager")

        try:
            private_key = await unmarshal_async(password, record, params.scrypt)
        except IntegrityError as exc:
            raise KeyfileIntegrityError(f"Error importing keyfile - {exc}") from exc
        logger.info(f"Imported key {record.public_key_id}",
                    extra={"public_key_id": record.public_key_id})
        return cls(record, private_key, password, params)

    @classmethod
    async def import_from_file(
        cls,
        path: str | Path,
        password: str,
        params: CryptoParams | None = None,
    ) -> KeyManager:
        """
        Open a keystore JSON file.

        Raises KeyImportError for unreadable or malformed files and
        KeyfileIntegrityError (also an IntegrityError) when the password is
        wrong or the file was altered.
        """
        _require_password(password)
        params = _checked_params(params)
        record = await asyncio.to_thread(read_keyfile, path)
        try:
            return await cls.from_keystore(record, password, params)
        except KeyfileIntegrityError:
            logger.warning(f"Integrity check failed for keyfile {path}",
                           extra={"keyfile": str(path)})
            raise

    # ---- state ----

    @property
    def public_key(self) -> str:
        """base58 public key id."""
        return self._record.public_key_id

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key

    @property
    def is_locked(self) -> bool:
        return self._is_locked

    @property
    def params(self) -> CryptoParams:
        return self._params

    def lock_key(self) -> None:
        """Lock the key manager and drop the decrypted private key."""
        self._is_locked = True
        self.__sk = None

    async def unlock_key(self, password: str) -> None:
        """
        Unlock with the password the key was created or imported with.

        The password is compared in constant time and the stored keystore is
        then re-opened with it, so the MAC is checked again on every unlock.
        """
        if not self._is_locked:
            raise AlreadyUnlockedError("The key is already unlocked")
        if not isinstance(password, str) or not hmac.compare_digest(
            password.encode("utf-8"), self.__password.encode("utf-8")
        ):
            raise InvalidPasswordError("Invalid password")

        private_key = await unmarshal_async(password, self._record, self._params.scrypt)
        self.__sk = private_key
        self._is_locked = False

    def _unlocked_key(self) -> bytes:
        if self._is_locked or self.__sk is None:
            raise KeyLockedError("The key is currently locked. Please unlock and try again.")
        return self.__sk

    # ---- signing ----

    def sign(self, message: str | bytes) -> bytes:
        """Sign *message* (text is UTF-8 encoded); 64 fresh random bytes per call."""
        sk = self._unlocked_key()
        return curve25519.sign(sk, _message_bytes(message), random_bytes(curve25519.RANDOM_SIZE))

    # ---- export ----

    def get_keystore_record(self) -> KeystoreRecord:
        """The keystore record in Bifrost-compatible form."""
        if self._is_locked:
            raise KeyLockedError("Key manager is currently locked. Please unlock and try again.")
        return self._record

    def export_to_file(self, key_path: str | Path | None = None) -> str:
        """Write the keystore JSON to *key_path* (default ``keyfiles``) and return its path."""
        return write_keyfile(self.get_keystore_record(), key_path or DEFAULT_KEYFILE_DIR)

    def __repr__(self) -> str:
        state = "locked" if self._is_locked else "unlocked"
        return f"KeyManager({self.public_key}, {state})"
