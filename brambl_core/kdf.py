"""
Password-based key derivation (scrypt).

scrypt is deliberately CPU- and memory-hard: with the default parameters a
single derivation takes a noticeable fraction of a second and about 256 MiB.
Code running on an event loop should use :func:`derive_key_async`, which
moves the work to a thread.  A derivation cannot be cancelled once started.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging

from brambl_core.config import ScryptParams
from brambl_core.crypto_utils import to_bytes
from brambl_core.errors import KeyDerivationError

logger = logging.getLogger("brambl_kdf")

KDF_NAME = "scrypt"


def _password_bytes(password: str | bytes) -> bytes:
    if isinstance(password, (bytes, bytearray)):
        return bytes(password)
    return password.encode("utf-8")


def derive_key(
    password: str | bytes | None,
    salt: bytes | str | None,
    params: ScryptParams | None = None,
) -> bytes:
    """
    Derive a secret key from *password* and *salt*.

    Parameters
    ----------
    password : str | bytes
        User-supplied password; text is encoded as UTF-8.  The empty
        password is accepted, ``None`` is not.
    salt : bytes | str
        Raw salt, or its base58 text form.
    params : ScryptParams, optional
        Cost parameters; defaults to ``ScryptParams()``.

    Returns
    -------
    bytes
        ``params.dk_len`` bytes, identical for identical inputs.

    Raises
    ------
    KeyDerivationError
        Missing password or salt, invalid cost parameters, or the memory
        ceiling implied by ``n`` and ``r`` cannot be honoured.
    """
    if password is None or not salt:
        raise KeyDerivationError("Must provide password and salt to derive a key")
    params = params or ScryptParams()

    try:
        salt_bytes = to_bytes(salt)
    except (TypeError, ValueError) as exc:
        raise KeyDerivationError(f"Invalid salt: {exc}") from exc

    if params.required_memory > params.maxmem:
        raise KeyDerivationError(
            f"scrypt needs {params.required_memory} bytes (n={params.n}, r={params.r}, "
            f"p={params.p}), more than the {params.maxmem}-byte ceiling"
        )

    try:
        return hashlib.scrypt(
            _password_bytes(password),
            salt=salt_bytes,
            n=params.n,
            r=params.r,
            p=params.p,
            maxmem=params.maxmem,
            dklen=params.dk_len,
        )
    except (ValueError, OverflowError, MemoryError) as exc:
        logger.warning(f"scrypt failed (n={params.n}, r={params.r}, p={params.p}): {exc}")
        raise KeyDerivationError(f"scrypt key derivation failed: {exc}") from exc


async def derive_key_async(
    password: str | bytes | None,
    salt: bytes | str | None,
    params: ScryptParams | None = None,
) -> bytes:
    """Run :func:`derive_key` on a worker thread."""
    return await asyncio.to_thread(derive_key, password, salt, params)
