"""
Attach key-manager signatures to a prototype transaction.

A prototype returned by a Bifrost node carries the unsigned ``rawTx`` and
the ``messageToSign``.  The key store has no knowledge of the transaction
schema; it signs the message as an opaque string and merges a
``{public key: base58 signature}`` map into a copy of ``rawTx``.
"""

from __future__ import annotations

from typing import Any, Iterable

from brambl_core.crypto_utils import b58encode
from brambl_core.key_manager import KeyManager


def add_signatures(
    prototype_tx: dict[str, Any],
    key_managers: KeyManager | Iterable[KeyManager],
) -> dict[str, Any]:
    """
    Sign ``prototype_tx["messageToSign"]`` with each unlocked key manager.

    Raises KeyError if the prototype lacks ``rawTx`` or ``messageToSign`` and
    KeyLockedError if any key manager is locked.  The prototype is not
    modified.
    """
    keys = [key_managers] if isinstance(key_managers, KeyManager) else list(key_managers)
    if not keys:
        raise ValueError("At least one key manager is required to sign a transaction")

    message = prototype_tx["messageToSign"]
    signatures = {km.public_key: b58encode(km.sign(message)) for km in keys}
    return {**prototype_tx["rawTx"], "signatures": signatures}
