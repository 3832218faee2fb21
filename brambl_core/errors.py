"""
Exception hierarchy for the Brambl key store.

Every failure in the key-management path is raised synchronously at the
point of detection and propagated to the caller.  Nothing here is retried;
prompting the user again for a password belongs to the calling layer.
"""

from __future__ import annotations


class KeyStoreError(Exception):
    """Base class for all key-store failures."""


class MissingPasswordError(KeyStoreError):
    """No password was supplied when creating or importing a key."""


class KeyDerivationError(KeyStoreError):
    """scrypt could not derive a key from the given inputs."""


class CipherError(KeyStoreError):
    """Symmetric encryption or decryption failed."""


class UnsupportedCipherError(CipherError):
    """The named cipher is not offered by the crypto provider."""


class IntegrityError(KeyStoreError):
    """The keystore failed its integrity check (wrong password or tampering)."""


class KeyLockedError(KeyStoreError):
    """The key manager is locked."""


class InvalidPasswordError(KeyStoreError):
    """An unlock attempt used the wrong password."""


class AlreadyUnlockedError(KeyStoreError):
    """unlock_key() was called on an unlocked key manager."""


class KeyImportError(KeyStoreError):
    """A keystore record or keyfile could not be imported."""


class KeyfileIntegrityError(KeyImportError, IntegrityError):
    """A keyfile was readable but failed its integrity check on import."""


class UninitializedKeyError(KeyStoreError):
    """The key manager has no established keypair."""
