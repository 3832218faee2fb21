"""
Brambl - encrypted key store for Topl Bifrost clients.

Key features:
- curve25519 keypairs with randomised signatures
- scrypt password derivation (Bifrost-compatible defaults)
- AES-CTR encrypted keyfiles with keccak-256 integrity codes
- Lockable key manager for signing transactions
"""

__version__ = "1.3.0"
__all__ = [
    "cipher",
    "cli",
    "config",
    "crypto_utils",
    "curve25519",
    "errors",
    "hashing",
    "kdf",
    "key_manager",
    "keygen",
    "keystore",
    "logging_config",
    "mac",
    "transaction",
]
