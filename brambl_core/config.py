"""
TOML-based configuration for the Brambl key store.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from brambl_core.config import load_config
    cfg = load_config("brambl.toml")
    km = await KeyManager.create(password, cfg.crypto)
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]


# hashlib.scrypt rejects a larger maxmem
MAXMEM_LIMIT = 2 ** 31 - 1


@dataclass(frozen=True)
class ScryptParams:
    """scrypt cost parameters.

    These values decide keystore interoperability: a keyfile can only be
    opened with the parameters it was written with.
    """
    dk_len: int = 32
    n: int = 2 ** 18    # CPU/memory cost, power of two
    r: int = 8          # block size
    p: int = 1          # parallelization

    @property
    def maxmem(self) -> int:
        """Memory ceiling handed to scrypt (bytes), capped at ``MAXMEM_LIMIT``."""
        return min(2 * 128 * self.n * self.r, MAXMEM_LIMIT)

    @property
    def required_memory(self) -> int:
        """Bytes scrypt actually allocates for these parameters."""
        return 128 * self.r * (self.n + self.p + 2)


@dataclass(frozen=True)
class CryptoParams:
    """Options used whenever a private key is (re-)encrypted.

    ``cipher`` may be any name accepted by
    :func:`brambl_core.cipher.is_cipher_available`.
    """
    cipher: str = "aes-256-ctr"
    iv_bytes: int = 16
    key_bytes: int = 32
    scrypt: ScryptParams = field(default_factory=ScryptParams)

    def validate(self) -> None:
        if self.iv_bytes <= 0 or self.key_bytes <= 0:
            raise ValueError("iv_bytes and key_bytes must be positive")
        if self.scrypt.dk_len < 32:
            raise ValueError("scrypt dk_len must be at least 32 bytes")
        n = self.scrypt.n
        if n < 2 or n & (n - 1):
            raise ValueError(f"scrypt n must be a power of two greater than 1, got {n}")
        if self.scrypt.r <= 0 or self.scrypt.p <= 0:
            raise ValueError("scrypt r and p must be positive")


@dataclass
class KeystoreConfig:
    """Where exported keyfiles are written."""
    keyfile_dir: str = "keyfiles"


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class BramblConfig:
    """Top-level configuration container."""
    crypto: CryptoParams = field(default_factory=CryptoParams)
    keystore: KeystoreConfig = field(default_factory=KeystoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a mutable dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def _known(cls: type, raw: dict[str, Any]) -> dict[str, Any]:
    """Keep only the keys of *raw* that name fields of the frozen dataclass *cls*."""
    names = cls.__dataclass_fields__
    out: dict[str, Any] = {}
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if key_under in names:
            out[key_under] = value
    return out


def _crypto_from_toml(raw: dict[str, Any]) -> CryptoParams:
    raw = dict(raw)
    scrypt_raw = raw.pop("scrypt", {})
    scrypt = ScryptParams(**_known(ScryptParams, scrypt_raw))
    fields = _known(CryptoParams, raw)
    fields.pop("scrypt", None)
    return CryptoParams(scrypt=scrypt, **fields)


def load_config(path: str | None = None) -> BramblConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        BRAMBL_CIPHER       -> crypto.cipher
        BRAMBL_SCRYPT_N     -> crypto.scrypt.n
        BRAMBL_SCRYPT_R     -> crypto.scrypt.r
        BRAMBL_SCRYPT_P     -> crypto.scrypt.p
        BRAMBL_KEYFILE_DIR  -> keystore.keyfile_dir
        BRAMBL_LOG_LEVEL    -> logging.level
        BRAMBL_LOG_FMT      -> logging.format
    """
    cfg = BramblConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            if "crypto" in data:
                cfg.crypto = _crypto_from_toml(data["crypto"])
            for section_name, section_dc in [
                ("keystore", cfg.keystore),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    crypto_env: dict[str, Any] = {}
    scrypt_env: dict[str, Any] = {}
    if v := os.environ.get("BRAMBL_CIPHER"):
        crypto_env["cipher"] = v.lower()
    if v := os.environ.get("BRAMBL_SCRYPT_N"):
        scrypt_env["n"] = int(v)
    if v := os.environ.get("BRAMBL_SCRYPT_R"):
        scrypt_env["r"] = int(v)
    if v := os.environ.get("BRAMBL_SCRYPT_P"):
        scrypt_env["p"] = int(v)
    if scrypt_env:
        crypto_env["scrypt"] = ScryptParams(**{**cfg.crypto.scrypt.__dict__, **scrypt_env})
    if crypto_env:
        cfg.crypto = CryptoParams(**{**cfg.crypto.__dict__, **crypto_env})
    if v := os.environ.get("BRAMBL_KEYFILE_DIR"):
        cfg.keystore.keyfile_dir = v
    if v := os.environ.get("BRAMBL_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("BRAMBL_LOG_FMT"):
        cfg.logging.format = v

    cfg.crypto.validate()
    return cfg
