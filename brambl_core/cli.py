"""
Command-line entry point for the Brambl key store.

    brambl-keys generate [--keyfile-dir DIR]
    brambl-keys sign KEYFILE MESSAGE
    brambl-keys verify PUBLIC_KEY MESSAGE SIGNATURE
    brambl-keys hash (TEXT | --file PATH) [--encoding {base58,hex,base64}]

Every command loads ``--config`` (TOML plus BRAMBL_* environment overrides)
and installs logging from its ``[logging]`` section.  The password is read
from the environment variable named by ``--password-env`` (default
``BRAMBL_PASSWORD``) and prompted for when that variable is unset.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import getpass
import logging
import os
import sys

from brambl_core.config import BramblConfig, load_config
from brambl_core.crypto_utils import b58encode
from brambl_core.errors import KeyStoreError
from brambl_core.hashing import hash_file, hash_string
from brambl_core.key_manager import KeyManager, verify
from brambl_core.logging_config import setup_logging_from_config

logger = logging.getLogger("brambl_cli")

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="brambl-keys", description="Brambl key store")
    p.add_argument("--config", default=None, help="Path to brambl.toml config file")
    p.add_argument("--password-env", default="BRAMBL_PASSWORD",
                   help="Environment variable holding the keystore password")
    sub = p.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Create a key and export its keyfile")
    gen.add_argument("--keyfile-dir", default=None,
                     help="Output directory (default: [keystore] keyfile_dir)")

    sign = sub.add_parser("sign", help="Sign a UTF-8 message with a keyfile")
    sign.add_argument("keyfile")
    sign.add_argument("message")

    check = sub.add_parser("verify", help="Check a base58 signature")
    check.add_argument("public_key")
    check.add_argument("message")
    check.add_argument("signature")

    digest = sub.add_parser("hash", help="blake2b-256 of a string or file")
    source = digest.add_mutually_exclusive_group(required=True)
    source.add_argument("text", nargs="?")
    source.add_argument("--file", default=None)
    digest.add_argument("--encoding", default="base58", choices=["base58", "hex", "base64"])
    return p.parse_args(argv)


def _password(args: argparse.Namespace) -> str:
    if v := os.environ.get(args.password_env):
        return v
    return getpass.getpass("Keystore password: ")


async def run(args: argparse.Namespace, cfg: BramblConfig) -> int:
    if args.command == "generate":
        km = await KeyManager.create(_password(args), cfg.crypto)
        path = km.export_to_file(args.keyfile_dir or cfg.keystore.keyfile_dir)
        print(km.public_key)
        print(path)
        return EXIT_OK

    if args.command == "sign":
        km = await KeyManager.import_from_file(args.keyfile, _password(args), cfg.crypto)
        print(b58encode(km.sign(args.message)))
        return EXIT_OK

    if args.command == "verify":
        ok = verify(args.public_key, args.message, args.signature)
        print("valid" if ok else "invalid")
        return EXIT_OK if ok else EXIT_INVALID

    if args.file:
        print(hash_file(args.file, args.encoding))
    else:
        print(hash_string(args.text, args.encoding))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)
    setup_logging_from_config(cfg.logging)
    try:
        return asyncio.run(run(args, cfg))
    except (KeyStoreError, OSError) as exc:
        logger.error(f"{args.command} failed: {exc}")
        return EXIT_ERROR


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(main())
