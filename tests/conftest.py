"""
Shared pytest fixtures for the Brambl test suite.

scrypt runs with n=2**10 here so the suite stays fast; keyfiles written
with these parameters only open with the same parameters.
"""

import pytest

from brambl_core.config import CryptoParams, ScryptParams
from brambl_core.keygen import generate
from brambl_core.keystore import dump

FAST_SCRYPT = ScryptParams(n=2 ** 10)
FAST_PARAMS = CryptoParams(scrypt=FAST_SCRYPT)
PASSWORD = "correct-horse"


@pytest.fixture
def fast_params():
    """Crypto params with cheap scrypt cost."""
    return FAST_PARAMS


@pytest.fixture
def material():
    """Fresh keypair, IV and salt."""
    return generate(32, 16)


@pytest.fixture
def record(material):
    """Keystore record for *material* encrypted under PASSWORD."""
    return dump(PASSWORD, material, FAST_PARAMS)
