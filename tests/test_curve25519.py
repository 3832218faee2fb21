"""
Test suite for brambl_core.curve25519 — keypairs and signatures.

Covers:
  - Seed clamping and deterministic keypairs
  - Interop of public keys with libsodium X25519
  - Known-answer vectors in the curve25519-js signature layout
  - Sign / verify round-trips
  - Randomised signatures
  - Rejection of wrong messages, keys and tampered signatures
  - Malformed input never raises from verify()
"""

import os
import unittest

from nacl.bindings import (
    crypto_scalarmult_ed25519_base_noclamp,
    crypto_sign_ed25519_pk_to_curve25519,
)
from nacl.public import PrivateKey
from nacl.signing import VerifyKey

from brambl_core.curve25519 import (
    KEY_SIZE,
    SIGNATURE_SIZE,
    clamp,
    generate_keypair,
    public_key_from_private,
    sign,
    verify,
)

SEED = bytes(range(32))


def _rnd() -> bytes:
    return os.urandom(64)


class TestKeypair(unittest.TestCase):

    def test_sizes(self):
        kp = generate_keypair(SEED)
        self.assertEqual(len(kp.public_key), KEY_SIZE)
        self.assertEqual(len(kp.private_key), KEY_SIZE)

    def test_deterministic(self):
        self.assertEqual(generate_keypair(SEED), generate_keypair(SEED))

    def test_private_key_is_clamped(self):
        sk = generate_keypair(b"\xff" * 32).private_key
        self.assertEqual(sk[0] & 7, 0)
        self.assertEqual(sk[31] & 0x80, 0)
        self.assertEqual(sk[31] & 0x40, 0x40)

    def test_clamp_idempotent(self):
        self.assertEqual(clamp(clamp(SEED)), clamp(SEED))

    def test_clamp_rejects_wrong_size(self):
        with self.assertRaises(ValueError):
            clamp(b"\x01" * 31)

    def test_public_key_matches_x25519(self):
        kp = generate_keypair(SEED)
        self.assertEqual(kp.public_key, bytes(PrivateKey(kp.private_key).public_key))

    def test_public_key_from_private(self):
        kp = generate_keypair(SEED)
        self.assertEqual(public_key_from_private(kp.private_key), kp.public_key)


class TestSignVerify(unittest.TestCase):

    def setUp(self):
        self.kp = generate_keypair(SEED)

    def test_roundtrip(self):
        sig = sign(self.kp.private_key, b"hello", _rnd())
        self.assertEqual(len(sig), SIGNATURE_SIZE)
        self.assertTrue(verify(self.kp.public_key, b"hello", sig))

    def test_empty_message(self):
        sig = sign(self.kp.private_key, b"", _rnd())
        self.assertTrue(verify(self.kp.public_key, b"", sig))

    def test_many_keys(self):
        # Exercises both values of the carried sign bit.
        for _ in range(16):
            kp = generate_keypair(os.urandom(32))
            sig = sign(kp.private_key, b"msg", _rnd())
            self.assertTrue(verify(kp.public_key, b"msg", sig))

    def test_randomised(self):
        s1 = sign(self.kp.private_key, b"same", _rnd())
        s2 = sign(self.kp.private_key, b"same", _rnd())
        self.assertNotEqual(s1, s2)
        self.assertTrue(verify(self.kp.public_key, b"same", s1))
        self.assertTrue(verify(self.kp.public_key, b"same", s2))

    def test_same_random_same_signature(self):
        rnd = _rnd()
        self.assertEqual(
            sign(self.kp.private_key, b"m", rnd),
            sign(self.kp.private_key, b"m", rnd),
        )

    def test_wrong_message(self):
        sig = sign(self.kp.private_key, b"original", _rnd())
        self.assertFalse(verify(self.kp.public_key, b"modified", sig))

    def test_wrong_key(self):
        other = generate_keypair(b"\x07" * 32)
        sig = sign(self.kp.private_key, b"msg", _rnd())
        self.assertFalse(verify(other.public_key, b"msg", sig))

    def test_tampered_signature(self):
        sig = bytearray(sign(self.kp.private_key, b"msg", _rnd()))
        sig[10] ^= 0x01
        self.assertFalse(verify(self.kp.public_key, b"msg", bytes(sig)))

    def test_flipped_sign_bit(self):
        sig = bytearray(sign(self.kp.private_key, b"msg", _rnd()))
        sig[63] ^= 0x80
        self.assertFalse(verify(self.kp.public_key, b"msg", bytes(sig)))

    def test_random_must_be_64_bytes(self):
        with self.assertRaises(ValueError):
            sign(self.kp.private_key, b"msg", b"\x00" * 32)


# (seed, message, 64 random bytes) -> (X25519 public key, signature) in the
# curve25519-js layout. The second signature carries the Edwards sign bit.
VECTORS = [
    (
        bytes(range(32)),
        b"Bifrost",
        bytes(range(64, 128)),
        "8f40c5adb68f25624ae5b214ea767a6ec94d829d3d7b5e1ad1ba6f3e2138285f",
        "1e4ca3bbe193267b96ce48c364e2c859ada670c7d38439beed5d61bc3c9f2445"
        "2bb16389b5311b30e9d742cf37f74f65d9d744ad6fc637f397638b04b98bbc02",
    ),
    (
        b"\x03" * 32,
        "héllo".encode("utf-8"),
        b"\xab" * 64,
        "5dfedd3b6bd47f6fa28ee15d969d5bb0ea53774d488bdaf9df1c6e0124b3ef22",
        "2be8dde86a2e94c8f8dbf087ebab874a37bba4693b669ae401a6cef304c0a4e4"
        "0cbb6415aa76e6aebc95e22bb41d1b26ecabf154fc87c8832539cc285b72ff8f",
    ),
]


class TestKnownVectors(unittest.TestCase):

    def test_public_keys(self):
        for seed, _, _, pub, _ in VECTORS:
            with self.subTest(pub=pub[:8]):
                self.assertEqual(generate_keypair(seed).public_key.hex(), pub)

    def test_signatures(self):
        for seed, msg, rnd, _, sig in VECTORS:
            with self.subTest(sig=sig[:8]):
                self.assertEqual(sign(seed, msg, rnd).hex(), sig)

    def test_vectors_verify(self):
        for _, msg, _, pub, sig in VECTORS:
            with self.subTest(sig=sig[:8]):
                self.assertTrue(verify(bytes.fromhex(pub), msg, bytes.fromhex(sig)))

    def test_sign_bit_layout(self):
        self.assertEqual(bytes.fromhex(VECTORS[0][4])[63] & 0x80, 0)
        self.assertEqual(bytes.fromhex(VECTORS[1][4])[63] & 0x80, 0x80)

    def test_plain_ed25519_under_edwards_key(self):
        # With the sign bit cleared the signature is ordinary Ed25519 under the
        # Edwards form of the key, and that key maps back to the X25519 key.
        for seed, msg, rnd, pub, _ in VECTORS:
            with self.subTest(pub=pub[:8]):
                edwards = crypto_scalarmult_ed25519_base_noclamp(clamp(seed))
                self.assertEqual(crypto_sign_ed25519_pk_to_curve25519(edwards).hex(), pub)
                sig = bytearray(sign(seed, msg, rnd))
                sig[63] &= 0x7F
                VerifyKey(edwards).verify(msg, bytes(sig))


class TestVerifyMalformed(unittest.TestCase):

    def test_short_signature(self):
        kp = generate_keypair(SEED)
        self.assertFalse(verify(kp.public_key, b"msg", b"\x00" * 63))

    def test_short_public_key(self):
        self.assertFalse(verify(b"\x01" * 31, b"msg", b"\x00" * 64))

    def test_zero_public_key(self):
        self.assertFalse(verify(b"\x00" * 32, b"msg", b"\x00" * 64))

    def test_garbage_signature(self):
        kp = generate_keypair(SEED)
        self.assertFalse(verify(kp.public_key, b"msg", b"\xff" * 64))


if __name__ == "__main__":
    unittest.main()
