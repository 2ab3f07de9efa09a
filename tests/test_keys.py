# Copyright (C) 2018-2025 The taproot-send developers
#
# This file is part of taproot-send
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of taproot-send, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.


import unittest

from taprootsend.setup import setup
from taprootsend.errors import InvalidKeyError, SigningError
from taprootsend.keys import PrivateKey, PublicKey, KeyMaterial, taproot_output_key


class TestPrivateKeys(unittest.TestCase):
    def setUp(self):
        setup("mainnet")
        self.key_hex = "00" * 31 + "01"
        self.key_wifc = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
        self.key_wif = "5HpHagT65TZzG1PH3CSu63k8DbpvD8s5ip4nEB3kEsreAnchuDf"
        self.key_bytes = b"\x00" * 31 + b"\x01"
        self.public_key_hex = (
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )

    def tearDown(self):
        setup("testnet")

    def test_hex_creation(self):
        p = PrivateKey.from_hex(self.key_hex)
        self.assertEqual(p.to_bytes(), self.key_bytes)
        self.assertEqual(p.to_wif(), self.key_wifc)
        self.assertEqual(p.to_wif(compressed=False), self.key_wif)

    def test_hex_with_prefix_and_whitespace(self):
        p = PrivateKey.from_hex("  0x" + self.key_hex + "\n")
        self.assertEqual(p.to_bytes(), self.key_bytes)

    def test_wif_creation(self):
        self.assertEqual(PrivateKey.from_wif(self.key_wifc).to_bytes(), self.key_bytes)
        self.assertEqual(PrivateKey.from_wif(self.key_wif).to_bytes(), self.key_bytes)

    def test_wif_wrong_network(self):
        with self.assertRaises(InvalidKeyError):
            PrivateKey.from_wif(self.key_wifc, network="testnet")

    def test_wif_bad_checksum(self):
        bad = self.key_wifc[:-1] + ("o" if self.key_wifc[-1] != "o" else "p")
        with self.assertRaises(InvalidKeyError):
            PrivateKey.from_wif(bad)

    def test_public_key(self):
        p = PrivateKey.from_hex(self.key_hex)
        self.assertEqual(p.get_public_key().to_hex(), self.public_key_hex)

    def test_repr_hides_secret(self):
        p = PrivateKey.from_hex("11" * 32)
        self.assertNotIn("11" * 32, repr(p))

    def test_invalid_keys(self):
        for raw in ["", "   ", "zz" * 32, "00" * 31, "00" * 33, "00" * 32, "ff" * 32]:
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidKeyError):
                    PrivateKey.from_hex(raw)

    def test_invalid_bytes(self):
        with self.assertRaises(InvalidKeyError):
            PrivateKey(b"\x01" * 31)
        with self.assertRaises(InvalidKeyError):
            PrivateKey("01" * 32)


class TestPublicKeys(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.compressed = (
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )
        self.x_only = "79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"

    def test_compressed_round_trip(self):
        pub = PublicKey.from_hex(self.compressed)
        self.assertEqual(pub.to_hex(), self.compressed)
        self.assertEqual(pub.to_x_only_hex(), self.x_only)
        self.assertTrue(pub.is_y_even())

    def test_uncompressed_to_compressed(self):
        uncompressed = PublicKey.from_hex(self.compressed).to_hex(compressed=False)
        self.assertTrue(uncompressed.startswith("04"))
        self.assertEqual(PublicKey.from_hex(uncompressed).to_hex(), self.compressed)

    def test_x_only_creation(self):
        self.assertEqual(PublicKey.from_hex(self.x_only).to_hex(), self.compressed)

    def test_invalid_public_keys(self):
        for raw in ["", "xyz", "05" + self.x_only, "02" + "ff" * 32]:
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidKeyError):
                    PublicKey.from_hex(raw)


class TestTaprootKeys(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        # pubkey with even y
        self.even = KeyMaterial.from_wif(
            "cTLeemg1bCXXuRctid7PygEn7Svxj4zehjTcoayrbEYPsHQo248w"
        )
        self.even_pub = (
            "0271fe85f75e97d22e74c2dd6425e843def8b662b928f24f724ae6a2fd0c4e0419"
        )
        self.even_tweaked = (
            "b555a3680cdcf12a305758689504576f2a03421780a0e474f9eea04c48b3e7f7"
        )
        # pubkey with odd y, its secret is negated before tweaking
        self.odd = KeyMaterial.from_wif(
            "cRPxBiKrJsH94FLugmiL4xnezMyoFqGcf4kdgNXGuypNERhMK6AT"
        )
        self.odd_pub = (
            "03a957ff7ead882e4c95be2afa684ab0e84447149883aba60c067adc054472785b"
        )
        self.odd_tweaked = (
            "68ce0aaf800651f31af637e2b1996f692921cfa0621ed6bb9e0fc7d3326b09da"
        )
        self.digest = bytes(range(32))

    def test_public_keys(self):
        self.assertEqual(self.even.public_key().to_hex(), self.even_pub)
        self.assertEqual(self.odd.public_key().to_hex(), self.odd_pub)

    def test_output_keys(self):
        self.assertEqual(self.even.taproot_output_key().hex(), self.even_tweaked)
        self.assertEqual(self.odd.taproot_output_key().hex(), self.odd_tweaked)
        self.assertEqual(self.even.public_key().to_taproot_hex(), self.even_tweaked)

    def test_bip86_output_key(self):
        internal = bytes.fromhex(
            "cc8a4bc64d897bddc5fbc2f670f7a8ba0b386779106cf1223c6fc5d7cd6fc115"
        )
        self.assertEqual(
            taproot_output_key(internal).hex(),
            "a60869f0dbcf1dc659c9cecbaf8050135ea9e8cdc487053f1dc6880949dc684c",
        )

    def test_tweaked_key_pair_matches_output_key(self):
        for km in (self.even, self.odd):
            pair = km.tweaked_key_pair()
            self.assertEqual(pair.x_only_public_key, km.taproot_output_key())

    def test_schnorr_signature_verifies(self):
        for km in (self.even, self.odd):
            pair = km.tweaked_key_pair()
            sig = pair.sign_schnorr(self.digest)
            self.assertEqual(len(sig), 64)
            self.assertTrue(pair.verify_schnorr(sig, self.digest))
            self.assertFalse(pair.verify_schnorr(sig, bytes(32)))

    def test_schnorr_signature_is_deterministic(self):
        pair = self.even.tweaked_key_pair()
        self.assertEqual(pair.sign_schnorr(self.digest), pair.sign_schnorr(self.digest))

    def test_schnorr_requires_32_byte_digest(self):
        with self.assertRaises(SigningError):
            self.even.tweaked_key_pair().sign_schnorr(b"\x00" * 31)

    def test_original_key_unchanged(self):
        before = self.odd.private_key.to_bytes()
        self.odd.tweaked_key_pair()
        self.assertEqual(self.odd.private_key.to_bytes(), before)


if __name__ == "__main__":
    unittest.main()
