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
from taprootsend.address import AddressFormat, address_object
from taprootsend.errors import SigningError
from taprootsend.keys import KeyMaterial
from taprootsend.psbt import PSBT
from taprootsend.spend import TransactionBuilder
from taprootsend.transactions import TxOutput
from taprootsend.script import Script
from taprootsend.utxo import UnspentOutput


class TestPSBT(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.km = KeyMaterial.from_wif(
            "cV3R88re3AZSBnWhBBNdiCKTfwpMKkYYjdiR13HQzsU7zoRNX7JL"
        )
        self.other = KeyMaterial.from_hex("11" * 32)
        self.utxo = UnspentOutput(
            "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
            1,
            5000,
            True,
        )
        self.raw_signed = (
            "02000000000101566e10098ddba743bedbe1e4b356377abb3ef106c6831e733863d5eea012647b0100000000ffffffff01a00f0000000000001976a9148e48a6c5108efac226d33018b5347bb24adec37a88ac01403065c743ec6261ce82abe9ea13f718702f9fb23f6d95ffe0eb59266d38416ad29b664370c8f6719a8e1354f38c58c7c6e965cec71b9b5b0f8c100d207a448bd100000000"
        )
        account = address_object(AddressFormat.TAPROOT_KEY_PATH, self.km)
        self.psbt = TransactionBuilder().build(
            self.utxo,
            "mtVHHCqCECGwiMbMoZe8ayhJHuTdDbYWdJ",
            4000,
            account.to_script_pub_key(),
            self.km.x_only_public_key(),
        )

    def test_base64_round_trip(self):
        encoded = self.psbt.to_base64()
        self.assertTrue(encoded.startswith("cHNidP8"))
        parsed = PSBT.from_base64(encoded)
        self.assertEqual(parsed.to_bytes(), self.psbt.to_bytes())
        self.assertEqual(parsed.inputs[0].witness_utxo.amount, 5000)
        self.assertEqual(
            parsed.inputs[0].tap_internal_key, self.km.x_only_public_key()
        )
        self.assertFalse(parsed.finalized)

    def test_parsed_psbt_signs_identically(self):
        parsed = PSBT.from_base64(self.psbt.to_base64())
        parsed.sign_taproot_key_path(0, self.km.tweaked_key_pair())
        parsed.finalize()
        self.assertEqual(parsed.extract_transaction().to_hex(), self.raw_signed)

    def test_finalize_clears_signing_fields(self):
        self.psbt.sign_taproot_key_path(0, self.km.tweaked_key_pair())
        self.assertEqual(len(self.psbt.inputs[0].tap_key_sig), 64)
        self.psbt.finalize()
        psbt_input = self.psbt.inputs[0]
        self.assertIsNone(psbt_input.tap_key_sig)
        self.assertIsNone(psbt_input.tap_internal_key)
        self.assertEqual(len(psbt_input.final_scriptwitness), 1)
        self.assertTrue(psbt_input.is_finalized())

        parsed = PSBT.from_bytes(self.psbt.to_bytes())
        self.assertTrue(parsed.finalized)
        self.assertEqual(parsed.extract_transaction().to_hex(), self.raw_signed)

    def test_finalized_psbt_is_locked(self):
        self.psbt.sign_taproot_key_path(0, self.km.tweaked_key_pair())
        self.psbt.finalize()
        with self.assertRaises(SigningError):
            self.psbt.add_output(TxOutput(1, Script(["OP_1", "00" * 32])))
        with self.assertRaises(SigningError):
            self.psbt.sign_taproot_key_path(0, self.km.tweaked_key_pair())
        with self.assertRaises(SigningError):
            self.psbt.finalize()

    def test_finalize_requires_signatures(self):
        with self.assertRaises(SigningError):
            self.psbt.finalize()

    def test_extract_requires_finalize(self):
        with self.assertRaises(SigningError):
            self.psbt.extract_transaction()

    def test_mismatched_key_pair(self):
        with self.assertRaises(SigningError):
            self.psbt.sign_taproot_key_path(0, self.other.tweaked_key_pair())

    def test_spent_script_must_pay_the_output_key(self):
        self.psbt.inputs[0].witness_utxo = TxOutput(
            5000, Script(["OP_1", self.other.taproot_output_key().hex()])
        )
        with self.assertRaises(SigningError):
            self.psbt.sign_taproot_key_path(0, self.km.tweaked_key_pair())

    def test_missing_internal_key(self):
        self.psbt.inputs[0].tap_internal_key = None
        with self.assertRaises(SigningError):
            self.psbt.sign_taproot_key_path(0, self.km.tweaked_key_pair())

    def test_unknown_input_index(self):
        with self.assertRaises(SigningError):
            self.psbt.sign_taproot_key_path(1, self.km.tweaked_key_pair())

    def test_invalid_encodings(self):
        for data in [b"", b"psbx\xff", b"psbt\x00", b"psbt\xff\x00"]:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    PSBT.from_bytes(data)
        with self.assertRaises(ValueError):
            PSBT.from_base64("not base64!")


if __name__ == "__main__":
    unittest.main()
