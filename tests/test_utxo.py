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

import os
import unittest
from unittest.mock import patch

from taprootsend.errors import MalformedUtxoError
from taprootsend.utxo import EnvKeySupplier, UnspentOutput, select_first_confirmed


class TestUnspentOutput(unittest.TestCase):
    def setUp(self):
        self.entry = {
            "txid": "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
            "vout": 1,
            "value": 5000,
            "status": {"confirmed": True, "block_height": 2500000},
        }

    def test_from_json(self):
        utxo = UnspentOutput.from_json(self.entry)
        self.assertEqual(utxo.txid, self.entry["txid"])
        self.assertEqual(utxo.vout, 1)
        self.assertEqual(utxo.value, 5000)
        self.assertTrue(utxo.confirmed)

    def test_missing_status_is_unconfirmed(self):
        del self.entry["status"]
        self.assertFalse(UnspentOutput.from_json(self.entry).confirmed)

    def test_malformed_entries(self):
        for key, value in [
            ("txid", "abcd"),
            ("txid", "zz" * 32),
            ("vout", -1),
            ("value", "5000"),
            ("value", True),
        ]:
            entry = dict(self.entry, **{key: value})
            with self.subTest(key=key, value=value):
                with self.assertRaises(MalformedUtxoError):
                    UnspentOutput.from_json(entry)
        with self.assertRaises(MalformedUtxoError):
            UnspentOutput.from_json({"vout": 0})
        with self.assertRaises(MalformedUtxoError):
            UnspentOutput.from_json(None)

    def test_select_first_confirmed(self):
        pending = UnspentOutput("aa" * 32, 0, 10, False)
        first = UnspentOutput("bb" * 32, 0, 20, True)
        second = UnspentOutput("cc" * 32, 0, 30, True)
        self.assertIs(select_first_confirmed([pending, first, second]), first)
        self.assertIsNone(select_first_confirmed([pending]))
        self.assertIsNone(select_first_confirmed([]))


class TestEnvKeySupplier(unittest.TestCase):
    def test_reads_variable(self):
        with patch.dict(os.environ, {"TAPROOTSEND_TEST_KEY": "11" * 32}):
            self.assertEqual(EnvKeySupplier("TAPROOTSEND_TEST_KEY")(), "11" * 32)

    def test_missing_variable(self):
        with patch.dict(os.environ, {"TAPROOTSEND_TEST_KEY": ""}):
            self.assertIsNone(EnvKeySupplier("TAPROOTSEND_TEST_KEY")())


if __name__ == "__main__":
    unittest.main()
