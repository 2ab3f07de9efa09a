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
from unittest.mock import MagicMock

from taprootsend.setup import setup
from taprootsend.errors import (
    InsufficientFundsError,
    InvalidKeyError,
    NoSpendableOutputError,
    TransportError,
    UnsupportedFormatError,
)
from taprootsend.fees import FeePolicy
from taprootsend.keys import KeyMaterial
from taprootsend.sender import SpendState, TaprootSender
from taprootsend.utxo import UnspentOutput


class FakeUtxoSource:
    def __init__(self, utxos, fee_estimates):
        self.utxos = utxos
        self.fee_estimates = fee_estimates
        self.addresses = []

    def list_unspent(self, address):
        self.addresses.append(address)
        return list(self.utxos)

    def get_fee_estimates(self):
        return dict(self.fee_estimates)


class TestTaprootSender(unittest.TestCase):
    maxDiff = None

    def setUp(self):
        setup("testnet")
        self.key_hex = KeyMaterial.from_wif(
            "cV3R88re3AZSBnWhBBNdiCKTfwpMKkYYjdiR13HQzsU7zoRNX7JL"
        ).private_key.to_bytes().hex()
        self.taproot_address = (
            KeyMaterial.from_hex(self.key_hex)
            .public_key()
            .get_taproot_address()
            .to_string()
        )
        self.to_address = "mtVHHCqCECGwiMbMoZe8ayhJHuTdDbYWdJ"
        self.utxo = UnspentOutput(
            "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
            1,
            100000,
            True,
        )
        self.unconfirmed = UnspentOutput("aa" * 32, 0, 500000, False)
        self.source = FakeUtxoSource(
            [self.unconfirmed, self.utxo], {"1": 500, "6": 300}
        )
        self.broadcaster = MagicMock()
        self.broadcaster.broadcast.return_value = "ff" * 32

    def _sender(self, supplier=None, source=None, **kwargs):
        if supplier is None:
            supplier = lambda: self.key_hex
        return TaprootSender(
            supplier,
            source if source is not None else self.source,
            self.broadcaster,
            **kwargs,
        )

    def test_load_key(self):
        sender = self._sender()
        self.assertEqual(sender.state, SpendState.KEY_PENDING)
        self.assertIsNotNone(sender.load_key())
        self.assertEqual(sender.state, SpendState.KEY_READY)

    def test_no_key(self):
        sender = self._sender(supplier=lambda: None)
        self.assertIsNone(sender.load_key())
        self.assertEqual(sender.state, SpendState.NO_KEY)
        with self.assertRaises(InvalidKeyError):
            sender.get_address("taproot")
        with self.assertRaises(InvalidKeyError):
            sender.send(self.to_address)
        self.broadcaster.broadcast.assert_not_called()

    def test_key_supplier_failure(self):
        def supplier():
            raise OSError("vault unavailable")

        sender = self._sender(supplier=supplier)
        self.assertIsNone(sender.load_key())
        self.assertEqual(sender.state, SpendState.NO_KEY)

    def test_invalid_key(self):
        sender = self._sender(supplier=lambda: "not a key")
        with self.assertRaises(InvalidKeyError):
            sender.load_key()
        self.assertEqual(sender.state, SpendState.FAILED)
        self.assertEqual(sender.failed_at, SpendState.KEY_PENDING)

    def test_get_address(self):
        sender = self._sender()
        self.assertEqual(sender.get_address("taproot"), self.taproot_address)
        self.assertEqual(sender.get_address("TAPROOT"), self.taproot_address)
        self.assertTrue(sender.get_address("segwit").startswith("tb1q"))
        self.assertTrue(sender.get_address("legacy").startswith(("m", "n")))
        with self.assertRaises(UnsupportedFormatError):
            sender.get_address("unknown")

    def test_explicit_network(self):
        sender = self._sender(network="mainnet")
        self.assertTrue(sender.get_address("taproot").startswith("bc1p"))

    def test_prepare_does_not_broadcast(self):
        sender = self._sender()
        result = sender.prepare(self.to_address)

        self.assertEqual(sender.state, SpendState.SIGNED)
        self.assertEqual(self.source.addresses, [self.taproot_address])
        self.assertEqual(result.utxo, self.utxo)
        self.assertEqual(result.send_amount, 99400)
        self.assertEqual(result.fee, 600)
        self.assertIsNone(result.txid)
        self.broadcaster.broadcast.assert_not_called()

        tx = result.signed_transaction.transaction
        self.assertEqual(len(tx.inputs), 1)
        self.assertEqual(len(tx.outputs), 1)
        self.assertEqual(tx.outputs[0].amount, 99400)
        self.assertEqual(len(tx.witnesses[0].stack), 1)
        self.assertEqual(len(bytes.fromhex(tx.witnesses[0].stack[0])), 64)

    def test_send(self):
        sender = self._sender()
        result = sender.send(self.to_address)

        self.assertEqual(sender.state, SpendState.BROADCAST_SUCCESS)
        self.assertEqual(result.txid, "ff" * 32)
        self.broadcaster.broadcast.assert_called_once_with(result.tx_hex)

    def test_send_matches_known_transaction(self):
        source = FakeUtxoSource(
            [
                UnspentOutput(
                    "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
                    1,
                    5000,
                    True,
                )
            ],
            {"1": 1000},
        )
        sender = self._sender(source=source, fee_policy=FeePolicy(multiplier=1))
        result = sender.send(self.to_address)
        self.assertEqual(
            result.tx_hex,
            "02000000000101566e10098ddba743bedbe1e4b356377abb3ef106c6831e733863d5eea012647b0100000000ffffffff01a00f0000000000001976a9148e48a6c5108efac226d33018b5347bb24adec37a88ac01403065c743ec6261ce82abe9ea13f718702f9fb23f6d95ffe0eb59266d38416ad29b664370c8f6719a8e1354f38c58c7c6e965cec71b9b5b0f8c100d207a448bd100000000",
        )

    def test_broadcast_failure(self):
        self.broadcaster.broadcast.side_effect = TransportError("rejected", 400)
        sender = self._sender()
        with self.assertRaises(TransportError):
            sender.send(self.to_address)
        self.assertEqual(sender.state, SpendState.BROADCAST_FAILURE)
        self.assertEqual(sender.failed_at, SpendState.SIGNED)

    def test_broadcaster_connection_error(self):
        self.broadcaster.broadcast.side_effect = ConnectionError("connection reset")
        sender = self._sender()
        with self.assertRaises(ConnectionError):
            sender.send(self.to_address)
        self.assertEqual(sender.state, SpendState.BROADCAST_FAILURE)
        self.assertEqual(sender.failed_at, SpendState.SIGNED)

    def test_utxo_source_connection_error(self):
        source = MagicMock()
        source.list_unspent.side_effect = ConnectionError("connection reset")
        sender = self._sender(source=source)
        with self.assertRaises(ConnectionError):
            sender.prepare(self.to_address)
        self.assertEqual(sender.state, SpendState.FAILED)
        self.assertEqual(sender.failed_at, SpendState.ADDRESS_DERIVED)

    def test_fraction_left_after_fee(self):
        source = FakeUtxoSource(
            [UnspentOutput(self.utxo.txid, 1, 601, True)], {"1": 500.5}
        )
        sender = self._sender(source=source)
        with self.assertRaises(InsufficientFundsError):
            sender.prepare(self.to_address)
        self.assertEqual(sender.state, SpendState.FAILED)
        self.assertEqual(sender.failed_at, SpendState.UTXO_SELECTED)

    def test_no_confirmed_utxo(self):
        source = FakeUtxoSource([self.unconfirmed], {"1": 1})
        sender = self._sender(source=source)
        with self.assertRaises(NoSpendableOutputError):
            sender.send(self.to_address)
        self.assertEqual(sender.state, SpendState.FAILED)
        self.assertEqual(sender.failed_at, SpendState.ADDRESS_DERIVED)
        self.broadcaster.broadcast.assert_not_called()

    def test_insufficient_funds(self):
        source = FakeUtxoSource(
            [UnspentOutput(self.utxo.txid, 1, 500, True)], {"1": 500}
        )
        sender = self._sender(source=source)
        with self.assertRaises(InsufficientFundsError):
            sender.send(self.to_address)
        self.assertEqual(sender.state, SpendState.FAILED)
        self.assertEqual(sender.failed_at, SpendState.UTXO_SELECTED)
        self.broadcaster.broadcast.assert_not_called()

    def test_utxo_source_failure(self):
        source = MagicMock()
        source.list_unspent.side_effect = TransportError("timeout")
        sender = self._sender(source=source)
        with self.assertRaises(TransportError):
            sender.prepare(self.to_address)
        self.assertEqual(sender.state, SpendState.FAILED)
        self.assertEqual(sender.failed_at, SpendState.ADDRESS_DERIVED)

    def test_no_broadcaster(self):
        sender = TaprootSender(lambda: self.key_hex, self.source)
        with self.assertRaises(TransportError):
            sender.send(self.to_address)


if __name__ == "__main__":
    unittest.main()
