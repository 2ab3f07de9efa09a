# Copyright (C) 2018-2025 The taproot-send developers
#
# This file is part of taproot-send
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of taproot-send, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from __future__ import annotations

import logging
from typing import Optional, Union

from taprootsend.address import address_from_string
from taprootsend.constants import DEFAULT_TX_LOCKTIME, DEFAULT_TX_SEQUENCE, DEFAULT_TX_VERSION
from taprootsend.errors import MalformedUtxoError, SigningError
from taprootsend.keys import TweakedKeyPair
from taprootsend.psbt import PSBT, PSBTInput
from taprootsend.script import Script
from taprootsend.setup import resolve_network
from taprootsend.transactions import Transaction, TxInput, TxOutput
from taprootsend.utxo import UnspentOutput


logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Builds the one input, one output PSBT that spends a taproot UTXO.

    There is no change output: the whole UTXO value minus the fee goes to the
    destination.

    Attributes
    ----------
    network : str
        network used to decode destination addresses
    version : bytes
        transaction version (default 2)
    locktime : bytes
        transaction locktime (default 0)
    sequence : bytes
        input sequence (default 0xffffffff)
    """

    def __init__(
        self,
        network: Optional[str] = None,
        version: bytes = DEFAULT_TX_VERSION,
        locktime: bytes = DEFAULT_TX_LOCKTIME,
        sequence: bytes = DEFAULT_TX_SEQUENCE,
    ) -> None:
        self.network = resolve_network(network)
        self.version = version
        self.locktime = locktime
        self.sequence = sequence

    def build(
        self,
        utxo: UnspentOutput,
        destination_address: str,
        send_amount: int,
        account_output_script: Optional[Union[Script, bytes]],
        internal_key: bytes,
    ) -> PSBT:
        """Returns the unsigned PSBT

        Parameters
        ----------
        utxo : UnspentOutput
            the output to spend
        destination_address : str
            where send_amount goes
        send_amount : int
            satoshis of the single output
        account_output_script : Script or bytes
            the scriptPubKey of the spent output (the taproot address script)
        internal_key : bytes
            the 32 byte x-only internal key recorded for the signer

        Raises
        ------
        MalformedUtxoError
            if the UTXO value is not positive, its txid is malformed or the
            output script is missing
        ValueError
            if send_amount is not positive or exceeds the UTXO value
        InvalidAddressError
            if the destination cannot be decoded
        """
        if utxo.value <= 0:
            raise MalformedUtxoError("UTXO value must be positive", utxo)
        if isinstance(account_output_script, bytes):
            account_output_script = (
                Script.from_raw(account_output_script) if account_output_script else None
            )
        if account_output_script is None or not account_output_script.get_script():
            raise MalformedUtxoError("The spent output script is missing", utxo)

        if isinstance(send_amount, bool) or not isinstance(send_amount, int):
            raise ValueError("Send amount must be an integer number of satoshis")
        if send_amount <= 0:
            raise ValueError("Send amount must be positive")
        if send_amount > utxo.value:
            raise ValueError("Send amount exceeds the UTXO value")
        if len(internal_key) != 32:
            raise ValueError("Internal key must be 32 bytes")

        try:
            txin = TxInput(utxo.txid, utxo.vout, sequence=self.sequence)
        except ValueError as e:
            raise MalformedUtxoError(f"Invalid UTXO outpoint: {e}", utxo) from e

        destination = address_from_string(destination_address, self.network)
        txout = TxOutput(send_amount, destination.to_script_pub_key())

        psbt = PSBT(Transaction([], [], self.locktime, self.version))
        psbt_input = PSBTInput()
        psbt_input.witness_utxo = TxOutput(utxo.value, account_output_script)
        psbt_input.tap_internal_key = internal_key
        psbt.add_input(txin, psbt_input)
        psbt.add_output(txout)

        logger.debug(
            "built spend of %s:%d sending %d to %s",
            utxo.txid,
            utxo.vout,
            send_amount,
            destination_address,
        )
        return psbt


class SignedTransaction:
    """A finalized, fully witnessed transaction ready for broadcast.

    Attributes
    ----------
    transaction : Transaction
        the underlying transaction (a copy is returned by the property)
    txid : str
    wtxid : str
    size : int
    vsize : int
    """

    def __init__(self, transaction: Transaction) -> None:
        if not transaction.has_segwit or len(transaction.witnesses) != len(
            transaction.inputs
        ):
            raise SigningError("Transaction is not fully witnessed")
        self._transaction = Transaction.copy(transaction)
        self._raw = self._transaction.to_bytes()

    @classmethod
    def from_hex(cls, tx_hex: str) -> "SignedTransaction":
        return cls(Transaction.from_raw(tx_hex))

    @property
    def transaction(self) -> Transaction:
        return Transaction.copy(self._transaction)

    def to_wire_bytes(self) -> bytes:
        return self._raw

    def to_hex(self) -> str:
        return self._raw.hex()

    @property
    def txid(self) -> str:
        return self._transaction.get_txid()

    @property
    def wtxid(self) -> str:
        return self._transaction.get_wtxid()

    @property
    def size(self) -> int:
        return len(self._raw)

    @property
    def vsize(self) -> int:
        return self._transaction.get_vsize()

    def __repr__(self) -> str:
        return f"SignedTransaction(txid={self.txid!r})"


class Signer:
    """Signs and finalizes key path taproot PSBTs"""

    def sign_and_finalize(
        self, unsigned_tx: PSBT, tweaked_key_pair: TweakedKeyPair
    ) -> SignedTransaction:
        """Signs every input with the tweaked key pair, finalizes the PSBT
        and returns the extracted transaction

        Raises
        ------
        SigningError
            if the PSBT is already finalized or does not match the key pair
        """
        if not unsigned_tx.inputs:
            raise SigningError("Transaction has no inputs to sign")
        for index in range(len(unsigned_tx.inputs)):
            unsigned_tx.sign_taproot_key_path(index, tweaked_key_pair)
        unsigned_tx.finalize()

        signed = SignedTransaction(unsigned_tx.extract_transaction())
        logger.info("signed transaction %s (%d vbytes)", signed.txid, signed.vsize)
        return signed
