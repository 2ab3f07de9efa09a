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

import hashlib
import struct
from typing import List, Optional, Union

from taprootsend.constants import (
    DEFAULT_TX_SEQUENCE,
    DEFAULT_TX_LOCKTIME,
    DEFAULT_TX_VERSION,
    SEGWIT_MARKER,
    SEGWIT_FLAG,
    SIGHASH_ALL,
    TAPROOT_SIGHASH_ALL,
)
from taprootsend.script import Script
from taprootsend.utils import (
    encode_varint,
    parse_compact_size,
    prepend_compact_size,
    tagged_hash,
    double_sha256,
    h_to_b,
    b_to_h,
)


class _Reader:
    """Cursor over raw transaction bytes that fails loudly on truncation"""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.cursor = 0

    def read(self, size: int) -> bytes:
        if self.cursor + size > len(self.data):
            raise ValueError("Raw transaction data is truncated")
        chunk = self.data[self.cursor : self.cursor + size]
        self.cursor += size
        return chunk

    def read_compact_size(self) -> int:
        value, size = parse_compact_size(self.data[self.cursor : self.cursor + 9])
        self.cursor += size
        return value

    def read_var_bytes(self) -> bytes:
        return self.read(self.read_compact_size())

    def peek(self, size: int) -> bytes:
        return self.data[self.cursor : self.cursor + size]

    def at_end(self) -> bool:
        return self.cursor == len(self.data)


class TxInput:
    """Represents a transaction input.

    A transaction input requires a transaction id of a UTXO and the index of
    that UTXO.

    Attributes
    ----------
    txid : str
        the transaction id as a hex string (little-endian as displayed by
        tools)
    txout_index : int
        the index of the UTXO that we want to spend
    script_sig : Script
        the unlocking script; always empty for segwit inputs
    sequence : bytes
        the input sequence (for timelocks, RBF, etc.)

    Methods
    -------
    to_bytes()
        serializes TxInput to bytes
    outpoint_bytes()
        returns the serialized outpoint (txid and index)
    copy()
        creates a copy of the object (classmethod)
    """

    def __init__(
        self,
        txid: str,
        txout_index: int,
        script_sig: Optional[Script] = None,
        sequence: Union[str, bytes] = DEFAULT_TX_SEQUENCE,
    ) -> None:
        """See TxInput description"""

        if len(txid) != 64:
            raise ValueError("txid must be 32 bytes as a hex string")
        h_to_b(txid)
        if not 0 <= txout_index <= 0xFFFFFFFF:
            raise ValueError("Output index out of range")

        # expected in the format used for displaying Bitcoin hashes
        self.txid = txid.lower()
        self.txout_index = txout_index
        self.script_sig = script_sig if script_sig is not None else Script([])

        if isinstance(sequence, str):
            self.sequence = h_to_b(sequence)
        else:
            self.sequence = sequence

    def outpoint_bytes(self) -> bytes:
        # the displayed txid is little-endian so it is reversed
        return h_to_b(self.txid)[::-1] + struct.pack("<L", self.txout_index)

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""
        script_sig_bytes = self.script_sig.to_bytes()
        return (
            self.outpoint_bytes()
            + encode_varint(len(script_sig_bytes))
            + script_sig_bytes
            + self.sequence
        )

    @classmethod
    def copy(cls, txin: "TxInput") -> "TxInput":
        return cls(txin.txid, txin.txout_index, txin.script_sig, txin.sequence)

    def __str__(self) -> str:
        return str(
            {
                "txid": self.txid,
                "txout_index": self.txout_index,
                "script_sig": self.script_sig,
                "sequence": self.sequence.hex(),
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class TxWitnessInput:
    """A list of the witness items required to satisfy the locking conditions
       of a segwit input (aka witness stack).

    Attributes
    ----------
    stack : list
        the witness items (hex str) list

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the witness items list
    """

    def __init__(self, stack: List[str]) -> None:
        self.stack = list(stack)

    def to_bytes(self) -> bytes:
        """Converts to bytes, item count first"""
        stack_bytes = encode_varint(len(self.stack))
        for item in self.stack:
            stack_bytes += prepend_compact_size(h_to_b(item))
        return stack_bytes

    @classmethod
    def copy(cls, txwin: "TxWitnessInput") -> "TxWitnessInput":
        return cls(txwin.stack)

    def __str__(self) -> str:
        return str({"witness_items": self.stack})

    def __repr__(self) -> str:
        return self.__str__()


class TxOutput:
    """Represents a transaction output

    Attributes
    ----------
    amount : int
        the value we want to send to this output in satoshis
    script_pubkey : Script
        the script that will lock this amount
    """

    def __init__(self, amount: int, script_pubkey: Script) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise TypeError("Amount needs to be in satoshis as an integer")
        if amount < 0:
            raise ValueError("Amount cannot be negative")

        self.amount = amount
        self.script_pubkey = script_pubkey

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""

        # internally all little-endian except hashes
        amount_bytes = struct.pack("<q", self.amount)
        script_bytes = self.script_pubkey.to_bytes()
        return amount_bytes + encode_varint(len(script_bytes)) + script_bytes

    @classmethod
    def copy(cls, txout: "TxOutput") -> "TxOutput":
        return cls(txout.amount, txout.script_pubkey)

    def __str__(self) -> str:
        return str({"amount": self.amount, "script_pubkey": self.script_pubkey})

    def __repr__(self) -> str:
        return self.__str__()


class Transaction:
    """Represents a Bitcoin transaction

    Attributes
    ----------
    inputs : list (TxInput)
        A list of all the transaction inputs
    outputs : list (TxOutput)
        A list of all the transaction outputs
    locktime : bytes
        The transaction's locktime parameter
    version : bytes
        The transaction version
    has_segwit : bool
        Specifies a tx that includes segwit inputs
    witnesses : list (TxWitnessInput)
        The witness structure that corresponds to the inputs

    Methods
    -------
    to_bytes(include_witness=True)
        Serializes Transaction to bytes
    to_hex()
        converts result of to_bytes to hexadecimal string
    from_raw(raw)
        Instantiates a Transaction from serialized raw data (classmethod)
    get_txid()
        Calculates txid and returns it
    get_wtxid()
        Calculates tx hash (wtxid) and returns it
    get_size()
        Calculates the tx size
    get_vsize()
        Calculates the tx segwit size
    get_transaction_taproot_digest(txin_index, script_pubkeys, amounts, sighash)
        returns the key path taproot digest of an input
    """

    def __init__(
        self,
        inputs: Optional[List[TxInput]] = None,
        outputs: Optional[List[TxOutput]] = None,
        locktime: Union[str, bytes] = DEFAULT_TX_LOCKTIME,
        version: bytes = DEFAULT_TX_VERSION,
        has_segwit: bool = False,
        witnesses: Optional[List[TxWitnessInput]] = None,
    ) -> None:
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.has_segwit = has_segwit
        self.witnesses = witnesses if witnesses is not None else []

        if isinstance(locktime, str):
            self.locktime = h_to_b(locktime)
        else:
            self.locktime = locktime

        self.version = version

    def to_bytes(self, include_witness: bool = True) -> bytes:
        """Serializes transaction to bytes following the Bitcoin protocol
        serialization; the segwit marker, flag and witnesses are only written
        for segwit transactions when include_witness is set"""

        data = self.version
        segwit = include_witness and self.has_segwit
        if segwit:
            data += SEGWIT_MARKER + SEGWIT_FLAG

        data += encode_varint(len(self.inputs))
        for txin in self.inputs:
            data += txin.to_bytes()

        data += encode_varint(len(self.outputs))
        for txout in self.outputs:
            data += txout.to_bytes()

        if segwit:
            if len(self.witnesses) > len(self.inputs):
                raise ValueError("More witnesses than inputs")
            for witness in self.witnesses:
                data += witness.to_bytes()
            # inputs without witness data get an empty stack
            data += b"\x00" * (len(self.inputs) - len(self.witnesses))

        return data + self.locktime

    def to_hex(self) -> str:
        """Serializes transaction to hex string"""
        return b_to_h(self.to_bytes())

    def serialize(self) -> str:
        """Alias for to_hex()"""
        return self.to_hex()

    def get_txid(self) -> str:
        """Calculates the transaction id (txid) and returns it"""
        # the txid never commits to segwit data
        return b_to_h(double_sha256(self.to_bytes(include_witness=False))[::-1])

    def get_wtxid(self) -> str:
        """Calculates the witness transaction id (wtxid) and returns it"""
        return b_to_h(double_sha256(self.to_bytes())[::-1])

    def get_size(self) -> int:
        """Calculates the transaction size in bytes (including witness data)"""
        return len(self.to_bytes())

    def get_vsize(self) -> int:
        """Calculates the virtual transaction size (for fee calculations in segwit)

        vsize = ceil(weight / 4) where weight = 3 * base_size + total_size
        """
        if not self.has_segwit:
            return self.get_size()

        base_size = len(self.to_bytes(include_witness=False))
        weight = 3 * base_size + self.get_size()
        return (weight + 3) // 4

    @classmethod
    def from_raw(cls, raw: Union[str, bytes]) -> "Transaction":
        """
        Imports a Transaction from raw bytes or hexadecimal data.

        Raises
        ------
        ValueError
            if the data is truncated or has trailing bytes
        """
        reader = _Reader(h_to_b(raw) if isinstance(raw, str) else raw)

        version = reader.read(4)

        has_segwit = False
        if reader.peek(2) == SEGWIT_MARKER + SEGWIT_FLAG:
            has_segwit = True
            reader.read(2)

        inputs = []
        for _ in range(reader.read_compact_size()):
            txid = b_to_h(reader.read(32)[::-1])
            txout_index = struct.unpack("<L", reader.read(4))[0]
            script_sig = Script.from_raw(reader.read_var_bytes())
            sequence = reader.read(4)
            inputs.append(TxInput(txid, txout_index, script_sig, sequence))

        outputs = []
        for _ in range(reader.read_compact_size()):
            amount = struct.unpack("<q", reader.read(8))[0]
            script_pubkey = Script.from_raw(reader.read_var_bytes())
            outputs.append(TxOutput(amount, script_pubkey))

        witnesses = []
        if has_segwit:
            for _ in inputs:
                stack = [
                    b_to_h(reader.read_var_bytes())
                    for _ in range(reader.read_compact_size())
                ]
                witnesses.append(TxWitnessInput(stack))

        locktime = reader.read(4)
        if not reader.at_end():
            raise ValueError("Trailing data after the transaction locktime")

        return cls(
            inputs=inputs,
            outputs=outputs,
            locktime=locktime,
            version=version,
            has_segwit=has_segwit,
            witnesses=witnesses,
        )

    @classmethod
    def copy(cls, tx: "Transaction") -> "Transaction":
        ins = [TxInput.copy(txin) for txin in tx.inputs]
        outs = [TxOutput.copy(txout) for txout in tx.outputs]
        wits = [TxWitnessInput.copy(witness) for witness in tx.witnesses]
        return cls(ins, outs, tx.locktime, tx.version, tx.has_segwit, wits)

    def __str__(self) -> str:
        return str(
            {
                "inputs": self.inputs,
                "outputs": self.outputs,
                "has_segwit": self.has_segwit,
                "witnesses": self.witnesses,
                "locktime": self.locktime.hex(),
                "version": self.version.hex(),
            }
        )

    def __repr__(self) -> str:
        return self.__str__()

    def get_transaction_taproot_digest(
        self,
        txin_index: int,
        script_pubkeys: List[Script],
        amounts: List[int],
        sighash: int = TAPROOT_SIGHASH_ALL,
    ) -> bytes:
        """Returns the segwit v1 (taproot) key path digest of an input.
        https://github.com/bitcoin/bips/blob/master/bip-0341.mediawiki

        Only SIGHASH_DEFAULT (TAPROOT_SIGHASH_ALL) and SIGHASH_ALL are
        supported; both commit to every input and output.

        Attributes
        ----------
        txin_index : int
            The index of the input that we wish to sign
        script_pubkeys : list(Script)
            The scriptPubkeys that correspond to all the inputs/UTXOs
        amounts : list(int)
            The amounts in satoshis that correspond to all the inputs/UTXOs
        sighash : int
            The type of the signature hash to be created
        """

        if sighash not in (TAPROOT_SIGHASH_ALL, SIGHASH_ALL):
            raise ValueError(f"Unsupported taproot sighash type: {sighash:#04x}")
        if not 0 <= txin_index < len(self.inputs):
            raise IndexError("Input index out of range")
        if len(script_pubkeys) != len(self.inputs) or len(amounts) != len(self.inputs):
            raise ValueError("A scriptPubKey and an amount are required per input")

        # epoch, sighash type, version and locktime
        tx_for_signing = bytes([0]) + bytes([sighash]) + self.version + self.locktime

        # the SHA256 of the serialization of all input outpoints
        hash_prevouts = b"".join(txin.outpoint_bytes() for txin in self.inputs)
        tx_for_signing += hashlib.sha256(hash_prevouts).digest()

        # the SHA256 of the serialization of all input amounts
        hash_amounts = b"".join(struct.pack("<q", a) for a in amounts)
        tx_for_signing += hashlib.sha256(hash_amounts).digest()

        # the SHA256 of all spent outputs' scriptPubKeys
        hash_script_pubkeys = b"".join(
            prepend_compact_size(scr.to_bytes()) for scr in script_pubkeys
        )
        tx_for_signing += hashlib.sha256(hash_script_pubkeys).digest()

        # the SHA256 of the serialization of all input nSequence
        hash_sequences = b"".join(txin.sequence for txin in self.inputs)
        tx_for_signing += hashlib.sha256(hash_sequences).digest()

        hash_outputs = b"".join(txout.to_bytes() for txout in self.outputs)
        tx_for_signing += hashlib.sha256(hash_outputs).digest()

        # spend type 0: key path, no annex
        tx_for_signing += bytes([0])
        tx_for_signing += txin_index.to_bytes(4, "little")

        return tagged_hash(tx_for_signing, "TapSighash")
