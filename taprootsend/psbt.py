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

import base64
import binascii
import logging
import struct
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from taprootsend.constants import TAPROOT_SIGHASH_ALL
from taprootsend.errors import SigningError
from taprootsend.keys import TweakedKeyPair, taproot_output_key
from taprootsend.script import Script
from taprootsend.transactions import Transaction, TxInput, TxOutput, TxWitnessInput
from taprootsend.utils import encode_varint, b_to_h


logger = logging.getLogger(__name__)


class PSBTInput:
    """Per input data of a PSBT; only the fields of a taproot key path spend
    are interpreted, everything else is carried in unknown"""

    def __init__(self) -> None:
        self.witness_utxo: Optional[TxOutput] = None
        self.sighash_type: Optional[int] = None
        self.tap_key_sig: Optional[bytes] = None
        self.tap_internal_key: Optional[bytes] = None
        self.final_scriptwitness: List[bytes] = []
        self.unknown: Dict[bytes, bytes] = {}

    def is_finalized(self) -> bool:
        return bool(self.final_scriptwitness)


class PSBTOutput:
    def __init__(self) -> None:
        self.tap_internal_key: Optional[bytes] = None
        self.unknown: Dict[bytes, bytes] = {}


def _read_compact_size(stream: BytesIO) -> Optional[int]:
    first = stream.read(1)
    if not first:
        return None
    widths = {0xFD: 2, 0xFE: 4, 0xFF: 8}
    if first[0] not in widths:
        return first[0]
    data = stream.read(widths[first[0]])
    if len(data) != widths[first[0]]:
        raise ValueError("Unexpected end of stream reading compact size")
    return int.from_bytes(data, "little")


def _read_exact(stream: BytesIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ValueError(f"Unexpected end of stream reading {what}")
    return data


class PSBT:
    """A partially signed bitcoin transaction (BIP-174) restricted to taproot
    key path spends (BIP-371 fields).

    Once finalize() has been called the PSBT is locked: adding inputs or
    outputs, signing or finalizing again raise SigningError.

    Attributes
    ----------
    tx : Transaction
        the unsigned transaction
    inputs : list (PSBTInput)
        per input signing data
    outputs : list (PSBTOutput)
        per output data

    Methods
    -------
    add_input(tx_input, psbt_input=None)
        appends an input
    add_output(tx_output, psbt_output=None)
        appends an output
    sign_taproot_key_path(input_index, tweaked_key_pair)
        checks the input against the key pair and adds a Schnorr signature
    finalize()
        turns signatures into final witnesses and locks the PSBT
    extract_transaction()
        returns the fully signed Transaction
    to_bytes() / to_base64()
        BIP-174 serialization
    from_bytes(psbt_bytes) / from_base64(psbt_str)
        BIP-174 parsing (classmethods)
    """

    # PSBT magic bytes and version
    MAGIC = b"psbt"
    SEPARATOR = b"\xff"
    VERSION = 0

    # Key types as defined in BIP-174 and BIP-371
    class GlobalTypes:
        UNSIGNED_TX = 0x00
        VERSION = 0xFB

    class InputTypes:
        WITNESS_UTXO = 0x01
        SIGHASH_TYPE = 0x03
        FINAL_SCRIPTWITNESS = 0x08
        TAP_KEY_SIG = 0x13
        TAP_INTERNAL_KEY = 0x17

    class OutputTypes:
        TAP_INTERNAL_KEY = 0x05

    def __init__(self, unsigned_tx: Optional[Transaction] = None) -> None:
        if unsigned_tx is None:
            self.tx = Transaction([], [])
        else:
            # scriptSigs and witnesses never belong to the unsigned transaction
            inputs = [
                TxInput(txin.txid, txin.txout_index, sequence=txin.sequence)
                for txin in unsigned_tx.inputs
            ]
            self.tx = Transaction(
                inputs,
                unsigned_tx.outputs[:],
                unsigned_tx.locktime,
                unsigned_tx.version,
            )

        self.inputs: List[PSBTInput] = [PSBTInput() for _ in self.tx.inputs]
        self.outputs: List[PSBTOutput] = [PSBTOutput() for _ in self.tx.outputs]
        self.version = self.VERSION
        self.unknown: Dict[bytes, bytes] = {}
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _ensure_not_finalized(self, action: str) -> None:
        if self._finalized:
            raise SigningError(f"Cannot {action}: the PSBT is already finalized")

    def add_input(
        self, tx_input: TxInput, psbt_input: Optional[PSBTInput] = None
    ) -> None:
        self._ensure_not_finalized("add an input")
        self.tx.inputs.append(
            TxInput(tx_input.txid, tx_input.txout_index, sequence=tx_input.sequence)
        )
        self.inputs.append(psbt_input if psbt_input is not None else PSBTInput())

    def add_output(
        self, tx_output: TxOutput, psbt_output: Optional[PSBTOutput] = None
    ) -> None:
        self._ensure_not_finalized("add an output")
        self.tx.outputs.append(tx_output)
        self.outputs.append(psbt_output if psbt_output is not None else PSBTOutput())

    def _spent_outputs(self) -> Tuple[List[Script], List[int]]:
        """Returns the scriptPubKeys and amounts of every spent output"""
        scripts, amounts = [], []
        for index, psbt_input in enumerate(self.inputs):
            if psbt_input.witness_utxo is None:
                raise SigningError(f"Input {index} has no witness UTXO")
            scripts.append(psbt_input.witness_utxo.script_pubkey)
            amounts.append(psbt_input.witness_utxo.amount)
        return scripts, amounts

    def sign_taproot_key_path(
        self, input_index: int, tweaked_key_pair: TweakedKeyPair
    ) -> bytes:
        """Signs an input by taproot key path and returns the signature

        The internal key recorded in the input must tweak to the key pair's
        public key, and the spent output must pay to that same key.

        Raises
        ------
        SigningError
            if the PSBT is finalized, the input is incomplete or the key pair
            does not match the input
        """
        self._ensure_not_finalized("sign")

        if not 0 <= input_index < len(self.inputs):
            raise SigningError(f"Input {input_index} does not exist")
        psbt_input = self.inputs[input_index]

        if psbt_input.tap_internal_key is None:
            raise SigningError(f"Input {input_index} has no taproot internal key")
        if psbt_input.witness_utxo is None:
            raise SigningError(f"Input {input_index} has no witness UTXO")
        if psbt_input.sighash_type not in (None, TAPROOT_SIGHASH_ALL):
            raise SigningError("Only the default taproot sighash is supported")

        try:
            output_key = taproot_output_key(psbt_input.tap_internal_key)
        except ValueError as e:
            raise SigningError(f"Invalid taproot internal key: {e}") from e

        if output_key != tweaked_key_pair.x_only_public_key:
            raise SigningError(
                "Signing key does not match the tweak of the input's internal key"
            )

        script_pubkey = psbt_input.witness_utxo.script_pubkey
        if script_pubkey != Script(["OP_1", b_to_h(output_key)]):
            raise SigningError("Spent output does not pay to the taproot output key")

        scripts, amounts = self._spent_outputs()
        digest = self.tx.get_transaction_taproot_digest(
            input_index, scripts, amounts, TAPROOT_SIGHASH_ALL
        )

        signature = tweaked_key_pair.sign_schnorr(digest)
        if not tweaked_key_pair.verify_schnorr(signature, digest):
            raise SigningError("Produced signature does not verify")

        psbt_input.tap_key_sig = signature
        logger.debug("signed input %d by taproot key path", input_index)
        return signature

    def finalize(self) -> None:
        """Moves every key path signature into its final witness and locks
        the PSBT

        Raises
        ------
        SigningError
            if already finalized or an input has no signature
        """
        self._ensure_not_finalized("finalize")

        for index, psbt_input in enumerate(self.inputs):
            if psbt_input.tap_key_sig is None:
                raise SigningError(f"Input {index} is not signed")

        for psbt_input in self.inputs:
            # the key path witness is the signature alone
            psbt_input.final_scriptwitness = [psbt_input.tap_key_sig]
            psbt_input.tap_key_sig = None
            psbt_input.tap_internal_key = None
            psbt_input.sighash_type = None

        self._finalized = True
        logger.debug("finalized PSBT with %d input(s)", len(self.inputs))

    def extract_transaction(self) -> Transaction:
        """Returns the network serializable transaction

        Raises
        ------
        SigningError
            if the PSBT has not been finalized
        """
        if not self._finalized:
            raise SigningError("Cannot extract a transaction before finalizing")

        tx = Transaction.copy(self.tx)
        tx.has_segwit = True
        tx.witnesses = [
            TxWitnessInput([b_to_h(item) for item in psbt_input.final_scriptwitness])
            for psbt_input in self.inputs
        ]
        return tx

    @classmethod
    def from_base64(cls, psbt_str: str) -> "PSBT":
        try:
            psbt_bytes = base64.b64decode(psbt_str, validate=True)
        except binascii.Error as e:
            raise ValueError("PSBT is not valid base64") from e
        return cls.from_bytes(psbt_bytes)

    @classmethod
    def from_bytes(cls, psbt_bytes: bytes) -> "PSBT":
        stream = BytesIO(psbt_bytes)

        # Read and verify magic
        magic = stream.read(4)
        if magic != cls.MAGIC:
            raise ValueError(f"Invalid PSBT magic: {magic.hex()}")
        if stream.read(1) != cls.SEPARATOR:
            raise ValueError("Invalid PSBT separator")

        psbt = cls()
        psbt._parse_global_section(stream)
        if not psbt.tx.inputs and not psbt.tx.outputs:
            raise ValueError("PSBT has no unsigned transaction")

        for psbt_input in psbt.inputs:
            psbt._parse_input_section(stream, psbt_input)
        for psbt_output in psbt.outputs:
            psbt._parse_output_section(stream, psbt_output)

        if stream.read(1):
            raise ValueError("Trailing data after the PSBT")

        psbt._finalized = bool(psbt.inputs) and all(
            psbt_input.is_finalized() for psbt_input in psbt.inputs
        )
        return psbt

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode("ascii")

    def to_bytes(self) -> bytes:
        result = BytesIO()

        result.write(self.MAGIC)
        result.write(self.SEPARATOR)

        self._serialize_global_section(result)
        for psbt_input in self.inputs:
            self._serialize_input_section(result, psbt_input)
        for psbt_output in self.outputs:
            self._serialize_output_section(result, psbt_output)

        return result.getvalue()

    def _read_key_value_pair(
        self, stream: BytesIO
    ) -> Optional[Tuple[int, bytes, bytes]]:
        """
        Read a key-value pair from the stream.

        Returns:
            Tuple of (key_type, key_data, value_data) or None if separator found
        """
        key_len = _read_compact_size(stream)
        if key_len is None:
            raise ValueError("Unexpected end of stream, missing separator")
        if key_len == 0:
            return None

        key = _read_exact(stream, key_len, "key")
        value_len = _read_compact_size(stream)
        if value_len is None:
            raise ValueError("Unexpected end of stream reading value length")
        value = _read_exact(stream, value_len, "value")

        return key[0], key[1:], value

    def _parse_global_section(self, stream: BytesIO) -> None:
        while True:
            pair = self._read_key_value_pair(stream)
            if pair is None:
                break

            key_type, key_data, value_data = pair
            if key_type == self.GlobalTypes.UNSIGNED_TX:
                self.tx = Transaction.from_raw(value_data)
                if self.tx.has_segwit:
                    raise ValueError("Unsigned transaction must not have witnesses")
                self.inputs = [PSBTInput() for _ in self.tx.inputs]
                self.outputs = [PSBTOutput() for _ in self.tx.outputs]
            elif key_type == self.GlobalTypes.VERSION:
                self.version = struct.unpack("<I", value_data)[0]
            else:
                self.unknown[bytes([key_type]) + key_data] = value_data

    def _parse_input_section(self, stream: BytesIO, psbt_input: PSBTInput) -> None:
        while True:
            pair = self._read_key_value_pair(stream)
            if pair is None:
                break

            key_type, key_data, value_data = pair
            if key_type == self.InputTypes.WITNESS_UTXO:
                amount = struct.unpack("<q", value_data[:8])[0]
                script_stream = BytesIO(value_data[8:])
                script_len = _read_compact_size(script_stream)
                if script_len is None:
                    raise ValueError("Witness UTXO has no script")
                script = _read_exact(script_stream, script_len, "witness UTXO script")
                psbt_input.witness_utxo = TxOutput(amount, Script.from_raw(script))
            elif key_type == self.InputTypes.SIGHASH_TYPE:
                psbt_input.sighash_type = struct.unpack("<I", value_data)[0]
            elif key_type == self.InputTypes.TAP_KEY_SIG:
                if len(value_data) not in (64, 65):
                    raise ValueError("Invalid taproot key signature length")
                psbt_input.tap_key_sig = value_data
            elif key_type == self.InputTypes.TAP_INTERNAL_KEY:
                if len(value_data) != 32:
                    raise ValueError("Invalid taproot internal key length")
                psbt_input.tap_internal_key = value_data
            elif key_type == self.InputTypes.FINAL_SCRIPTWITNESS:
                witness_stream = BytesIO(value_data)
                count = _read_compact_size(witness_stream) or 0
                items = []
                for _ in range(count):
                    size = _read_compact_size(witness_stream)
                    if size is None:
                        raise ValueError("Truncated final script witness")
                    items.append(_read_exact(witness_stream, size, "witness item"))
                psbt_input.final_scriptwitness = items
            else:
                psbt_input.unknown[bytes([key_type]) + key_data] = value_data

    def _parse_output_section(
        self, stream: BytesIO, psbt_output: PSBTOutput
    ) -> None:
        while True:
            pair = self._read_key_value_pair(stream)
            if pair is None:
                break

            key_type, key_data, value_data = pair
            if key_type == self.OutputTypes.TAP_INTERNAL_KEY:
                psbt_output.tap_internal_key = value_data
            else:
                psbt_output.unknown[bytes([key_type]) + key_data] = value_data

    def _serialize_global_section(self, result: BytesIO) -> None:
        # the unsigned transaction always uses the non witness serialization
        self._write_key_value_pair(
            result,
            self.GlobalTypes.UNSIGNED_TX,
            b"",
            self.tx.to_bytes(include_witness=False),
        )
        if self.version:
            self._write_key_value_pair(
                result, self.GlobalTypes.VERSION, b"", struct.pack("<I", self.version)
            )
        self._write_unknown(result, self.unknown)
        result.write(b"\x00")

    def _serialize_input_section(self, result: BytesIO, psbt_input: PSBTInput) -> None:
        if psbt_input.witness_utxo is not None:
            self._write_key_value_pair(
                result,
                self.InputTypes.WITNESS_UTXO,
                b"",
                psbt_input.witness_utxo.to_bytes(),
            )
        if psbt_input.sighash_type is not None:
            self._write_key_value_pair(
                result,
                self.InputTypes.SIGHASH_TYPE,
                b"",
                struct.pack("<I", psbt_input.sighash_type),
            )
        if psbt_input.final_scriptwitness:
            witness = TxWitnessInput(
                [b_to_h(item) for item in psbt_input.final_scriptwitness]
            )
            self._write_key_value_pair(
                result, self.InputTypes.FINAL_SCRIPTWITNESS, b"", witness.to_bytes()
            )
        if psbt_input.tap_key_sig is not None:
            self._write_key_value_pair(
                result, self.InputTypes.TAP_KEY_SIG, b"", psbt_input.tap_key_sig
            )
        if psbt_input.tap_internal_key is not None:
            self._write_key_value_pair(
                result,
                self.InputTypes.TAP_INTERNAL_KEY,
                b"",
                psbt_input.tap_internal_key,
            )
        self._write_unknown(result, psbt_input.unknown)
        result.write(b"\x00")

    def _serialize_output_section(
        self, result: BytesIO, psbt_output: PSBTOutput
    ) -> None:
        if psbt_output.tap_internal_key is not None:
            self._write_key_value_pair(
                result,
                self.OutputTypes.TAP_INTERNAL_KEY,
                b"",
                psbt_output.tap_internal_key,
            )
        self._write_unknown(result, psbt_output.unknown)
        result.write(b"\x00")

    def _write_unknown(self, result: BytesIO, unknown: Dict[bytes, bytes]) -> None:
        for key, value in unknown.items():
            self._write_key_value_pair(result, key[0], key[1:], value)

    def _write_key_value_pair(
        self, result: BytesIO, key_type: int, key_data: bytes, value_data: bytes
    ) -> None:
        """Write a key-value pair to the stream."""
        key = bytes([key_type]) + key_data
        result.write(encode_varint(len(key)))
        result.write(key)
        result.write(encode_varint(len(value_data)))
        result.write(value_data)
