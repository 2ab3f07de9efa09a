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

import struct
from typing import Any, List, Union

from taprootsend.utils import b_to_h, h_to_b


OP_CODES = {
    # constants
    "OP_0": b"\x00",
    "OP_FALSE": b"\x00",
    "OP_PUSHDATA1": b"\x4c",
    "OP_PUSHDATA2": b"\x4d",
    "OP_PUSHDATA4": b"\x4e",
    "OP_1NEGATE": b"\x4f",
    "OP_1": b"\x51",
    "OP_TRUE": b"\x51",
    "OP_2": b"\x52",
    "OP_3": b"\x53",
    "OP_4": b"\x54",
    "OP_5": b"\x55",
    "OP_6": b"\x56",
    "OP_7": b"\x57",
    "OP_8": b"\x58",
    "OP_9": b"\x59",
    "OP_10": b"\x5a",
    "OP_11": b"\x5b",
    "OP_12": b"\x5c",
    "OP_13": b"\x5d",
    "OP_14": b"\x5e",
    "OP_15": b"\x5f",
    "OP_16": b"\x60",
    # flow control
    "OP_NOP": b"\x61",
    "OP_IF": b"\x63",
    "OP_NOTIF": b"\x64",
    "OP_ELSE": b"\x67",
    "OP_ENDIF": b"\x68",
    "OP_VERIFY": b"\x69",
    "OP_RETURN": b"\x6a",
    # stack
    "OP_TOALTSTACK": b"\x6b",
    "OP_FROMALTSTACK": b"\x6c",
    "OP_IFDUP": b"\x73",
    "OP_DEPTH": b"\x74",
    "OP_DROP": b"\x75",
    "OP_DUP": b"\x76",
    "OP_NIP": b"\x77",
    "OP_OVER": b"\x78",
    "OP_PICK": b"\x79",
    "OP_ROLL": b"\x7a",
    "OP_ROT": b"\x7b",
    "OP_SWAP": b"\x7c",
    "OP_TUCK": b"\x7d",
    "OP_2DROP": b"\x6d",
    "OP_2DUP": b"\x6e",
    "OP_3DUP": b"\x6f",
    "OP_2OVER": b"\x70",
    "OP_2ROT": b"\x71",
    "OP_2SWAP": b"\x72",
    # splice
    "OP_SIZE": b"\x82",
    # bitwise logic
    "OP_EQUAL": b"\x87",
    "OP_EQUALVERIFY": b"\x88",
    # arithmetic
    "OP_1ADD": b"\x8b",
    "OP_1SUB": b"\x8c",
    "OP_NEGATE": b"\x8f",
    "OP_ABS": b"\x90",
    "OP_NOT": b"\x91",
    "OP_0NOTEQUAL": b"\x92",
    "OP_ADD": b"\x93",
    "OP_SUB": b"\x94",
    "OP_BOOLAND": b"\x9a",
    "OP_BOOLOR": b"\x9b",
    "OP_NUMEQUAL": b"\x9c",
    "OP_NUMEQUALVERIFY": b"\x9d",
    "OP_NUMNOTEQUAL": b"\x9e",
    "OP_LESSTHAN": b"\x9f",
    "OP_GREATERTHAN": b"\xa0",
    "OP_LESSTHANOREQUAL": b"\xa1",
    "OP_GREATERTHANOREQUAL": b"\xa2",
    "OP_MIN": b"\xa3",
    "OP_MAX": b"\xa4",
    "OP_WITHIN": b"\xa5",
    # crypto
    "OP_RIPEMD160": b"\xa6",
    "OP_SHA1": b"\xa7",
    "OP_SHA256": b"\xa8",
    "OP_HASH160": b"\xa9",
    "OP_HASH256": b"\xaa",
    "OP_CODESEPARATOR": b"\xab",
    "OP_CHECKSIG": b"\xac",
    "OP_CHECKSIGVERIFY": b"\xad",
    "OP_CHECKMULTISIG": b"\xae",
    "OP_CHECKMULTISIGVERIFY": b"\xaf",
    "OP_CHECKSIGADD": b"\xba",
    # locktime
    "OP_NOP2": b"\xb1",
    "OP_CHECKLOCKTIMEVERIFY": b"\xb1",
    "OP_NOP3": b"\xb2",
    "OP_CHECKSEQUENCEVERIFY": b"\xb2",
}

# reverse lookup; aliases resolve to their canonical names
CODE_OPS = {}
for _name, _code in OP_CODES.items():
    if _name not in ("OP_FALSE", "OP_TRUE", "OP_NOP2", "OP_NOP3"):
        CODE_OPS[_code] = _name

# OP_PUSHDATA1/2/4 -> (struct format, width of the length field)
PUSH_DATA_FORMATS = {0x4C: ("<B", 1), 0x4D: ("<H", 2), 0x4E: ("<I", 4)}


class Script:
    """Represents a locking script in Bitcoin

    A Script contains just a list of OP_CODES and data pushes (hex strings)
    and also knows how to serialize into bytes

    Attributes
    ----------
    script : list
        the list with all the script OP_CODES and data

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the script
    to_hex()
        returns a serialized version of the script in hex
    get_script()
        returns the list of strings that makes up this script
    from_raw(scriptraw)
        parses serialized script bytes or hex (staticmethod)
    is_p2pkh(), is_p2sh(), is_p2wpkh(), is_p2wsh(), is_p2tr()
        checks the standard output templates
    get_script_type()
        determines the type of script

    Raises
    ------
    ValueError
        If string data is too large or integer is negative
    """

    def __init__(self, script: List[Any]):
        self.script = script

    def _op_push_data(self, data: str) -> bytes:
        """Converts data to appropriate OP_PUSHDATA OP code including length"""
        data_bytes = h_to_b(data)

        if len(data_bytes) < 0x4C:
            return bytes([len(data_bytes)]) + data_bytes
        elif len(data_bytes) <= 0xFF:
            return b"\x4c" + bytes([len(data_bytes)]) + data_bytes
        elif len(data_bytes) <= 0xFFFF:
            return b"\x4d" + struct.pack("<H", len(data_bytes)) + data_bytes
        elif len(data_bytes) <= 0xFFFFFFFF:
            return b"\x4e" + struct.pack("<I", len(data_bytes)) + data_bytes
        else:
            raise ValueError("Data too large. Cannot push into script")

    def to_bytes(self) -> bytes:
        """Converts the script to bytes"""
        script_bytes = b""
        for token in self.script:
            if isinstance(token, str) and token in OP_CODES:
                script_bytes += OP_CODES[token]
            elif isinstance(token, int):
                if not 0 <= token <= 16:
                    raise ValueError("Only small integers (0-16) are supported")
                script_bytes += OP_CODES["OP_" + str(token)]
            else:
                script_bytes += self._op_push_data(token)
        return script_bytes

    def to_hex(self) -> str:
        """Converts the script to hexadecimal"""
        return b_to_h(self.to_bytes())

    @staticmethod
    def from_raw(scriptraw: Union[str, bytes]) -> "Script":
        """
        Imports a Script commands list from raw bytes or hexadecimal data

        Raises
        ------
        ValueError
            if a push runs past the end of the script or an op code is unknown
        """
        if isinstance(scriptraw, str):
            raw = h_to_b(scriptraw)
        elif isinstance(scriptraw, bytes):
            raw = scriptraw
        else:
            raise TypeError("Input must be a hexadecimal string or bytes")

        commands: List[Any] = []
        index = 0
        while index < len(raw):
            op = raw[index]
            index += 1

            if 0x01 <= op <= 0x4B:
                size = op
            elif op in PUSH_DATA_FORMATS:
                fmt, width = PUSH_DATA_FORMATS[op]
                if index + width > len(raw):
                    raise ValueError("Truncated push data length")
                size = struct.unpack(fmt, raw[index : index + width])[0]
                index += width
            else:
                code = bytes([op])
                if code not in CODE_OPS:
                    raise ValueError(f"Unsupported op code: {op:#04x}")
                commands.append(CODE_OPS[code])
                continue

            if index + size > len(raw):
                raise ValueError("Script push exceeds script length")
            commands.append(b_to_h(raw[index : index + size]))
            index += size

        return Script(commands)

    def get_script(self) -> List[Any]:
        """Returns script as array of strings"""
        return self.script

    def _is_push(self, token: Any, size: int) -> bool:
        return (
            isinstance(token, str)
            and token not in OP_CODES
            and len(token) == 2 * size
        )

    def is_p2wpkh(self) -> bool:
        """P2WPKH format: OP_0 <20-byte-key-hash>"""
        ops = self.script
        return (
            len(ops) == 2
            and ops[0] in (0, "OP_0")
            and self._is_push(ops[1], 20)
        )

    def is_p2wsh(self) -> bool:
        """P2WSH format: OP_0 <32-byte-script-hash>"""
        ops = self.script
        return (
            len(ops) == 2
            and ops[0] in (0, "OP_0")
            and self._is_push(ops[1], 32)
        )

    def is_p2tr(self) -> bool:
        """P2TR format: OP_1 <32-byte-key>"""
        ops = self.script
        return (
            len(ops) == 2
            and ops[0] in (1, "OP_1")
            and self._is_push(ops[1], 32)
        )

    def is_p2sh(self) -> bool:
        """P2SH format: OP_HASH160 <20-byte-script-hash> OP_EQUAL"""
        ops = self.script
        return (
            len(ops) == 3
            and ops[0] == "OP_HASH160"
            and self._is_push(ops[1], 20)
            and ops[2] == "OP_EQUAL"
        )

    def is_p2pkh(self) -> bool:
        """P2PKH format: OP_DUP OP_HASH160 <20-byte-key-hash> OP_EQUALVERIFY OP_CHECKSIG"""
        ops = self.script
        return (
            len(ops) == 5
            and ops[0] == "OP_DUP"
            and ops[1] == "OP_HASH160"
            and self._is_push(ops[2], 20)
            and ops[3] == "OP_EQUALVERIFY"
            and ops[4] == "OP_CHECKSIG"
        )

    def get_script_type(self) -> str:
        """
        Returns one of 'p2pkh', 'p2sh', 'p2wpkh', 'p2wsh', 'p2tr' or 'unknown'
        """
        if self.is_p2pkh():
            return "p2pkh"
        elif self.is_p2sh():
            return "p2sh"
        elif self.is_p2wpkh():
            return "p2wpkh"
        elif self.is_p2wsh():
            return "p2wsh"
        elif self.is_p2tr():
            return "p2tr"
        else:
            return "unknown"

    def __str__(self) -> str:
        return str(self.script)

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, Script):
            return False
        return self.to_bytes() == _other.to_bytes()
