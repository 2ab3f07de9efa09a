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
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taprootsend.keys import KeyMaterial

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union

from base58check import b58encode, b58decode  # type: ignore
from bech32 import encode as bech32_encode, decode as bech32_decode  # type: ignore

from taprootsend.constants import (
    NETWORK_P2PKH_PREFIXES,
    NETWORK_P2SH_PREFIXES,
    NETWORK_SEGWIT_PREFIXES,
    P2PKH_ADDRESS,
    P2SH_ADDRESS,
    P2WPKH_ADDRESS_V0,
    P2WSH_ADDRESS_V0,
    P2TR_ADDRESS_V1,
)
from taprootsend.errors import InvalidAddressError, UnsupportedFormatError
from taprootsend.script import Script
from taprootsend.setup import resolve_network
from taprootsend.utils import b_to_h, h_to_b, double_sha256


logger = logging.getLogger(__name__)


class AddressFormat(Enum):
    """The address formats that can be derived from a single key"""

    LEGACY = "legacy"
    SEGWIT_V0 = "segwit"
    TAPROOT_KEY_PATH = "taproot"

    @classmethod
    def parse(cls, value: Union["AddressFormat", str]) -> "AddressFormat":
        """Returns the format for an enum member or one of its string aliases

        Raises
        ------
        UnsupportedFormatError
            if the value does not name a known format
        """
        if isinstance(value, AddressFormat):
            return value
        if isinstance(value, str):
            fmt = _FORMAT_ALIASES.get(value.strip().lower())
            if fmt is not None:
                return fmt
        raise UnsupportedFormatError(value)


_FORMAT_ALIASES = {
    "legacy": AddressFormat.LEGACY,
    "btc": AddressFormat.LEGACY,
    "p2pkh": AddressFormat.LEGACY,
    "segwit": AddressFormat.SEGWIT_V0,
    "segwit_v0": AddressFormat.SEGWIT_V0,
    "p2wpkh": AddressFormat.SEGWIT_V0,
    "taproot": AddressFormat.TAPROOT_KEY_PATH,
    "taproot_key_path": AddressFormat.TAPROOT_KEY_PATH,
    "p2tr": AddressFormat.TAPROOT_KEY_PATH,
}


class Address(ABC):
    """Represents a Bitcoin base58check address (P2PKH or P2SH)

    Attributes
    ----------
    hash160 : str
        the hash160 string representation of the address; hash160 represents
        two consequtive hashes of the public key or the redeem script, first
        a SHA-256 and then an RIPEMD-160
    network : str
        the network the address belongs to

    Methods
    -------
    from_address(address, network=None)
        instantiates an object from address string encoding (classmethod)
    from_hash160(hash160_str, network=None)
        instantiates an object from a hash160 hex string (classmethod)
    to_string()
        returns the address's string encoding
    to_hash160()
        returns the address's hash160 hex string
    to_script_pub_key()
        returns the scriptPubKey that corresponds to this address
    get_type()
        returns the type of address

    Raises
    ------
    InvalidAddressError
        If the address, hash160 or network prefix is not valid
    """

    prefixes: dict = {}

    def __init__(
        self,
        address: Optional[str] = None,
        hash160: Optional[str] = None,
        network: Optional[str] = None,
    ) -> None:
        self.network = resolve_network(network)

        if hash160:
            if len(hash160) != 40:
                raise InvalidAddressError(hash160, "hash160 must be 20 bytes")
            self.hash160 = hash160.lower()
        elif address:
            self.hash160 = self._address_to_hash160(address)
        else:
            raise TypeError("A valid address or hash160 is required")

    @classmethod
    def from_address(cls, address: str, network: Optional[str] = None) -> "Address":
        """Creates an address object from an address string"""
        return cls(address=address, network=network)

    @classmethod
    def from_hash160(cls, hash160: str, network: Optional[str] = None) -> "Address":
        """Creates an address object from a hash160 string"""
        return cls(hash160=hash160, network=network)

    def _address_to_hash160(self, address: str) -> str:
        """Converts an address to its hash160 equivalent, verifying the
        checksum and the network prefix"""
        try:
            data_checksum = b58decode(address.encode("utf-8"))
        except (ValueError, KeyError) as e:
            raise InvalidAddressError(address, "not base58 encoded") from e

        data, checksum = data_checksum[:-4], data_checksum[-4:]
        if len(data) != 21:
            raise InvalidAddressError(address, "wrong length")
        if double_sha256(data)[:4] != checksum:
            raise InvalidAddressError(address, "checksum is wrong")
        if data[:1] != self.prefixes[self.network]:
            raise InvalidAddressError(
                address, f"not a {self.get_type()} address for {self.network}"
            )

        return b_to_h(data[1:])

    def to_hash160(self) -> str:
        """Returns as hash160 hex string"""
        return self.hash160

    def to_string(self) -> str:
        """Returns as address string

        |  Pseudocode:
        |      network_prefix = (1 byte version number)
        |      data = network_prefix + hash160_bytes
        |      data_hash = SHA-256( SHA-256( data ) )
        |      checksum = (first 4 bytes of data_hash)
        |      address_bytes = Base58CheckEncode( data + checksum )
        """
        data = self.prefixes[self.network] + h_to_b(self.hash160)
        checksum = double_sha256(data)[0:4]
        return b58encode(data + checksum).decode("utf-8")

    @abstractmethod
    def to_script_pub_key(self) -> Script:
        pass

    @abstractmethod
    def get_type(self) -> str:
        pass

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_string()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return False
        return (
            self.get_type() == other.get_type()
            and self.to_string() == other.to_string()
        )


class P2pkhAddress(Address):
    """Encapsulates a P2PKH address"""

    prefixes = NETWORK_P2PKH_PREFIXES

    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (P2PKH) that corresponds to this address"""
        return Script(
            ["OP_DUP", "OP_HASH160", self.hash160, "OP_EQUALVERIFY", "OP_CHECKSIG"]
        )

    def get_type(self) -> str:
        return P2PKH_ADDRESS


class P2shAddress(Address):
    """Encapsulates a P2SH address"""

    prefixes = NETWORK_P2SH_PREFIXES

    def to_script_pub_key(self) -> Script:
        """Returns the scriptPubKey (P2SH) that corresponds to this address"""
        return Script(["OP_HASH160", self.hash160, "OP_EQUAL"])

    def get_type(self) -> str:
        return P2SH_ADDRESS


class SegwitAddress(ABC):
    """Represents a Bitcoin segwit address

    Version 0 programs are bech32 encoded and version 1 (taproot) programs are
    bech32m encoded; the bech32 library picks the checksum from the version.

    Attributes
    ----------
    witness_program : str
        the witness program as a hex string
    version : int
        the segwit version
    network : str
        the network the address belongs to

    Methods
    -------
    from_address(address, network=None)
        instantiates an object from address string encoding (classmethod)
    from_witness_program(witness_program, network=None)
        instantiates an object from a witness program hex string (classmethod)
    to_witness_program()
        returns the address's witness program hex string
    to_string()
        returns the address's bech32/bech32m string encoding
    to_script_pub_key()
        returns the scriptPubKey of this address
    get_type()
        returns the type of address
    """

    version = 0
    program_length = 0

    def __init__(
        self,
        address: Optional[str] = None,
        witness_program: Optional[str] = None,
        network: Optional[str] = None,
    ) -> None:
        self.network = resolve_network(network)

        if witness_program:
            if len(witness_program) != 2 * self.program_length:
                raise InvalidAddressError(
                    witness_program,
                    f"witness program must be {self.program_length} bytes",
                )
            self.witness_program = witness_program.lower()
        elif address:
            self.witness_program = self._address_to_hash(address)
        else:
            raise TypeError("A valid address or witness program is required")

    @classmethod
    def from_address(
        cls, address: str, network: Optional[str] = None
    ) -> "SegwitAddress":
        """Creates an address object from an address string"""
        return cls(address=address, network=network)

    @classmethod
    def from_witness_program(
        cls, witness_program: str, network: Optional[str] = None
    ) -> "SegwitAddress":
        """Creates an address object from a witness program hex string"""
        return cls(witness_program=witness_program, network=network)

    def _address_to_hash(self, address: str) -> str:
        """Decodes the address and checks its version and program length"""
        hrp = NETWORK_SEGWIT_PREFIXES[self.network]
        version, program = bech32_decode(hrp, address)
        if version is None:
            raise InvalidAddressError(
                address, f"not a segwit address for {self.network}"
            )
        if version != self.version or len(program) != self.program_length:
            raise InvalidAddressError(address, f"not a {self.get_type()} address")

        return b_to_h(bytes(program))

    def to_witness_program(self) -> str:
        """Returns the witness program as hex string"""
        return self.witness_program

    def to_string(self) -> str:
        """Returns as address string"""
        hrp = NETWORK_SEGWIT_PREFIXES[self.network]
        address = bech32_encode(hrp, self.version, h_to_b(self.witness_program))
        if address is None:
            raise InvalidAddressError(self.witness_program, "cannot be bech32 encoded")
        return address

    def to_script_pub_key(self) -> Script:
        return Script([f"OP_{self.version}", self.witness_program])

    @abstractmethod
    def get_type(self) -> str:
        pass

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_string()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SegwitAddress):
            return False
        return (
            self.get_type() == other.get_type()
            and self.to_string() == other.to_string()
        )


class P2wpkhAddress(SegwitAddress):
    """Encapsulates a P2WPKH address (witness v0, 20 byte key hash)"""

    version = 0
    program_length = 20

    def get_type(self) -> str:
        return P2WPKH_ADDRESS_V0


class P2wshAddress(SegwitAddress):
    """Encapsulates a P2WSH address (witness v0, 32 byte script hash)"""

    version = 0
    program_length = 32

    def get_type(self) -> str:
        return P2WSH_ADDRESS_V0


class P2trAddress(SegwitAddress):
    """Encapsulates a P2TR address (witness v1, 32 byte tweaked x-only key)"""

    version = 1
    program_length = 32

    def get_type(self) -> str:
        return P2TR_ADDRESS_V1


AnyAddress = Union[Address, SegwitAddress]


def address_object(
    fmt: Union[AddressFormat, str],
    key_material: "KeyMaterial",
    network: Optional[str] = None,
) -> AnyAddress:
    """Derives the address object of the given format for a key.

    Legacy and segwit v0 addresses commit to the compressed public key;
    taproot addresses commit to the tweaked output key computed by
    KeyMaterial.taproot_output_key().

    Raises
    ------
    UnsupportedFormatError
        if fmt is not a known address format
    """
    fmt = AddressFormat.parse(fmt)
    network = resolve_network(network)

    if fmt is AddressFormat.LEGACY:
        hash160 = key_material.public_key().to_hash160()
        return P2pkhAddress(hash160=hash160, network=network)
    elif fmt is AddressFormat.SEGWIT_V0:
        hash160 = key_material.public_key().to_hash160()
        return P2wpkhAddress(witness_program=hash160, network=network)
    else:
        output_key = key_material.taproot_output_key()
        return P2trAddress(witness_program=b_to_h(output_key), network=network)


def derive_address(
    fmt: Union[AddressFormat, str],
    key_material: "KeyMaterial",
    network: Optional[str] = None,
) -> str:
    """Returns the address string of the given format for a key"""
    address = address_object(fmt, key_material, network).to_string()
    logger.debug("derived %s address %s", AddressFormat.parse(fmt).value, address)
    return address


def address_from_string(address: str, network: Optional[str] = None) -> AnyAddress:
    """Parses a P2PKH, P2SH, P2WPKH, P2WSH or P2TR address string

    Raises
    ------
    InvalidAddressError
        if the string is not a valid address of the network
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddressError(str(address), "empty address")

    address = address.strip()
    network = resolve_network(network)
    hrp = NETWORK_SEGWIT_PREFIXES[network]

    if address.lower().startswith(hrp + "1"):
        version, program = bech32_decode(hrp, address)
        if version is None:
            raise InvalidAddressError(address, "invalid bech32 encoding")
        candidates = [P2wpkhAddress, P2wshAddress, P2trAddress]
        for segwit_cls in candidates:
            if (
                segwit_cls.version == version
                and segwit_cls.program_length == len(program)
            ):
                return segwit_cls(witness_program=b_to_h(bytes(program)), network=network)
        raise InvalidAddressError(address, "unsupported witness version or program")

    errors = []
    for base58_cls in (P2pkhAddress, P2shAddress):
        try:
            return base58_cls(address=address, network=network)
        except InvalidAddressError as e:
            errors.append(e.reason)
    raise InvalidAddressError(address, "; ".join(errors))


def address_from_script(script: Script, network: Optional[str] = None) -> AnyAddress:
    """Returns the address that a standard scriptPubKey pays to

    Raises
    ------
    InvalidAddressError
        if the script is not one of the standard output templates
    """
    ops = script.get_script()
    script_type = script.get_script_type()
    if script_type == "p2pkh":
        return P2pkhAddress(hash160=ops[2], network=network)
    elif script_type == "p2sh":
        return P2shAddress(hash160=ops[1], network=network)
    elif script_type == "p2wpkh":
        return P2wpkhAddress(witness_program=ops[1], network=network)
    elif script_type == "p2wsh":
        return P2wshAddress(witness_program=ops[1], network=network)
    elif script_type == "p2tr":
        return P2trAddress(witness_program=ops[1], network=network)
    raise InvalidAddressError(script.to_hex(), "not a standard output script")
