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

from typing import Optional

from base58check import b58encode, b58decode  # type: ignore
from coincurve import PrivateKey as SchnorrSigningKey  # type: ignore
from coincurve import PublicKeyXOnly  # type: ignore
from ecdsa import SigningKey, VerifyingKey, SECP256k1  # type: ignore
from ecdsa.errors import MalformedPointError  # type: ignore

from taprootsend.address import P2pkhAddress, P2wpkhAddress, P2trAddress
from taprootsend.constants import NETWORK_WIF_PREFIXES
from taprootsend.errors import InvalidKeyError, SigningError
from taprootsend.setup import resolve_network
from taprootsend.utils import (
    Secp256k1Params,
    calculate_tweak,
    double_sha256,
    hash160,
    lift_x,
    b_to_h,
    h_to_b,
    b_to_i,
    i_to_b32,
    tweak_taproot_pubkey,
    tweak_taproot_privkey,
)


def taproot_output_key(internal_key: bytes) -> bytes:
    """Returns the 32 byte x-only taproot output key of an internal key.

    Q = lift_x(P) + int(TapTweak(P)) * G with no script tree committed. This is
    the only place where the output key is computed; addresses, the PSBT
    consistency check and the tweaked key pair all go through it.
    """
    tweak_int = calculate_tweak(internal_key)
    tweaked, _ = tweak_taproot_pubkey(internal_key, tweak_int)
    return tweaked[:32]


class PrivateKey:
    """Represents a secp256k1 private key.

    Attributes
    ----------
    key : SigningKey
        the ecdsa signing key wrapping the 32 byte secret

    Methods
    -------
    from_wif(wif, network=None)
        creates an object from a WIF of WIFC format (string)
    from_bytes(b)
        creates an object from raw 32 bytes
    from_hex(hex_str)
        creates an object from a 64 character hex string
    to_wif(compressed=True, network=None)
        returns as WIFC (compressed) or WIF format (string)
    to_bytes()
        returns the key's raw bytes
    get_public_key()
        returns the corresponding PublicKey object

    Raises
    ------
    InvalidKeyError
        if the key is malformed or not in the range [1, n-1]
    """

    def __init__(self, b: bytes) -> None:
        if not isinstance(b, (bytes, bytearray)):
            raise InvalidKeyError("Private key must be bytes", "bytes")
        if len(b) != 32:
            raise InvalidKeyError("Invalid key length: must be exactly 32 bytes.", "bytes")

        secret = b_to_i(bytes(b))
        if not 0 < secret < Secp256k1Params._order:
            raise InvalidKeyError("Private key is out of the secp256k1 range", "bytes")

        self.key = SigningKey.from_string(bytes(b), curve=SECP256k1)

    @classmethod
    def from_bytes(cls, b: bytes) -> "PrivateKey":
        """Creates a key directly from 32 raw bytes"""
        return cls(b)

    @classmethod
    def from_hex(cls, hex_str: str) -> "PrivateKey":
        """Creates a key from a hex string, optionally prefixed with 0x"""
        if not hex_str or not isinstance(hex_str, str):
            raise InvalidKeyError("No private key provided", "hex")

        hex_str = hex_str.strip()
        if hex_str.lower().startswith("0x"):
            hex_str = hex_str[2:]

        try:
            raw = h_to_b(hex_str)
        except ValueError as e:
            raise InvalidKeyError("Private key is not a hex string", "hex") from e
        if len(raw) != 32:
            raise InvalidKeyError(
                f"Private key must be 32 bytes, got {len(raw)}", "hex"
            )

        return cls(raw)

    @classmethod
    def from_wif(cls, wif: str, network: Optional[str] = None) -> "PrivateKey":
        """Creates key from WIFC or WIF format key

        Check to_wif for the detailed process. From WIF is the reverse.

        Raises
        ------
        InvalidKeyError
            if the checksum is wrong or if the WIF/WIFC is not from the
            configured network.
        """
        if not wif or not isinstance(wif, str):
            raise InvalidKeyError("No WIF key provided", "wif")

        # decode base58check get key bytes plus checksum
        try:
            data_bytes = b58decode(wif.strip().encode("utf-8"))
        except (ValueError, KeyError) as e:
            raise InvalidKeyError("WIF is not base58 encoded", "wif") from e
        key_bytes = data_bytes[:-4]
        checksum = data_bytes[-4:]

        # verify key with checksum
        if checksum != double_sha256(key_bytes)[0:4]:
            raise InvalidKeyError("Checksum is wrong. Possible mistype?", "wif")

        # get network prefix and check with current setup
        network = resolve_network(network)
        if NETWORK_WIF_PREFIXES[network] != key_bytes[:1]:
            raise InvalidKeyError("Using the wrong network!", "wif")

        # remove network prefix
        key_bytes = key_bytes[1:]

        # 33 bytes ending in 0x01 means compressed
        if len(key_bytes) == 33 and key_bytes[-1] == 0x01:
            key_bytes = key_bytes[:-1]

        return cls(key_bytes)

    def to_wif(self, compressed: bool = True, network: Optional[str] = None) -> str:
        """Returns key in WIFC or WIF string

        |  Pseudocode:
        |      network_prefix = (1 byte version number)
        |      data = network_prefix + (32 bytes number/key) [ + 0x01 if compressed ]
        |      data_hash = SHA-256( SHA-256( data ) )
        |      checksum = (first 4 bytes of data_hash)
        |      wif = Base58CheckEncode( data + checksum )
        """

        # add network prefix to the key
        data = NETWORK_WIF_PREFIXES[resolve_network(network)] + self.to_bytes()

        if compressed is True:
            data += b"\x01"

        # suffix the key bytes with the checksum and encode to base58check
        wif = b58encode(data + double_sha256(data)[0:4])

        return wif.decode("utf-8")

    def to_bytes(self) -> bytes:
        """Returns key's bytes"""
        return self.key.to_string()

    def get_public_key(self) -> "PublicKey":
        """Returns the corresponding PublicKey"""
        verifying_key = b_to_h(self.key.get_verifying_key().to_string())
        return PublicKey("04" + verifying_key)

    def __repr__(self) -> str:
        # never expose the secret
        return "PrivateKey(<redacted>)"


class PublicKey:
    """Represents a secp256k1 public key.

    Attributes
    ----------
    key : VerifyingKey
        the ecdsa verifying key (x, y coordinates of the curve point)

    Methods
    -------
    from_hex(hex_str)
        creates an object from a hex string in SEC format (classmethod)
    to_bytes()
        returns the 64 bytes of the x and y coordinates
    to_hex(compressed=True)
        returns the key as hex string (in SEC format - compressed by default)
    to_x_only_bytes() / to_x_only_hex()
        returns the x coordinate only (BIP-340 public key)
    to_taproot_hex()
        returns the tweaked x-only output key as hex
    is_y_even()
        returns True if the y coordinate is even
    to_hash160()
        returns the hash160 hex string of the compressed key
    get_address(network=None)
        returns the corresponding P2pkhAddress (compressed)
    get_segwit_address(network=None)
        returns the corresponding P2wpkhAddress
    get_taproot_address(network=None)
        returns the corresponding key path P2trAddress
    """

    def __init__(self, hex_str: str) -> None:
        """
        Parameters
        ----------
        hex_str : str
            the public key in hex string; compressed (33 bytes), uncompressed
            (65 bytes) or x-only (32 bytes, the even y point is used)

        Raises
        ------
        InvalidKeyError
            if the encoding is not valid or the point is not on the curve
        """
        if not hex_str:
            raise InvalidKeyError("No public key provided", "sec")

        hex_str = hex_str.strip()
        if hex_str.lower().startswith("0x"):
            hex_str = hex_str[2:]

        try:
            hex_bytes = h_to_b(hex_str)
        except ValueError as e:
            raise InvalidKeyError("Public key is not a hex string", "sec") from e

        try:
            if len(hex_bytes) == 65 and hex_bytes[0] == 0x04:
                xy = hex_bytes[1:]
            elif len(hex_bytes) == 33 and hex_bytes[0] in (0x02, 0x03):
                point = lift_x(b_to_i(hex_bytes[1:]))
                y = point.y()
                # lift_x gives the even y, flip it for the 03 prefix
                if hex_bytes[0] == 0x03:
                    y = Secp256k1Params._p - y
                xy = hex_bytes[1:] + i_to_b32(y)
            elif len(hex_bytes) == 32:
                point = lift_x(b_to_i(hex_bytes))
                xy = hex_bytes + i_to_b32(point.y())
            else:
                raise InvalidKeyError("Invalid SEC public key format", "sec")

            self.key = VerifyingKey.from_string(xy, curve=SECP256k1)
        except (ValueError, MalformedPointError) as e:
            raise InvalidKeyError("Public key is not a valid curve point", "sec") from e

    @classmethod
    def from_hex(cls, hex_str: str) -> "PublicKey":
        """Creates a public key from a hex string (SEC format)"""
        return cls(hex_str)

    def to_bytes(self) -> bytes:
        """Returns the x and y coordinates as 64 bytes"""
        return self.key.to_string()

    def to_hex(self, compressed: bool = True) -> str:
        """Returns public key as a hex string (SEC format - compressed by
        default)"""

        key_bytes = self.key.to_string()

        if compressed:
            # check if y is even or odd (02 even, 03 odd)
            prefix = b"\x02" if self.is_y_even() else b"\x03"
            return b_to_h(prefix + key_bytes[:32])

        # uncompressed starts with 04
        return b_to_h(b"\x04" + key_bytes)

    def to_x_only_bytes(self) -> bytes:
        """Returns the x coordinate of the public key (32 bytes)"""
        return self.key.to_string()[:32]

    def to_x_only_hex(self) -> str:
        """Returns the x coordinate of the public key as hex string."""
        return b_to_h(self.to_x_only_bytes())

    def to_taproot_hex(self) -> str:
        """Returns the tweaked x coordinate of the public key as a hex string."""
        return b_to_h(taproot_output_key(self.to_x_only_bytes()))

    def is_y_even(self) -> bool:
        """Returns True if the y coordinate of the public key is even and
        False otherwise."""
        return self.key.to_string()[-1] % 2 == 0

    def _to_hash160(self, compressed: bool = True) -> bytes:
        """Returns the RIPEMD( SHA256( ) ) of the public key in bytes"""
        return hash160(h_to_b(self.to_hex(compressed)))

    def to_hash160(self, compressed: bool = True) -> str:
        """Returns the RIPEMD( SHA256( ) ) of the public key in hex"""
        return b_to_h(self._to_hash160(compressed))

    def get_address(self, network: Optional[str] = None) -> P2pkhAddress:
        """Returns the corresponding P2PKH Address (compressed key)"""
        return P2pkhAddress(hash160=self.to_hash160(), network=network)

    def get_segwit_address(self, network: Optional[str] = None) -> P2wpkhAddress:
        """Returns the corresponding P2WPKH address

        Only compressed is allowed. It is otherwise identical to normal P2PKH
        address.
        """
        return P2wpkhAddress(witness_program=self.to_hash160(), network=network)

    def get_taproot_address(self, network: Optional[str] = None) -> P2trAddress:
        """Returns the corresponding key path P2TR address"""
        return P2trAddress(witness_program=self.to_taproot_hex(), network=network)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self.to_bytes() == other.to_bytes()

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()!r})"


class TweakedKeyPair:
    """The BIP-341 tweaked key pair that spends a taproot output by key path.

    Attributes
    ----------
    x_only_public_key : bytes
        the tweaked x-only public key; equal to the taproot output key and to
        the witness program of the taproot address

    Methods
    -------
    sign_schnorr(digest)
        returns the 64 byte BIP-340 signature of a 32 byte digest
    verify_schnorr(signature, digest)
        verifies a BIP-340 signature against the tweaked public key
    """

    def __init__(self, secret: bytes, x_only_public_key: bytes) -> None:
        if len(secret) != 32 or len(x_only_public_key) != 32:
            raise InvalidKeyError("Tweaked key pair requires 32 byte keys")
        self._secret = secret
        self.x_only_public_key = x_only_public_key

    def x_only_public_key_hex(self) -> str:
        return b_to_h(self.x_only_public_key)

    def sign_schnorr(self, digest: bytes) -> bytes:
        """Signs a 32 byte digest with BIP-340 Schnorr

        The auxiliary randomness is 32 zero bytes so that signatures are
        deterministic and identical to the ones Bitcoin Core produces.
        """
        if len(digest) != 32:
            raise SigningError("Schnorr signatures require a 32 byte digest")

        signature = SchnorrSigningKey(self._secret).sign_schnorr(digest, bytes(32))
        if len(signature) != 64:
            raise SigningError("Unexpected Schnorr signature length")
        return signature

    def verify_schnorr(self, signature: bytes, digest: bytes) -> bool:
        return PublicKeyXOnly(self.x_only_public_key).verify(signature, digest)

    def __repr__(self) -> str:
        return f"TweakedKeyPair(x_only_public_key={self.x_only_public_key_hex()!r})"


class KeyMaterial:
    """The single private key all addresses and spends are derived from.

    Instances are immutable; loading another key means creating another
    KeyMaterial. The public key is computed once and cached.

    Methods
    -------
    from_hex(raw_private_key_hex)
        creates the key material from a raw 32 byte hex key (classmethod)
    from_wif(wif, network=None)
        creates the key material from a WIF/WIFC key (classmethod)
    public_key()
        returns the PublicKey
    x_only_public_key()
        returns the 32 byte internal key
    taproot_output_key()
        returns the 32 byte tweaked output key
    tweaked_key_pair()
        returns the TweakedKeyPair used for key path signing
    """

    def __init__(self, private_key: PrivateKey) -> None:
        self._private_key = private_key
        self._public_key: Optional[PublicKey] = None

    @classmethod
    def from_hex(cls, raw_private_key_hex: str) -> "KeyMaterial":
        """
        Raises
        ------
        InvalidKeyError
            for an empty, non hex, wrongly sized or out of range key
        """
        return cls(PrivateKey.from_hex(raw_private_key_hex))

    @classmethod
    def from_wif(cls, wif: str, network: Optional[str] = None) -> "KeyMaterial":
        return cls(PrivateKey.from_wif(wif, network))

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    def public_key(self) -> PublicKey:
        if self._public_key is None:
            self._public_key = self._private_key.get_public_key()
        return self._public_key

    def x_only_public_key(self) -> bytes:
        return self.public_key().to_x_only_bytes()

    def taproot_output_key(self) -> bytes:
        return taproot_output_key(self.x_only_public_key())

    def tweaked_key_pair(self) -> TweakedKeyPair:
        """Returns the tweaked key pair; the original key is left unchanged"""
        internal_key = self.x_only_public_key()
        tweak_int = calculate_tweak(internal_key)
        secret = tweak_taproot_privkey(self._private_key.to_bytes(), tweak_int)
        return TweakedKeyPair(secret, taproot_output_key(internal_key))

    def __repr__(self) -> str:
        return f"KeyMaterial(public_key={self.public_key().to_hex()!r})"
