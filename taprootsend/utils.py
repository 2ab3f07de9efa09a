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
from typing import Tuple

import hashlib
import struct
from ecdsa import ellipticcurve  # type: ignore
from sympy.ntheory import sqrt_mod  # type: ignore

from taprootsend.ripemd160 import ripemd160


class Secp256k1Params:
    # ECDSA curve using secp256k1 is defined by: y**2 = x**3 + 7
    # This is done modulo p which (secp256k1) is:
    # 2^256 - 2^32 - 2^9 - 2^8 - 2^7 - 2^6 - 2^4 - 1
    _p = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
    # Curve's a and b are (y**2 = x**3 + a*x + b)
    _a = 0x0000000000000000000000000000000000000000000000000000000000000000
    _b = 0x0000000000000000000000000000000000000000000000000000000000000007
    # Curve's generator point is:
    _Gx = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
    _Gy = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8
    # prime number of points in the group (the order)
    _order = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

    _curve = ellipticcurve.CurveFp(_p, _a, _b)
    _G = ellipticcurve.Point(_curve, _Gx, _Gy, _order)


def tagged_hash(data: bytes, tag: str) -> bytes:
    """
    Tagged hashes ensure that hashes used in one context can not be used in another.
    It is used extensively in Taproot

    A tagged hash is: SHA256( SHA256("TapTweak") ||
                              SHA256("TapTweak") ||
                              data
                            )
    """

    tag_digest = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_digest + tag_digest + data).digest()


def hash160(data: bytes) -> bytes:
    """Returns RIPEMD160( SHA256( data ) )"""
    return ripemd160(hashlib.sha256(data).digest())


def double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def calculate_tweak(x_only_pubkey: bytes) -> int:
    """
    Calculates the key path tweak of an internal key, i.e. the TapTweak tagged
    hash of its x coordinate alone (no script tree is committed).

    Raises
    ------
    ValueError
        if the key is not 32 bytes or the hash is not a valid scalar
    """

    if len(x_only_pubkey) != 32:
        raise ValueError("Tweaking requires a 32 byte x-only public key")

    tweak_int = b_to_i(tagged_hash(x_only_pubkey, "TapTweak"))
    # negligible probability but BIP-341 requires the check
    if tweak_int >= Secp256k1Params._order:
        raise ValueError("Tweak is larger than the curve order")

    return tweak_int


def lift_x(x: int) -> ellipticcurve.Point:
    """Returns the curve point with the given x coordinate and even y

    Raises
    ------
    ValueError
        if x is not the x coordinate of a point on the curve
    """
    p = Secp256k1Params._p
    if x >= p:
        raise ValueError("x coordinate is not a field element")

    y_sq = (pow(x, 3, p) + 7) % p
    root = sqrt_mod(y_sq, p)
    if root is None or (int(root) * int(root)) % p != y_sq:
        raise ValueError("x coordinate is not on the secp256k1 curve")

    y = int(root)
    if y % 2 != 0:
        y = p - y

    return ellipticcurve.Point(Secp256k1Params._curve, x, y, Secp256k1Params._order)


def tweak_taproot_pubkey(internal_pubkey: bytes, tweak: int) -> Tuple[bytes, bool]:
    """
    Tweaks the public key with the specified tweak. Required to create the
    taproot public key from the internal key.

    The internal key can be given x-only (32 bytes) or as x and y coordinates
    (64 bytes); in both cases the even y point is used, as in BIP-340.

    Returns the tweaked key as x and y coordinates (64 bytes) and whether the
    y coordinate of the tweaked point was odd (and thus negated).
    """

    if len(internal_pubkey) not in (32, 64):
        raise ValueError("Internal key must be 32 or 64 bytes")

    P = lift_x(b_to_i(internal_pubkey[:32]))

    # apply tweak to public key (Q = P + t*G)
    Q = P + Secp256k1Params._G * tweak
    if Q == ellipticcurve.INFINITY:
        raise ValueError("Tweaked public key is the point at infinity")

    qx, qy = Q.x(), Q.y()

    # stores if it's odd; the x-only output key is the same either way
    is_odd = False
    if qy % 2 != 0:
        is_odd = True
        qy = Secp256k1Params._p - qy

    return i_to_b32(qx) + i_to_b32(qy), is_odd


def tweak_taproot_privkey(privkey: bytes, tweak: int) -> bytes:
    """
    Tweaks the private key before signing with it. Check if public key's y
    is even and negate the private key before tweaking if it is not.
    """

    order = Secp256k1Params._order
    secret = b_to_i(privkey)
    if not 0 < secret < order:
        raise ValueError("Private key is out of range")

    internal_point = Secp256k1Params._G * secret

    # negate private key if necessary
    if internal_point.y() % 2 != 0:
        secret = order - secret

    # The tweaked private key can be computed by d + hash(P)
    tweaked_privkey_int = (secret + tweak) % order
    if tweaked_privkey_int == 0:
        raise ValueError("Tweaked private key is zero")

    return i_to_b32(tweaked_privkey_int)


def prepend_compact_size(data: bytes) -> bytes:
    """
    Counts bytes and returns them with their varint (or compact size) prepended.
    """
    varint_bytes = encode_varint(len(data))
    return varint_bytes + data


def encode_varint(i: int) -> bytes:
    """
    Encode a potentially very large integer into varint bytes. The length should be
    specified in little-endian.

    https://bitcoin.org/en/developer-reference#compactsize-unsigned-integers
    """
    if i < 0:
        raise ValueError("Negative integers cannot be varint encoded")
    if i < 253:
        return bytes([i])
    elif i < 0x10000:
        return b"\xfd" + i.to_bytes(2, "little")
    elif i < 0x100000000:
        return b"\xfe" + i.to_bytes(4, "little")
    elif i < 0x10000000000000000:
        return b"\xff" + i.to_bytes(8, "little")
    else:
        raise ValueError("Integer is too large: %d" % i)


def parse_compact_size(data: bytes) -> Tuple[int, int]:
    """
    Parse variable integer. Returns (count, size)
    """
    if not data:
        raise ValueError("Cannot parse compact size from empty data")

    first_byte = data[0]
    if first_byte < 0xFD:
        return (first_byte, 1)

    widths = {0xFD: ("<H", 2), 0xFE: ("<I", 4), 0xFF: ("<Q", 8)}
    fmt, width = widths[first_byte]
    if len(data) < 1 + width:
        raise ValueError("Truncated compact size")
    return (struct.unpack(fmt, data[1 : 1 + width])[0], 1 + width)


#
# Basic conversions between bytes (b), hexadecimal (h) and integer (i)
#
def b_to_h(b: bytes) -> str:
    """Converts bytes to hexadecimal string"""
    return b.hex()


def h_to_b(h: str) -> bytes:
    """Converts hexadecimal string to bytes"""
    return bytes.fromhex(h)


# to convert hashes to ints we need byteorder BIG...
def b_to_i(b: bytes) -> int:
    """Converts a bytes to a number"""
    return int.from_bytes(b, byteorder="big")


def i_to_b32(i: int) -> bytes:
    """Converts a integer to bytes"""
    return i.to_bytes(32, byteorder="big")
