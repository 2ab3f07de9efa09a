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

import hashlib
import unittest

from taprootsend.ripemd160 import ripemd160
from taprootsend.utils import (
    Secp256k1Params,
    calculate_tweak,
    encode_varint,
    hash160,
    lift_x,
    parse_compact_size,
    tagged_hash,
)


class TestHashes(unittest.TestCase):
    def test_ripemd160_vectors(self):
        self.assertEqual(ripemd160(b"").hex(), "9c1185a5c5e9fc54612808977ee8f548b2258d31")
        self.assertEqual(
            ripemd160(b"abc").hex(), "8eb208f7e05d987a9b044a8e98c6b087f15a0bfc"
        )
        self.assertEqual(
            ripemd160(b"message digest").hex(),
            "5d0689ef49d2fae572b881b123a85ffa21595f36",
        )
        self.assertEqual(
            ripemd160(b"abcdefghijklmnopqrstuvwxyz").hex(),
            "f71c27109c692c1b56bbdceb5b9d2865b3708dbc",
        )

    def test_hash160(self):
        pubkey = bytes.fromhex(
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )
        self.assertEqual(hash160(pubkey).hex(), "751e76e8199196d454941c45d1b3a323f1433bd6")

    def test_tagged_hash(self):
        tag = hashlib.sha256(b"TapTweak").digest()
        self.assertEqual(
            tagged_hash(b"data", "TapTweak"),
            hashlib.sha256(tag + tag + b"data").digest(),
        )

    def test_tweak_requires_x_only_key(self):
        with self.assertRaises(ValueError):
            calculate_tweak(b"\x02" * 33)


class TestCurve(unittest.TestCase):
    def test_lift_x_generator(self):
        point = lift_x(Secp256k1Params._Gx)
        self.assertEqual(point.y(), Secp256k1Params._Gy)
        self.assertEqual(point.y() % 2, 0)

    def test_lift_x_not_on_curve(self):
        # public key not on the curve, from the BIP-340 test vectors
        with self.assertRaises(ValueError):
            lift_x(
                0xEEFDEA4CDB677750A420FEE807EACF21EB9898AE79B9768766E4FAA04A2D4A34
            )
        with self.assertRaises(ValueError):
            lift_x(Secp256k1Params._p)


class TestCompactSize(unittest.TestCase):
    def test_encode(self):
        self.assertEqual(encode_varint(0), b"\x00")
        self.assertEqual(encode_varint(252), b"\xfc")
        self.assertEqual(encode_varint(253), b"\xfd\xfd\x00")
        self.assertEqual(encode_varint(0x10000), b"\xfe\x00\x00\x01\x00")
        self.assertEqual(encode_varint(0x100000000), b"\xff" + (0x100000000).to_bytes(8, "little"))
        with self.assertRaises(ValueError):
            encode_varint(-1)

    def test_parse(self):
        self.assertEqual(parse_compact_size(b"\x05rest"), (5, 1))
        self.assertEqual(parse_compact_size(b"\xfd\xfd\x00"), (253, 3))
        with self.assertRaises(ValueError):
            parse_compact_size(b"")
        with self.assertRaises(ValueError):
            parse_compact_size(b"\xfe\x00")


if __name__ == "__main__":
    unittest.main()
