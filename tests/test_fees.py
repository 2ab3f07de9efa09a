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
from decimal import Decimal

from taprootsend.errors import InsufficientFundsError
from taprootsend.fees import FeePolicy, compute_send_amount


class TestFeePolicy(unittest.TestCase):
    def setUp(self):
        self.policy = FeePolicy()

    def test_highest_estimate_with_margin(self):
        self.assertEqual(self.policy.fee_for({"1": 500, "6": 300}), Decimal("600.0"))

    def test_send_amount(self):
        self.assertEqual(compute_send_amount(100000, {"1": 500, "6": 300}), 99400)

    def test_send_amount_is_truncated(self):
        # fee is 12.36
        self.assertEqual(compute_send_amount(1000, {"2": 10.3}), 987)
        # fee is 1.2
        self.assertEqual(compute_send_amount(3, {"1": 1}), 1)

    def test_fraction_left_after_fee_is_insufficient(self):
        # fee is 600.6, leaving 0.4 which truncates to nothing
        with self.assertRaises(InsufficientFundsError) as cm:
            compute_send_amount(601, {"1": 500.5})
        self.assertEqual(cm.exception.value, 601)
        with self.assertRaises(InsufficientFundsError):
            compute_send_amount(2, {"1": 1})

    def test_float_estimates_are_exact(self):
        self.assertEqual(self.policy.fee_for({"144": 1.1}), Decimal("1.32"))

    def test_insufficient_funds(self):
        with self.assertRaises(InsufficientFundsError) as cm:
            compute_send_amount(500, {"1": 500})
        self.assertEqual(cm.exception.value, 500)
        self.assertEqual(str(cm.exception), "Insufficient funds: 500 <= 600.0")

    def test_value_equal_to_fee_is_insufficient(self):
        with self.assertRaises(InsufficientFundsError):
            compute_send_amount(600, {"1": 500})
        self.assertEqual(compute_send_amount(601, {"1": 500}), 1)

    def test_custom_multiplier(self):
        self.assertEqual(FeePolicy(multiplier=1).compute_send_amount(1000, {"1": 10}), 990)

    def test_invalid_estimates(self):
        for estimates in [{}, {"1": "fast"}, {"1": -1}, {"1": float("nan")}, {"1": True}]:
            with self.subTest(estimates=estimates):
                with self.assertRaises(ValueError):
                    self.policy.fee_for(estimates)


if __name__ == "__main__":
    unittest.main()
