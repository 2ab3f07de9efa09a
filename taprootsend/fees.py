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
from decimal import Decimal, ROUND_DOWN
from typing import Mapping, Union

from taprootsend.constants import FEE_SAFETY_MULTIPLIER
from taprootsend.errors import InsufficientFundsError


logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


def _to_decimal(value: Number) -> Decimal:
    # floats go through str() so that 1.2 stays 1.2 and not its binary expansion
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError(f"Fee rate is not a number: {value!r}")
    rate = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    if not rate.is_finite() or rate < 0:
        raise ValueError(f"Fee rate must be a non negative number: {value!r}")
    return rate


class FeePolicy:
    """Turns fee estimates into the amount sent by a one output spend.

    The whole value of the spent output goes to the destination minus a fee of
    max(estimates) * multiplier. Estimates are used as absolute amounts, the
    way the fee source reports them, and are not multiplied by the size of the
    transaction.

    Attributes
    ----------
    multiplier : Decimal
        the safety factor applied to the highest estimate (default 1.2)

    Methods
    -------
    fee_for(fee_estimates)
        returns the fee for the estimates as a Decimal
    compute_send_amount(utxo_value, fee_estimates)
        returns the integer amount to send
    """

    def __init__(self, multiplier: Number = FEE_SAFETY_MULTIPLIER) -> None:
        self.multiplier = _to_decimal(multiplier)

    def fee_for(self, fee_estimates: Mapping[str, Number]) -> Decimal:
        """
        Raises
        ------
        ValueError
            if there are no estimates or one of them is not a valid rate
        """
        if not fee_estimates:
            raise ValueError("No fee estimates available")

        highest = max(_to_decimal(rate) for rate in fee_estimates.values())
        return highest * self.multiplier

    def compute_send_amount(
        self, utxo_value: int, fee_estimates: Mapping[str, Number]
    ) -> int:
        """Returns floor(utxo_value - fee)

        Raises
        ------
        InsufficientFundsError
            if utxo_value <= fee or nothing is left after truncation
        """
        fee = self.fee_for(fee_estimates)
        value = Decimal(utxo_value)

        if value <= fee:
            raise InsufficientFundsError(utxo_value, fee)

        send_amount = int((value - fee).to_integral_value(rounding=ROUND_DOWN))
        if send_amount <= 0:
            raise InsufficientFundsError(utxo_value, fee)
        logger.debug(
            "utxo value %d, fee %s, send amount %d", utxo_value, fee, send_amount
        )
        return send_amount


def compute_send_amount(
    utxo_value: int,
    fee_estimates: Mapping[str, Number],
    multiplier: Number = FEE_SAFETY_MULTIPLIER,
) -> int:
    """Shortcut for FeePolicy(multiplier).compute_send_amount()"""
    return FeePolicy(multiplier).compute_send_amount(utxo_value, fee_estimates)
