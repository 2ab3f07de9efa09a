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
from decimal import Decimal
from typing import Any, Optional, Union


class TaprootSendError(Exception):
    """Base class of every error raised by taproot-send"""


class InvalidKeyError(TaprootSendError):
    """Raised when raw key material cannot be turned into a private key.

    Attributes:
        message -- explanation of the error
        key_format -- the format that was being parsed (hex, wif)
    """

    def __init__(self, message: str, key_format: Optional[str] = None):
        self.message = message
        self.key_format = key_format
        super().__init__(message)


class UnsupportedFormatError(TaprootSendError):
    """Raised for an address format selector that is not known"""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Unsupported address format: {value!r}")


class InsufficientFundsError(TaprootSendError):
    """Raised when the output value does not cover the fee.

    Attributes:
        value -- the value of the selected output in satoshis
        fee -- the fee that was computed for it
    """

    def __init__(self, value: int, fee: Union[Decimal, int, float]):
        self.value = value
        self.fee = fee
        super().__init__(f"Insufficient funds: {value} <= {fee}")


class MalformedUtxoError(TaprootSendError):
    """Raised when an unspent output is unusable for building a spend"""

    def __init__(self, message: str, utxo: Any = None):
        self.message = message
        self.utxo = utxo
        super().__init__(message)


class SigningError(TaprootSendError):
    """Raised when signing or finalizing a transaction is not possible"""


class InvalidAddressError(TaprootSendError):
    """Raised when a destination address cannot be decoded"""

    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid address {address!r}: {reason}")


class NoSpendableOutputError(TaprootSendError):
    """Raised when an address has no confirmed unspent output"""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"No confirmed UTXOs found for {address}")


class TransportError(TaprootSendError):
    """Exception raised for errors when talking to the UTXO source or the
    broadcaster.

    Attributes:
        message -- explanation of the error
        status_code -- HTTP status code returned by the service, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(
            f"Transport Error ({status_code}): {message}" if status_code else message
        )
