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

__version__ = "0.1.0"

from taprootsend.setup import setup, get_network

from taprootsend.errors import (
    TaprootSendError,
    InvalidKeyError,
    UnsupportedFormatError,
    InsufficientFundsError,
    MalformedUtxoError,
    SigningError,
    InvalidAddressError,
    NoSpendableOutputError,
    TransportError,
)

from taprootsend.keys import PrivateKey, PublicKey, KeyMaterial, TweakedKeyPair

from taprootsend.address import (
    AddressFormat,
    P2pkhAddress,
    P2shAddress,
    P2wpkhAddress,
    P2wshAddress,
    P2trAddress,
    derive_address,
)

from taprootsend.fees import FeePolicy, compute_send_amount

from taprootsend.utxo import UnspentOutput, EnvKeySupplier

from taprootsend.spend import TransactionBuilder, Signer, SignedTransaction

from taprootsend.esplora import EsploraClient

from taprootsend.sender import TaprootSender, SpendState, SpendResult

__all__ = [
    'setup',
    'get_network',
    'TaprootSendError',
    'InvalidKeyError',
    'UnsupportedFormatError',
    'InsufficientFundsError',
    'MalformedUtxoError',
    'SigningError',
    'InvalidAddressError',
    'NoSpendableOutputError',
    'TransportError',
    'PrivateKey',
    'PublicKey',
    'KeyMaterial',
    'TweakedKeyPair',
    'AddressFormat',
    'P2pkhAddress',
    'P2shAddress',
    'P2wpkhAddress',
    'P2wshAddress',
    'P2trAddress',
    'derive_address',
    'FeePolicy',
    'compute_send_amount',
    'UnspentOutput',
    'EnvKeySupplier',
    'TransactionBuilder',
    'Signer',
    'SignedTransaction',
    'EsploraClient',
    'TaprootSender',
    'SpendState',
    'SpendResult',
]
