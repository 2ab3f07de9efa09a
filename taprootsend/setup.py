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

from typing import Optional

NETWORK = "testnet"
networks = {"mainnet", "testnet", "signet", "regtest"}


def setup(network: str = "testnet") -> str:
    """Sets the default network used when none is passed explicitly.

    Raises
    ------
    ValueError
        if the network is not one of mainnet, testnet, signet or regtest
    """
    global NETWORK
    if network not in networks:
        raise ValueError(f"Unknown network: {network}")
    NETWORK = network
    return NETWORK


def get_network() -> str:
    global NETWORK
    return NETWORK


def resolve_network(network: Optional[str] = None) -> str:
    """Returns the given network or the configured default one"""
    if network is None:
        return get_network()
    if network not in networks:
        raise ValueError(f"Unknown network: {network}")
    return network

