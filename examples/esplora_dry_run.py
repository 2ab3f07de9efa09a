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

import logging
import sys

from taprootsend.setup import setup
from taprootsend.errors import TaprootSendError
from taprootsend.esplora import EsploraClient
from taprootsend.sender import TaprootSender
from taprootsend.utxo import EnvKeySupplier


def main():
    logging.basicConfig(level=logging.INFO)

    # always remember to setup the network
    setup("testnet")

    # the raw hex key is read from $TAPROOTSEND_PRIVATE_KEY
    client = EsploraClient(timeout=30)
    sender = TaprootSender(EnvKeySupplier(), client, client)

    if sender.load_key() is None:
        print("Set TAPROOTSEND_PRIVATE_KEY first")
        return 1

    print("Fund this address:", sender.get_address("taproot"))

    try:
        # prepare() signs without broadcasting, send() also broadcasts
        result = sender.prepare("mtVHHCqCECGwiMbMoZe8ayhJHuTdDbYWdJ")
    except TaprootSendError as e:
        print(f"Stopped at {sender.failed_at}: {e}")
        return 1

    print("Sending", result.send_amount, "sat, fee", result.fee, "sat")
    print("Raw signed transaction:\n" + result.tx_hex)
    return 0


if __name__ == "__main__":
    sys.exit(main())
