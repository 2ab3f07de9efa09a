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

from taprootsend.setup import setup
from taprootsend.address import AddressFormat, address_object
from taprootsend.fees import compute_send_amount
from taprootsend.keys import KeyMaterial
from taprootsend.spend import Signer, TransactionBuilder
from taprootsend.utxo import UnspentOutput


def main():
    # always remember to setup the network
    setup("testnet")

    km = KeyMaterial.from_wif("cV3R88re3AZSBnWhBBNdiCKTfwpMKkYYjdiR13HQzsU7zoRNX7JL")

    fromAddress = address_object(AddressFormat.TAPROOT_KEY_PATH, km)
    print(fromAddress.to_string())

    # UTXO of fromAddress, normally returned by EsploraClient.list_unspent()
    utxo = UnspentOutput(
        "7b6412a0eed56338731e83c606f13ebb7a3756b3e4e1dbbe43a7db8d09106e56",
        1,
        5000,
        True,
    )

    # fee estimates as returned by EsploraClient.get_fee_estimates()
    amount = compute_send_amount(utxo.value, {"1": 800, "6": 500})

    psbt = TransactionBuilder().build(
        utxo,
        "mtVHHCqCECGwiMbMoZe8ayhJHuTdDbYWdJ",
        amount,
        fromAddress.to_script_pub_key(),
        km.x_only_public_key(),
    )
    print("\nUnsigned PSBT:\n" + psbt.to_base64())

    signed = Signer().sign_and_finalize(psbt, km.tweaked_key_pair())

    print("\nRaw signed transaction:\n" + signed.to_hex())
    print("\nTxId:", signed.txid)
    print("Size:", signed.size)
    print("vSize:", signed.vsize)


if __name__ == "__main__":
    main()
