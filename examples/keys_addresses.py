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
from taprootsend.address import AddressFormat, derive_address
from taprootsend.keys import KeyMaterial


def main():
    # always remember to setup the network
    setup("testnet")

    # could also be loaded from a raw hex key with KeyMaterial.from_hex()
    km = KeyMaterial.from_wif("cRPxBiKrJsH94FLugmiL4xnezMyoFqGcf4kdgNXGuypNERhMK6AT")

    pub = km.public_key()
    print("\nPublic key:", pub.to_hex())
    print("Internal (x-only) key:", km.x_only_public_key().hex())
    print("Taproot output key:", km.taproot_output_key().hex())

    for fmt in AddressFormat:
        print(f"{fmt.value} address:", derive_address(fmt, km))


if __name__ == "__main__":
    main()
