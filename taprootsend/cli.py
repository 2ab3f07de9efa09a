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

"""
taprootsend - command line interface

Derives the addresses of a single private key, sends the first confirmed
UTXO of its taproot address through an Esplora API, and decodes raw
transactions. The private key is read from an environment variable, never
from the command line.
"""

import argparse
import json
import logging
import sys

from taprootsend.address import AddressFormat, address_from_script
from taprootsend.constants import DEFAULT_KEY_ENV_VAR
from taprootsend.errors import InvalidKeyError, TaprootSendError
from taprootsend.esplora import EsploraClient
from taprootsend.sender import TaprootSender
from taprootsend.setup import networks, setup
from taprootsend.transactions import Transaction
from taprootsend.utils import b_to_i
from taprootsend.utxo import EnvKeySupplier


def _load_sender(args, utxo_source=None):
    sender = TaprootSender(
        EnvKeySupplier(args.key_env), utxo_source, utxo_source, network=args.network
    )
    if sender.load_key() is None:
        raise InvalidKeyError(f"No private key found in ${args.key_env}")
    return sender


def show_addresses(args):
    """Print the addresses of the key"""
    sender = _load_sender(args)

    if args.format == "all":
        formats = list(AddressFormat)
    else:
        formats = [AddressFormat.parse(args.format)]

    result = {
        "network": sender.network,
        "addresses": {fmt.value: sender.get_address(fmt) for fmt in formats},
    }
    print(json.dumps(result, indent=2))
    return 0


def send_utxo(args):
    """Spend the first confirmed taproot UTXO to the destination"""
    try:
        client = EsploraClient(
            base_url=args.api_url, network=args.network, timeout=args.timeout
        )
    except ValueError as e:
        raise TaprootSendError(f"{e}; use --api-url") from e
    sender = _load_sender(args, client)

    if args.dry_run:
        spend = sender.prepare(args.to)
    else:
        spend = sender.send(args.to)

    result = {
        "from": spend.source_address,
        "to": spend.destination_address,
        "utxo": f"{spend.utxo.txid}:{spend.utxo.vout}",
        "amount": spend.send_amount,
        "fee": spend.fee,
        "txid": spend.signed_transaction.txid,
        "vsize": spend.signed_transaction.vsize,
        "broadcast": spend.txid is not None,
    }
    if args.dry_run:
        result["hex"] = spend.tx_hex
    print(json.dumps(result, indent=2))
    return 0


def decode_transaction(args):
    """Decode a raw Bitcoin transaction"""
    try:
        tx = Transaction.from_raw(args.hex)
    except ValueError as e:
        raise TaprootSendError(f"Cannot decode transaction: {e}") from e

    result = {
        "txid": tx.get_txid(),
        "wtxid": tx.get_wtxid(),
        "version": b_to_i(tx.version[::-1]),
        "locktime": b_to_i(tx.locktime[::-1]),
        "size": tx.get_size(),
        "vsize": tx.get_vsize(),
        "inputs": [],
        "outputs": [],
    }

    for index, tx_in in enumerate(tx.inputs):
        input_data = {
            "txid": tx_in.txid,
            "vout": tx_in.txout_index,
            "script_sig": tx_in.script_sig.to_hex(),
            "sequence": b_to_i(tx_in.sequence[::-1]),
        }
        if tx.has_segwit:
            input_data["witness"] = list(tx.witnesses[index].stack)
        result["inputs"].append(input_data)

    for tx_out in tx.outputs:
        output_data = {
            "value": tx_out.amount,
            "script_pubkey": tx_out.script_pubkey.to_hex(),
        }
        try:
            output_data["address"] = address_from_script(
                tx_out.script_pubkey, args.network
            ).to_string()
        except TaprootSendError:
            pass
        result["outputs"].append(output_data)

    print(json.dumps(result, indent=2))
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="taprootsend",
        description="Send the taproot UTXO of a single key",
    )
    parser.add_argument(
        "--network",
        choices=sorted(networks),
        default="testnet",
        help="Bitcoin network to use",
    )
    parser.add_argument(
        "--key-env",
        default=DEFAULT_KEY_ENV_VAR,
        help="environment variable holding the raw hex private key",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    address_parser = subparsers.add_parser("address", help="Show the key addresses")
    address_parser.add_argument(
        "--format",
        default="taproot",
        choices=[fmt.value for fmt in AddressFormat] + ["all"],
        help="address format",
    )

    send_parser = subparsers.add_parser(
        "send", help="Send the first confirmed taproot UTXO"
    )
    send_parser.add_argument("--to", required=True, help="destination address")
    send_parser.add_argument(
        "--dry-run", action="store_true", help="sign but do not broadcast"
    )
    send_parser.add_argument("--api-url", help="Esplora API root")
    send_parser.add_argument(
        "--timeout", type=float, help="HTTP timeout in seconds"
    )

    decode_parser = subparsers.add_parser(
        "decode", help="Decode a raw Bitcoin transaction"
    )
    decode_parser.add_argument("hex", help="Raw transaction in hexadecimal format")

    return parser


def main(argv=None):
    """Main entry point for the CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    setup(args.network)

    commands = {
        "address": show_addresses,
        "send": send_utxo,
        "decode": decode_transaction,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except (TaprootSendError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
