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
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from taprootsend.constants import DEFAULT_KEY_ENV_VAR
from taprootsend.errors import MalformedUtxoError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnspentOutput:
    """An unspent transaction output as reported by an indexer.

    Attributes
    ----------
    txid : str
        the funding transaction id (displayed, little-endian hex)
    vout : int
        the output index in the funding transaction
    value : int
        the output value in satoshis
    confirmed : bool
        whether the funding transaction is in a block
    """

    txid: str
    vout: int
    value: int
    confirmed: bool

    @classmethod
    def from_json(cls, entry: Mapping[str, Any]) -> "UnspentOutput":
        """Creates an output from an Esplora style entry:
        {"txid", "vout", "value", "status": {"confirmed"}}

        Raises
        ------
        MalformedUtxoError
            if a field is missing or has the wrong type
        """
        try:
            txid = entry["txid"]
            vout = entry["vout"]
            value = entry["value"]
            status = entry.get("status") or {}
            confirmed = status.get("confirmed", False)
        except (KeyError, TypeError, AttributeError) as e:
            raise MalformedUtxoError(f"Missing UTXO field: {e}", entry) from e

        if not isinstance(txid, str) or len(txid) != 64:
            raise MalformedUtxoError("UTXO txid must be 64 hex characters", entry)
        try:
            bytes.fromhex(txid)
        except ValueError as e:
            raise MalformedUtxoError("UTXO txid is not hex", entry) from e
        for name, number in (("vout", vout), ("value", value)):
            if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                raise MalformedUtxoError(
                    f"UTXO {name} must be a non negative integer", entry
                )

        return cls(txid=txid.lower(), vout=vout, value=value, confirmed=bool(confirmed))


class UtxoSource(Protocol):
    """Lists unspent outputs of an address and estimates fees"""

    def list_unspent(self, address: str) -> List[UnspentOutput]:
        ...

    def get_fee_estimates(self) -> Dict[str, float]:
        ...


class Broadcaster(Protocol):
    """Submits a raw transaction and returns its txid"""

    def broadcast(self, tx_hex: str) -> str:
        ...


class KeySupplier(Protocol):
    """Returns a raw private key as hex, or None when there is none"""

    def __call__(self) -> Optional[str]:
        ...


class EnvKeySupplier:
    """Reads the raw private key from an environment variable"""

    def __init__(self, variable: str = DEFAULT_KEY_ENV_VAR) -> None:
        self.variable = variable

    def __call__(self) -> Optional[str]:
        value = os.environ.get(self.variable)
        if not value:
            logger.debug("environment variable %s is not set", self.variable)
            return None
        return value


def select_first_confirmed(utxos: Iterable[UnspentOutput]) -> Optional[UnspentOutput]:
    """Returns the first confirmed output in source order or None"""
    for utxo in utxos:
        if utxo.confirmed:
            return utxo
    return None
