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
from typing import Any, Dict, List, Optional, Union

import requests

from taprootsend.constants import ESPLORA_API_URLS
from taprootsend.errors import TransportError
from taprootsend.setup import resolve_network
from taprootsend.utxo import UnspentOutput, select_first_confirmed


logger = logging.getLogger(__name__)

Timeout = Union[None, float, tuple]


class EsploraClient:
    """Client of an Esplora compatible REST API (blockstream.info,
    mempool.space, a self hosted electrs).

    It is both the UTXO source and the broadcaster of a sender. Errors are
    never retried or turned into empty results; they are raised as
    TransportError with the HTTP status code when there is one.

    Attributes
    ----------
    base_url : str
        the API root, e.g. https://blockstream.info/testnet/api
    timeout : float or tuple, optional
        passed to requests for every call; None means no client side timeout
    session : requests.Session
        the HTTP session used for all calls

    Methods
    -------
    list_unspent(address)
        returns all UnspentOutput objects of an address
    list_confirmed_utxos(address)
        returns only the confirmed outputs
    first_confirmed_utxo(address)
        returns the first confirmed output or None
    get_fee_estimates()
        returns the confirmation target to fee rate mapping
    broadcast(tx_hex)
        submits a raw transaction and returns its txid
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        network: Optional[str] = None,
        timeout: Timeout = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Parameters
        ----------
        base_url : str, optional
            the API root; defaults to the public endpoint of the network
        network : str, optional
            used to pick the default endpoint (default the configured network)
        timeout : float or tuple, optional
            requests timeout for every call (default None)
        session : requests.Session, optional
            an existing session to reuse

        Raises
        ------
        ValueError
            if no base_url is given and the network has no default endpoint
        """
        if base_url is None:
            network = resolve_network(network)
            if network not in ESPLORA_API_URLS:
                raise ValueError(f"No default Esplora endpoint for {network}")
            base_url = ESPLORA_API_URLS[network]

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if not response.ok:
            message = response.text.strip() or response.reason or "HTTP error"
            raise TransportError(f"{method} {url}: {message}", response.status_code)
        return response

    def _get_json(self, path: str) -> Any:
        response = self._request("GET", path)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"GET {path} returned invalid JSON", response.status_code
            ) from e

    def list_unspent(self, address: str) -> List[UnspentOutput]:
        """
        Raises
        ------
        TransportError
            if the request fails or the answer is not a JSON list
        MalformedUtxoError
            if an entry cannot be parsed
        """
        entries = self._get_json(f"/address/{address}/utxo")
        if not isinstance(entries, list):
            raise TransportError("UTXO listing is not a JSON list")
        return [UnspentOutput.from_json(entry) for entry in entries]

    def list_confirmed_utxos(self, address: str) -> List[UnspentOutput]:
        return [utxo for utxo in self.list_unspent(address) if utxo.confirmed]

    def first_confirmed_utxo(self, address: str) -> Optional[UnspentOutput]:
        return select_first_confirmed(self.list_unspent(address))

    def get_fee_estimates(self) -> Dict[str, float]:
        """Returns the fee estimates keyed by confirmation target (in blocks)"""
        estimates = self._get_json("/fee-estimates")
        if not isinstance(estimates, dict):
            raise TransportError("Fee estimates are not a JSON object")
        return estimates

    def broadcast(self, tx_hex: str) -> str:
        """Posts the raw transaction hex and returns the txid the API answers"""
        response = self._request(
            "POST", "/tx", data=tx_hex, headers={"Content-Type": "text/plain"}
        )
        txid = response.text.strip()
        logger.info("broadcast transaction %s", txid)
        return txid
