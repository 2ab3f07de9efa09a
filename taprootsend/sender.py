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
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from taprootsend.address import AddressFormat, address_object, derive_address
from taprootsend.errors import (
    InvalidKeyError,
    NoSpendableOutputError,
    TransportError,
)
from taprootsend.fees import FeePolicy
from taprootsend.keys import KeyMaterial
from taprootsend.setup import resolve_network
from taprootsend.spend import Signer, SignedTransaction, TransactionBuilder
from taprootsend.utxo import Broadcaster, UnspentOutput, UtxoSource, select_first_confirmed


logger = logging.getLogger(__name__)


class SpendState(Enum):
    KEY_PENDING = "key_pending"
    NO_KEY = "no_key"
    KEY_READY = "key_ready"
    ADDRESS_DERIVED = "address_derived"
    UTXO_SELECTED = "utxo_selected"
    AMOUNT_COMPUTED = "amount_computed"
    BUILT = "built"
    SIGNED = "signed"
    BROADCAST_SUCCESS = "broadcast_success"
    BROADCAST_FAILURE = "broadcast_failure"
    FAILED = "failed"


@dataclass(frozen=True)
class SpendResult:
    """Outcome of a spend; txid is the broadcaster's answer and is None for
    a dry run"""

    source_address: str
    destination_address: str
    utxo: UnspentOutput
    send_amount: int
    fee: int
    signed_transaction: SignedTransaction
    txid: Optional[str] = None

    @property
    def tx_hex(self) -> str:
        return self.signed_transaction.to_hex()


class TaprootSender:
    """Sends the first confirmed UTXO of the taproot address of a single key.

    The sender walks KEY_PENDING -> KEY_READY -> ADDRESS_DERIVED ->
    UTXO_SELECTED -> AMOUNT_COMPUTED -> BUILT -> SIGNED and ends in
    BROADCAST_SUCCESS or BROADCAST_FAILURE. A missing key leaves it in NO_KEY
    and any other error in FAILED, with failed_at holding the last state
    reached. Errors are always raised to the caller; nothing is retried.

    A sender is meant for one key and is not shared between threads.

    Attributes
    ----------
    state : SpendState
        the current state
    failed_at : SpendState or None
        the state reached before the last failure
    key_material : KeyMaterial or None
        the loaded key

    Methods
    -------
    load_key()
        asks the key supplier for the key
    get_address(fmt)
        derives an address of the loaded key
    prepare(destination)
        builds and signs the spend without broadcasting it
    send(destination)
        prepares and broadcasts the spend
    """

    def __init__(
        self,
        key_supplier: Callable[[], Optional[str]],
        utxo_source: UtxoSource,
        broadcaster: Optional[Broadcaster] = None,
        network: Optional[str] = None,
        fee_policy: Optional[FeePolicy] = None,
    ) -> None:
        self.key_supplier = key_supplier
        self.utxo_source = utxo_source
        self.broadcaster = broadcaster
        self.network = resolve_network(network)
        self.fee_policy = fee_policy if fee_policy is not None else FeePolicy()
        self.builder = TransactionBuilder(network=self.network)
        self.signer = Signer()

        self.state = SpendState.KEY_PENDING
        self.failed_at: Optional[SpendState] = None
        self.key_material: Optional[KeyMaterial] = None

    def _move(self, state: SpendState) -> None:
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self) -> None:
        self.failed_at = self.state
        self._move(SpendState.FAILED)

    def load_key(self) -> Optional[KeyMaterial]:
        """Fetches the key once from the supplier

        A supplier error or an empty answer moves to NO_KEY and returns None.

        Raises
        ------
        InvalidKeyError
            if the supplied key is malformed (state FAILED)
        """
        try:
            raw_key = self.key_supplier()
        except Exception as e:
            # the supplier is external; its failure only means there is no key
            logger.warning("key supplier failed: %s", type(e).__name__)
            raw_key = None

        if not raw_key:
            logger.warning("no private key available")
            self._move(SpendState.NO_KEY)
            return None

        try:
            self.key_material = KeyMaterial.from_hex(raw_key)
        except InvalidKeyError:
            self._fail()
            raise

        self._move(SpendState.KEY_READY)
        return self.key_material

    def _require_key(self) -> KeyMaterial:
        if self.key_material is None and self.state is SpendState.KEY_PENDING:
            self.load_key()
        if self.key_material is None:
            raise InvalidKeyError("No private key loaded")
        return self.key_material

    def get_address(self, fmt: Union[AddressFormat, str]) -> str:
        """
        Raises
        ------
        InvalidKeyError
            if no key is available
        UnsupportedFormatError
            if fmt is unknown
        """
        return derive_address(fmt, self._require_key(), self.network)

    def prepare(self, destination_address: str) -> SpendResult:
        """Builds and signs the spend of the first confirmed taproot UTXO

        Raises
        ------
        InvalidKeyError
            if no key is available
        NoSpendableOutputError
            if the taproot address has no confirmed UTXO
        InsufficientFundsError
            if the UTXO does not cover the fee
        TransportError, MalformedUtxoError, InvalidAddressError, SigningError
            from the corresponding stage
        """
        key_material = self._require_key()
        self.failed_at = None

        try:
            account = address_object(
                AddressFormat.TAPROOT_KEY_PATH, key_material, self.network
            )
            source_address = account.to_string()
            self._move(SpendState.ADDRESS_DERIVED)

            utxo = select_first_confirmed(self.utxo_source.list_unspent(source_address))
            if utxo is None:
                raise NoSpendableOutputError(source_address)
            logger.info("spending %s:%d (%d sat)", utxo.txid, utxo.vout, utxo.value)
            self._move(SpendState.UTXO_SELECTED)

            fee_estimates = self.utxo_source.get_fee_estimates()
            send_amount = self.fee_policy.compute_send_amount(utxo.value, fee_estimates)
            self._move(SpendState.AMOUNT_COMPUTED)

            unsigned = self.builder.build(
                utxo,
                destination_address,
                send_amount,
                account.to_script_pub_key(),
                key_material.x_only_public_key(),
            )
            self._move(SpendState.BUILT)

            signed = self.signer.sign_and_finalize(
                unsigned, key_material.tweaked_key_pair()
            )
            self._move(SpendState.SIGNED)
        except Exception:
            self._fail()
            raise

        return SpendResult(
            source_address=source_address,
            destination_address=destination_address,
            utxo=utxo,
            send_amount=send_amount,
            fee=utxo.value - send_amount,
            signed_transaction=signed,
        )

    def send(self, destination_address: str) -> SpendResult:
        """Prepares the spend and broadcasts it

        Raises
        ------
        TransportError
            if broadcasting fails (state BROADCAST_FAILURE); errors of other
            broadcasters are raised unchanged with the same state
        """
        if self.broadcaster is None:
            raise TransportError("No broadcaster configured")

        result = self.prepare(destination_address)
        try:
            txid = self.broadcaster.broadcast(result.tx_hex)
        except Exception:
            self.failed_at = self.state
            self._move(SpendState.BROADCAST_FAILURE)
            raise

        self._move(SpendState.BROADCAST_SUCCESS)
        logger.info("transaction %s accepted by the network", txid)
        return SpendResult(
            source_address=result.source_address,
            destination_address=result.destination_address,
            utxo=result.utxo,
            send_amount=result.send_amount,
            fee=result.fee,
            signed_transaction=result.signed_transaction,
            txid=txid,
        )
