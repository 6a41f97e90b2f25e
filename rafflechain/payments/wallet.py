"""HTTP wallet service acting as the raffle pool."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import requests

from ..errors import TransferFailed
from ..service_client import ServiceClient
from .base import PaymentGateway

logger = logging.getLogger(__name__)


class WalletGateway(ServiceClient, PaymentGateway):
    """Payment gateway backed by the custodial wallet API.

    Outside of :meth:`transaction` each transfer is a single API call. Inside
    it, transfers are queued and submitted as one batch payout when the block
    exits, which the wallet service applies all-or-nothing.
    """

    fqdn_env = "WALLET_BASE_FQDN"
    token_env = "WALLET_API_TOKEN"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._batch: Optional[list[dict]] = None

    def balance(self) -> int:
        response = self._request("GET", "/api/v1/wallet/balance")
        return int(response["balance"])

    def accept_deposit(self, sender: str, amount: int) -> None:
        response = self._request(
            "POST",
            "/api/v1/wallet/deposits",
            json={"sender": sender, "amount": amount},
        )
        if not isinstance(response, dict) or response.get("status") != "success":
            raise RuntimeError(f"Unexpected deposit response: {response!r}")

    def transfer(self, address: str, amount: int) -> bool:
        if self._batch is not None:
            self._batch.append({"recipient": address, "amount": amount})
            return True
        try:
            response = self._request(
                "POST",
                "/api/v1/wallet/transfers",
                json={"recipient": address, "amount": amount},
            )
        except requests.RequestException as e:
            logger.warning(f"Transfer of {amount} to {address} failed: {e}")
            return False
        return isinstance(response, dict) and response.get("status") == "success"

    @contextmanager
    def transaction(self) -> Iterator["WalletGateway"]:
        if self._batch is not None:
            raise RuntimeError("Nested wallet transactions are not supported")
        self._batch = []
        try:
            yield self
            batch = self._batch
        finally:
            # An exception inside the block discards the queued transfers.
            self._batch = None
        if batch:
            self._submit_batch(batch)

    def _submit_batch(self, batch: list[dict]) -> None:
        """Submit queued transfers as one payout, raising on any failure."""
        first = batch[0]
        try:
            response = self._request(
                "POST", "/api/v1/wallet/payouts", json={"transfers": batch}
            )
        except requests.RequestException as e:
            raise TransferFailed(first["recipient"], first["amount"], str(e)) from e

        payload = response if isinstance(response, dict) else {}
        if payload.get("status") != "success":
            failed = payload.get("failed") or first
            raise TransferFailed(
                failed.get("recipient", first["recipient"]),
                failed.get("amount", first["amount"]),
                payload.get("message"),
            )
        logger.info(f"Submitted payout batch of {len(batch)} transfers")


__all__ = ["WalletGateway"]
