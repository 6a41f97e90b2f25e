"""In-process ledger backing local simulations and tests."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional, Set

from .base import PaymentGateway

logger = logging.getLogger(__name__)


class InMemoryLedger(PaymentGateway):
    """Dictionary-backed account ledger with a single pool account.

    Parameters
    ----------
    pool_address : str, default: "raffle-pool"
        Account holding deposited funds.
    balances : Optional[Dict[str, int]]
        Initial balances; participants need funds before they can deposit.
    fail_for : Optional[Iterable[str]]
        Recipients whose transfers are refused.
    """

    def __init__(
        self,
        pool_address: str = "raffle-pool",
        balances: Optional[Dict[str, int]] = None,
        fail_for: Optional[Iterable[str]] = None,
    ) -> None:
        self.pool_address = pool_address
        self.balances: Dict[str, int] = dict(balances or {})
        self.balances.setdefault(pool_address, 0)
        self.fail_for: Set[str] = set(fail_for or ())
        self.transfers: list[tuple[str, int]] = []

    def balance_of(self, address: str) -> int:
        return self.balances.get(address, 0)

    def balance(self) -> int:
        return self.balance_of(self.pool_address)

    def accept_deposit(self, sender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must not be negative")
        available = self.balance_of(sender)
        if available < amount:
            raise ValueError(
                f"Account {sender!r} holds {available}, cannot deposit {amount}"
            )
        self.balances[sender] = available - amount
        self.balances[self.pool_address] += amount
        logger.debug(f"Deposited {amount} from {sender} into the pool")

    def transfer(self, address: str, amount: int) -> bool:
        if address in self.fail_for:
            logger.warning(f"Recipient {address} refused a transfer of {amount}")
            return False
        if self.balance() < amount:
            logger.warning(f"Pool cannot cover a transfer of {amount} to {address}")
            return False
        self.balances[self.pool_address] -= amount
        self.balances[address] = self.balance_of(address) + amount
        self.transfers.append((address, amount))
        return True

    @contextmanager
    def transaction(self) -> Iterator["InMemoryLedger"]:
        balances = dict(self.balances)
        transfers = list(self.transfers)
        try:
            yield self
        except BaseException:
            self.balances = balances
            self.transfers = transfers
            logger.debug("Ledger transaction rolled back")
            raise


__all__ = ["InMemoryLedger"]
