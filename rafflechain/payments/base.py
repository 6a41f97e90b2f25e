"""Payment primitive used to collect deposits and pay out settlements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator


class PaymentGateway(ABC):
    """Holds the raffle pool and moves funds out of it.

    Recipients may run arbitrary code when paid, so callers must treat every
    :meth:`transfer` as possibly failing.
    """

    @abstractmethod
    def balance(self) -> int:
        """Return the amount currently held in the pool."""

    @abstractmethod
    def accept_deposit(self, sender: str, amount: int) -> None:
        """Move ``amount`` paid by ``sender`` into the pool."""

    @abstractmethod
    def transfer(self, address: str, amount: int) -> bool:
        """Pay ``amount`` from the pool to ``address``; return whether it succeeded."""

    @contextmanager
    def transaction(self) -> Iterator["PaymentGateway"]:
        """Group transfers so that an exception undoes all of them.

        The default implementation provides no grouping; gateways that can
        roll back override it.
        """
        yield self


__all__ = ["PaymentGateway"]
