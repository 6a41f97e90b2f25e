"""Ticket allocation and eligibility helpers for raffle entries."""

from __future__ import annotations

from typing import Iterable

from ..errors import InsufficientPayment


def calculate_tickets(amount: int, entrance_fee: int) -> int:
    """Return the number of tickets bought by a deposit of ``amount``.

    Parameters
    ----------
    amount : int
        Deposited amount in the smallest currency unit.
    entrance_fee : int
        Price of a single ticket.

    Returns
    -------
    int
        ``amount // entrance_fee``. The remainder below one full fee stays in
        the pool and is not refunded.

    Raises
    ------
    InsufficientPayment
        If ``amount`` is lower than ``entrance_fee``.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError("amount must be an integer")
    if amount < 0:
        raise ValueError("amount must not be negative")
    if entrance_fee <= 0:
        raise ValueError("entrance_fee must be positive")
    if amount < entrance_fee:
        raise InsufficientPayment(amount, entrance_fee)
    return amount // entrance_fee


def is_recent_winner(address: str, recent_winners: Iterable[str]) -> bool:
    """Return ``True`` when ``address`` won the most recent draw."""
    for winner in recent_winners:
        if winner == address:
            return True
    return False


__all__ = ["calculate_tickets", "is_recent_winner"]
