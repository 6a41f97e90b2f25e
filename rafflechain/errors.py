"""Exceptions raised when a raffle operation is rejected."""

from __future__ import annotations

from typing import Optional


class RaffleError(Exception):
    """Base class for every rejection raised by the raffle core."""


class InvalidConfiguration(RaffleError):
    """Raised when a raffle is created or reconfigured with unusable values."""


class InsufficientPayment(RaffleError):
    """Raised when a deposit is smaller than the entrance fee.

    Attributes
    ----------
    amount : int
        Amount that was offered.
    entrance_fee : int
        Minimum amount required for a single ticket.
    """

    def __init__(self, amount: int, entrance_fee: int) -> None:
        super().__init__(
            f"Deposit of {amount} is below the entrance fee of {entrance_fee}"
        )
        self.amount = amount
        self.entrance_fee = entrance_fee


class RoundNotOpen(RaffleError):
    """Raised when an operation requires an ``OPEN`` round."""

    def __init__(self, state: object) -> None:
        super().__init__(f"Raffle round is not open (state={state})")
        self.state = state


class NotEligible(RaffleError):
    """Raised when a winner of the previous draw tries to enter again."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Address {address!r} won the previous draw and cannot enter")
        self.address = address


class UpkeepNotNeeded(RaffleError):
    """Raised when a draw is requested while the readiness predicate is false.

    The observed values are kept for diagnostics.
    """

    def __init__(self, balance: int, player_count: int, state: object) -> None:
        super().__init__(
            "Upkeep not needed "
            f"(balance={balance}, players={player_count}, state={state})"
        )
        self.balance = balance
        self.player_count = player_count
        self.state = state


class TransferFailed(RaffleError):
    """Raised when the payment gateway could not deliver a payout."""

    def __init__(self, address: str, amount: int, reason: Optional[str] = None) -> None:
        message = f"Transfer of {amount} to {address!r} failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.address = address
        self.amount = amount


class NotOwner(RaffleError):
    """Raised when a privileged operation is invoked by someone other than the owner."""

    def __init__(self, caller: str) -> None:
        super().__init__(f"Address {caller!r} is not the raffle owner")
        self.caller = caller


class UnknownRequest(RaffleError):
    """Raised when a randomness fulfillment does not match the pending request."""

    def __init__(self, request_id: str) -> None:
        super().__init__(f"No pending randomness request with id {request_id!r}")
        self.request_id = request_id


__all__ = [
    "RaffleError",
    "InvalidConfiguration",
    "InsufficientPayment",
    "RoundNotOpen",
    "NotEligible",
    "UpkeepNotNeeded",
    "TransferFailed",
    "NotOwner",
    "UnknownRequest",
]
