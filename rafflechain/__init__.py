"""Periodically settled raffle with weighted tickets and external randomness."""

from .config import RaffleSettings
from .errors import (
    InsufficientPayment,
    InvalidConfiguration,
    NotEligible,
    NotOwner,
    RaffleError,
    RoundNotOpen,
    TransferFailed,
    UnknownRequest,
    UpkeepNotNeeded,
)
from .models import RaffleRound, RaffleState
from .raffle import RaffleEngine, SettlementResult, UpkeepStatus

__all__ = [
    "InsufficientPayment",
    "InvalidConfiguration",
    "NotEligible",
    "NotOwner",
    "RaffleEngine",
    "RaffleError",
    "RaffleRound",
    "RaffleSettings",
    "RaffleState",
    "RoundNotOpen",
    "SettlementResult",
    "TransferFailed",
    "UnknownRequest",
    "UpkeepNotNeeded",
    "UpkeepStatus",
]
