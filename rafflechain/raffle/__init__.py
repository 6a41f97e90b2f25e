"""Round lifecycle of the raffle."""

from .engine import RaffleEngine, RaffleObservation, SettlementResult, UpkeepStatus
from .payout import PayoutSplit, split_pool
from .tickets import calculate_tickets, is_recent_winner

__all__ = [
    "PayoutSplit",
    "RaffleEngine",
    "RaffleObservation",
    "SettlementResult",
    "UpkeepStatus",
    "calculate_tickets",
    "is_recent_winner",
    "split_pool",
]
