from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .raffle import (  # noqa: F401
    RaffleState,
    RaffleRound,
    RaffleTicket,
    RecentWinner,
)

__all__ = [
    "Base",
    "RaffleState",
    "RaffleRound",
    "RaffleTicket",
    "RecentWinner",
]
