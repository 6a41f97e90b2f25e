"""Pool split between the winners and the raffle owner."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PayoutSplit:
    """Amounts paid out by a single settlement.

    Attributes
    ----------
    per_winner : int
        Amount transferred to each winner.
    owner_share : int
        Amount transferred to the owner, including every rounding remainder.
    """

    per_winner: int
    owner_share: int


def split_pool(pool: int, winner_share_percent: int, number_of_winners: int) -> PayoutSplit:
    """Split ``pool`` into equal winner payouts and the owner's remainder.

    Each division truncates, and whatever is not paid to winners goes to the
    owner, so ``per_winner * number_of_winners + owner_share == pool``.
    """
    if pool < 0:
        raise ValueError("pool must not be negative")
    if not 0 <= winner_share_percent <= 100:
        raise ValueError("winner_share_percent must be between 0 and 100")
    if number_of_winners <= 0:
        raise ValueError("number_of_winners must be positive")

    winners_total = pool * winner_share_percent // 100
    per_winner = winners_total // number_of_winners
    owner_share = pool - per_winner * number_of_winners
    return PayoutSplit(per_winner=per_winner, owner_share=owner_share)


__all__ = ["PayoutSplit", "split_pool"]
