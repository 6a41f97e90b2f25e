from typing import Optional, Sequence
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from .config import RaffleSettings
from .errors import InvalidConfiguration
from .models import RaffleRound, RaffleState
from .payments import PaymentGateway
from .raffle.engine import RaffleEngine, SettlementResult
from .randomness import RandomnessProvider


def create_raffle(
    session: Session,
    settings: RaffleSettings,
    now: Optional[datetime] = None,
) -> RaffleRound:
    """Validate ``settings`` and persist a new open raffle.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    settings : RaffleSettings
        Configuration of the raffle. ``entrance_fee`` and
        ``winner_share_percent`` cannot be changed afterwards.
    now : Optional[datetime]
        Creation time, which also anchors the first readiness interval.
        Defaults to the current UTC time.

    Returns
    -------
    RaffleRound
        The persisted round in the ``OPEN`` state with an empty roster.

    Raises
    ------
    InvalidConfiguration
        If the winner share is outside ``[0, 100]``, any other numeric setting
        is not positive, or a raffle with the same name exists.
    """
    if not 0 <= settings.winner_share_percent <= 100:
        raise InvalidConfiguration(
            f"winner_share_percent must be between 0 and 100, got {settings.winner_share_percent}"
        )
    if settings.entrance_fee <= 0:
        raise InvalidConfiguration("entrance_fee must be positive")
    if settings.interval_seconds <= 0:
        raise InvalidConfiguration("interval_seconds must be positive")
    if settings.number_of_winners <= 0:
        raise InvalidConfiguration("number_of_winners must be positive")
    if not settings.owner_address:
        raise InvalidConfiguration("owner_address is required")
    if RaffleRound.get_by_name(session, settings.name) is not None:
        raise InvalidConfiguration(f"Raffle '{settings.name}' already exists")

    now = now or datetime.now(timezone.utc)
    raffle = RaffleRound(
        name=settings.name,
        owner_address=settings.owner_address,
        entrance_fee=settings.entrance_fee,
        winner_share_percent=settings.winner_share_percent,
        interval_seconds=settings.interval_seconds,
        number_of_winners=settings.number_of_winners,
        state=RaffleState.OPEN,
        last_timestamp=now,
        created_at=now,
        updated_at=now,
    )
    session.add(raffle)
    session.flush()
    return raffle


def enter_raffle(
    session: Session,
    name: str,
    sender: str,
    amount: int,
    payments: PaymentGateway,
) -> int:
    """Enter ``sender`` into raffle ``name`` and return the tickets bought."""
    engine = RaffleEngine.load(session, name, payments=payments)
    return engine.enter(sender, amount)


def start_draw(
    session: Session,
    name: str,
    payments: PaymentGateway,
    randomness: RandomnessProvider,
) -> str:
    """Start a draw for raffle ``name`` and return the randomness correlator."""
    engine = RaffleEngine.load(session, name, payments=payments, randomness=randomness)
    return engine.perform_upkeep()


def settle_draw(
    session: Session,
    name: str,
    request_id: str,
    random_values: Sequence[int],
    payments: PaymentGateway,
) -> SettlementResult:
    """Settle raffle ``name`` with the values delivered for ``request_id``.

    Run this inside its own ``Session.begin()`` block: a
    :class:`~rafflechain.errors.TransferFailed` must roll the whole
    settlement back so the round stays ``CALCULATING`` with its roster intact.
    """
    engine = RaffleEngine.load(session, name, payments=payments)
    return engine.fulfill_randomness(request_id, random_values)
