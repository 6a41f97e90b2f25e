"""Round lifecycle engine: entries, readiness, draws, and settlement."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Sequence

from sqlalchemy.orm import Session

from ..db.utils import ensure_utc
from ..errors import (
    InvalidConfiguration,
    NotEligible,
    NotOwner,
    RoundNotOpen,
    TransferFailed,
    UnknownRequest,
    UpkeepNotNeeded,
)
from ..models import RaffleRound, RaffleState, RaffleTicket, RecentWinner
from ..payments import PaymentGateway
from ..randomness import RandomnessProvider
from .payout import PayoutSplit, split_pool
from .tickets import calculate_tickets, is_recent_winner

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RaffleObservation:
    """Notification emitted whenever the round changes.

    Attributes
    ----------
    name : str
        ``"RaffleEnter"``, ``"RequestedRaffleWinner"`` or ``"WinnerPicked"``.
    raffle : str
        Name of the raffle that emitted the observation.
    data : Dict[str, Any]
        Observation payload.
    """

    name: str
    raffle: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpkeepStatus:
    """Snapshot of the readiness predicate and the values it was computed from."""

    is_open: bool
    time_passed: bool
    has_players: bool
    has_balance: bool
    balance: int
    player_count: int
    state: RaffleState

    @property
    def upkeep_needed(self) -> bool:
        return self.is_open and self.time_passed and self.has_players and self.has_balance


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of a completed settlement.

    Attributes
    ----------
    request_id : str
        Correlator of the fulfilled randomness request.
    winners : list[str]
        Winners in draw order; the same address may appear more than once.
    split : PayoutSplit
        Amount paid to each winner and to the owner.
    pool : int
        Pool balance observed before any payout.
    settled_at : datetime
        New ``last_timestamp`` of the round.
    """

    request_id: str
    winners: list[str]
    split: PayoutSplit
    pool: int
    settled_at: datetime


class RaffleEngine:
    """Engine applying every state transition of a single raffle round.

    All mutations go through this class. Methods flush the session but never
    commit: each call is meant to run inside its own ``Session.begin()`` block
    so that a rejected operation, including a failed payout, leaves the
    persisted round untouched.
    """

    def __init__(
        self,
        session: Session,
        raffle: RaffleRound,
        *,
        payments: PaymentGateway,
        randomness: Optional[RandomnessProvider] = None,
        clock: Optional[Clock] = None,
        on_event: Optional[Callable[[RaffleObservation], None]] = None,
    ) -> None:
        """Bind an engine to a persisted raffle.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session the raffle was loaded with.
        raffle : RaffleRound
            Round to operate on.
        payments : PaymentGateway
            Gateway holding the pool.
        randomness : Optional[RandomnessProvider], default: None
            Provider used to start draws. Only :meth:`perform_upkeep` needs it.
        clock : Optional[Clock], default: None
            Returns the current aware datetime; defaults to UTC wall-clock time.
        on_event : Optional[Callable[[RaffleObservation], None]], default: None
            Receives every observation emitted by the engine.
        """
        if raffle.id is None:
            raise ValueError("Raffle must be persisted before it can be operated")
        self._session = session
        self._raffle = raffle
        self._payments = payments
        self._randomness = randomness
        self._clock = clock or _utcnow
        self._on_event = on_event

    @classmethod
    def load(
        cls, session: Session, name: str, **kwargs: Any
    ) -> "RaffleEngine":
        """Return an engine for the raffle called ``name``.

        Raises
        ------
        LookupError
            If no raffle with that name exists.
        """
        raffle = RaffleRound.get_by_name(session, name)
        if raffle is None:
            raise LookupError(f"Raffle '{name}' does not exist")
        return cls(session, raffle, **kwargs)

    # -------- observability --------
    @property
    def raffle(self) -> RaffleRound:
        return self._raffle

    @property
    def balance(self) -> int:
        return self._payments.balance()

    @property
    def entrance_fee(self) -> int:
        return self._raffle.entrance_fee

    @property
    def interval(self) -> timedelta:
        return timedelta(seconds=self._raffle.interval_seconds)

    @property
    def players(self) -> list[str]:
        return [ticket.address for ticket in self._raffle.tickets]

    def get_player(self, index: int) -> str:
        """Return the address occupying roster slot ``index``."""
        tickets = self._raffle.tickets
        if not 0 <= index < len(tickets):
            raise IndexError(f"Player index {index} out of range")
        return tickets[index].address

    @property
    def number_of_players(self) -> int:
        return len(self._raffle.tickets)

    @property
    def recent_winners(self) -> list[str]:
        return [winner.address for winner in self._raffle.recent_winners]

    @property
    def recent_winning_amounts(self) -> list[int]:
        return [winner.amount for winner in self._raffle.recent_winners]

    @property
    def state(self) -> RaffleState:
        return self._raffle.state

    @property
    def number_of_winners(self) -> int:
        return self._raffle.number_of_winners

    @property
    def last_timestamp(self) -> datetime:
        return ensure_utc(self._raffle.last_timestamp)

    @property
    def winner_share_percent(self) -> int:
        return self._raffle.winner_share_percent

    @property
    def owner(self) -> str:
        return self._raffle.owner_address

    @property
    def pending_request_id(self) -> Optional[str]:
        return self._raffle.pending_request_id

    # -------- entries --------
    def enter(self, sender: str, amount: int) -> int:
        """Buy tickets for ``sender`` with a deposit of ``amount``.

        Parameters
        ----------
        sender : str
            Address of the participant.
        amount : int
            Deposit in the smallest currency unit. The whole amount goes to
            the pool even when it is not a multiple of the entrance fee.

        Returns
        -------
        int
            Number of tickets appended to the roster.

        Raises
        ------
        NotEligible
            If ``sender`` won the previous draw.
        InsufficientPayment
            If ``amount`` is below the entrance fee.
        RoundNotOpen
            If a draw is in flight.
        """
        raffle = self._raffle
        if is_recent_winner(sender, self.recent_winners):
            raise NotEligible(sender)
        tickets = calculate_tickets(amount, raffle.entrance_fee)
        if raffle.state != RaffleState.OPEN:
            raise RoundNotOpen(raffle.state)

        # Tickets are flushed before the deposit; a remote deposit cannot be undone.
        start = len(raffle.tickets)
        raffle.tickets.extend(
            RaffleTicket(position=start + offset, address=sender)
            for offset in range(tickets)
        )
        self._session.flush()
        try:
            self._payments.accept_deposit(sender, amount)
        except Exception:
            del raffle.tickets[start:]
            self._session.flush()
            raise

        logger.info(f"{sender} entered raffle '{raffle.name}' with {tickets} tickets")
        self._emit("RaffleEnter", player=sender, amount=amount, tickets=tickets)
        return tickets

    # -------- readiness --------
    def check_upkeep(self) -> UpkeepStatus:
        """Evaluate the readiness predicate against live state. Read-only."""
        raffle = self._raffle
        balance = self._payments.balance()
        player_count = len(raffle.tickets)
        elapsed = self._clock() - ensure_utc(raffle.last_timestamp)
        return UpkeepStatus(
            is_open=raffle.state == RaffleState.OPEN,
            time_passed=elapsed > timedelta(seconds=raffle.interval_seconds),
            has_players=player_count > 0,
            has_balance=balance > 0,
            balance=balance,
            player_count=player_count,
            state=raffle.state,
        )

    def is_ready(self) -> bool:
        return self.check_upkeep().upkeep_needed

    # -------- draw --------
    def perform_upkeep(self) -> str:
        """Start a draw and return the randomness request correlator.

        Readiness is always re-evaluated here; a caller's earlier observation
        is never trusted.

        Raises
        ------
        UpkeepNotNeeded
            If the readiness predicate is false. Nothing is mutated.
        """
        status = self.check_upkeep()
        if not status.upkeep_needed:
            logger.warning(
                f"Draw rejected for raffle '{self._raffle.name}': "
                f"balance={status.balance}, players={status.player_count}, "
                f"state={status.state.value}"
            )
            raise UpkeepNotNeeded(status.balance, status.player_count, status.state)
        if self._randomness is None:
            raise RuntimeError("A randomness provider is required to start a draw")

        raffle = self._raffle
        word_count = raffle.number_of_winners
        raffle.state = RaffleState.CALCULATING
        # Previous winners become eligible again from this point on.
        raffle.recent_winners.clear()

        request_id = self._randomness.request_randomness(word_count)
        raffle.pending_request_id = request_id
        raffle.pending_word_count = word_count
        self._session.flush()

        logger.info(f"Raffle '{raffle.name}' requested {word_count} random values ({request_id})")
        self._emit("RequestedRaffleWinner", request_id=request_id)
        return request_id

    # -------- settlement --------
    def fulfill_randomness(
        self, request_id: str, random_values: Sequence[int]
    ) -> SettlementResult:
        """Select winners with ``random_values`` and pay out the pool.

        Parameters
        ----------
        request_id : str
            Correlator returned by :meth:`perform_upkeep`.
        random_values : Sequence[int]
            Values delivered by the randomness provider, one per winner.

        Returns
        -------
        SettlementResult
            Winners and payouts of the settled round.

        Raises
        ------
        UnknownRequest
            If ``request_id`` is not the outstanding request.
        ValueError
            If the number of values differs from the number requested.
        TransferFailed
            If any payout is refused. The gateway transaction is rolled back
            and the caller's session transaction must be rolled back as well.

        Notes
        -----
        Winners are drawn with replacement: ``winner = roster[value % len(roster)]``
        for each value in order, so one address may win several times.
        """
        raffle = self._raffle
        if (
            raffle.state != RaffleState.CALCULATING
            or raffle.pending_request_id != request_id
        ):
            raise UnknownRequest(request_id)

        # The count fixed at request time wins over the current configuration.
        word_count = raffle.pending_word_count or raffle.number_of_winners
        if len(random_values) != word_count:
            raise ValueError(
                f"Request {request_id} expects {word_count} random values, "
                f"got {len(random_values)}"
            )
        roster = self.players
        if not roster:
            raise RuntimeError(f"Raffle '{raffle.name}' has no players to draw from")

        pool = self._payments.balance()
        split = split_pool(pool, raffle.winner_share_percent, word_count)
        winners: list[str] = []

        with self._payments.transaction():
            for position, value in enumerate(random_values):
                winner = roster[int(value) % len(roster)]
                winners.append(winner)
                self._pay(winner, split.per_winner)
            self._pay(raffle.owner_address, split.owner_share)

        # Winners are recorded only once every payout went through.
        raffle.recent_winners.extend(
            RecentWinner(position=position, address=winner, amount=split.per_winner)
            for position, winner in enumerate(winners)
        )

        now = self._clock()
        raffle.tickets.clear()
        raffle.last_timestamp = now
        raffle.state = RaffleState.OPEN
        raffle.pending_request_id = None
        raffle.pending_word_count = None
        self._session.flush()

        logger.info(
            f"Raffle '{raffle.name}' settled: pool={pool}, winners={winners}, "
            f"per_winner={split.per_winner}, owner_share={split.owner_share}"
        )
        for winner in winners:
            self._emit("WinnerPicked", winner=winner, amount=split.per_winner)
        return SettlementResult(
            request_id=request_id,
            winners=winners,
            split=split,
            pool=pool,
            settled_at=now,
        )

    # -------- admin --------
    def set_interval(self, caller: str, seconds: int) -> None:
        """Replace the minimum time between draws. Allowed in any state."""
        self._require_owner(caller)
        if seconds <= 0:
            raise InvalidConfiguration("interval must be positive")
        self._raffle.interval_seconds = seconds
        self._session.flush()
        logger.info(f"Raffle '{self._raffle.name}' interval set to {seconds}s")

    def set_number_of_winners(self, caller: str, count: int) -> None:
        """Replace the number of winners per draw.

        Raises
        ------
        RoundNotOpen
            If a draw is in flight.
        """
        self._require_owner(caller)
        if self._raffle.state == RaffleState.CALCULATING:
            raise RoundNotOpen(self._raffle.state)
        if count <= 0:
            raise InvalidConfiguration("number of winners must be positive")
        self._raffle.number_of_winners = count
        self._session.flush()
        logger.info(f"Raffle '{self._raffle.name}' number of winners set to {count}")

    # -------- helpers --------
    def _require_owner(self, caller: str) -> None:
        if caller != self._raffle.owner_address:
            logger.warning(f"Rejected admin call from {caller} on raffle '{self._raffle.name}'")
            raise NotOwner(caller)

    def _pay(self, address: str, amount: int) -> None:
        if amount == 0:
            return
        if not self._payments.transfer(address, amount):
            logger.error(f"Payout of {amount} to {address} failed; settlement aborted")
            raise TransferFailed(address, amount)

    def _emit(self, name: str, **data: Any) -> None:
        if self._on_event is not None:
            self._on_event(RaffleObservation(name=name, raffle=self._raffle.name, data=data))


__all__ = [
    "RaffleEngine",
    "RaffleObservation",
    "SettlementResult",
    "UpkeepStatus",
]
