"""Database models holding the live state of a raffle round."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base


class RaffleState(str, enum.Enum):
    """Lifecycle state of a round."""

    OPEN = "open"
    """Accepting entries; a draw may start once the round is ready."""

    CALCULATING = "calculating"
    """A randomness request is outstanding; entries and new draws are rejected."""


class RaffleRound(Base):
    """Authoritative state of a named raffle.

    Only the most recent round is kept: settlement rewinds this row to
    ``OPEN`` and deletes its tickets instead of archiving them.
    """

    __tablename__ = "raffle_rounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Primary key."""

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    """Identifier used by workflows to look the raffle up."""

    owner_address: Mapped[str] = mapped_column(String(255), nullable=False)
    """Administrator allowed to reconfigure the raffle and receiving the remainder of each pool."""

    entrance_fee: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Price of a single ticket in the smallest currency unit."""

    winner_share_percent: Mapped[int] = mapped_column(Integer, nullable=False)
    """Percentage of the pool split between all winners of a draw."""

    interval_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    """Minimum number of seconds between two settlements."""

    number_of_winners: Mapped[int] = mapped_column(Integer, nullable=False)
    """Number of winners selected per draw."""

    state: Mapped[RaffleState] = mapped_column(
        Enum(RaffleState, name="raffle_state", native_enum=False, length=20),
        nullable=False,
        default=RaffleState.OPEN,
    )
    """Current lifecycle state."""

    last_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Time of the most recent successful settlement (or of creation)."""

    pending_request_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    """Correlator of the outstanding randomness request, if any."""

    pending_word_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Number of random values requested by the outstanding request."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp when the raffle was created."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    """Timestamp automatically bumped when the round is modified."""

    tickets: Mapped[list["RaffleTicket"]] = relationship(
        back_populates="round",
        cascade="all, delete-orphan",
        order_by="RaffleTicket.position",
    )
    """Player roster, one row per ticket in insertion order."""

    recent_winners: Mapped[list["RecentWinner"]] = relationship(
        back_populates="round",
        cascade="all, delete-orphan",
        order_by="RecentWinner.position",
    )
    """Winners of the most recently completed draw."""

    __table_args__ = (
        UniqueConstraint("name", name="raffle_rounds_name_key"),
        CheckConstraint(
            "winner_share_percent BETWEEN 0 AND 100", name="winner_share_range"
        ),
        CheckConstraint("entrance_fee > 0", name="entrance_fee_positive"),
        CheckConstraint("interval_seconds > 0", name="interval_positive"),
        CheckConstraint("number_of_winners > 0", name="winners_positive"),
    )

    def __init__(
        self,
        *,
        name: str,
        owner_address: str,
        entrance_fee: int,
        winner_share_percent: int,
        interval_seconds: int,
        number_of_winners: int,
        state: RaffleState = RaffleState.OPEN,
        last_timestamp: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        self.name = name
        self.owner_address = owner_address
        self.entrance_fee = entrance_fee
        self.winner_share_percent = winner_share_percent
        self.interval_seconds = interval_seconds
        self.number_of_winners = number_of_winners
        self.state = state
        if last_timestamp is not None:
            self.last_timestamp = last_timestamp
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<RaffleRound(id={id}, name={name}, state={state}, players={players})>".format(
            id=self.id,
            name=self.name,
            state=self.state,
            players=len(self.tickets),
        )

    @classmethod
    def get_by_name(cls, session: Session, name: str) -> Optional["RaffleRound"]:
        """Return the raffle matching ``name`` if it exists."""

        return session.scalar(select(cls).where(cls.name == name))


class RaffleTicket(Base):
    """One roster slot; an address holding N tickets owns N rows."""

    __tablename__ = "raffle_tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Surrogate primary key."""

    round_id: Mapped[int] = mapped_column(
        ForeignKey("raffle_rounds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    """Round this ticket belongs to."""

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Zero-based index of the slot within the roster."""

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    """Address of the participant holding the ticket."""

    round: Mapped["RaffleRound"] = relationship(back_populates="tickets")

    __table_args__ = (
        UniqueConstraint("round_id", "position", name="uq_raffle_ticket_position"),
    )

    def __init__(self, *, position: int, address: str) -> None:
        self.position = position
        self.address = address

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<RaffleTicket(round_id={self.round_id}, position={self.position}, address={self.address})>"


class RecentWinner(Base):
    """A winner recorded by the most recent settlement together with the amount paid."""

    __tablename__ = "raffle_recent_winners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    round_id: Mapped[int] = mapped_column(
        ForeignKey("raffle_rounds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Order in which the winner was drawn."""

    address: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Amount transferred to the winner."""

    round: Mapped["RaffleRound"] = relationship(back_populates="recent_winners")

    def __init__(self, *, position: int, address: str, amount: int) -> None:
        self.position = position
        self.address = address
        self.amount = amount

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<RecentWinner(round_id={self.round_id}, address={self.address}, amount={self.amount})>"


__all__ = [
    "RaffleState",
    "RaffleRound",
    "RaffleTicket",
    "RecentWinner",
]
