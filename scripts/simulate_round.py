"""Run one complete raffle round against an in-memory database and ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine

from rafflechain.config import RaffleSettings
from rafflechain.db.engine import get_sessionmaker
from rafflechain.models import Base
from rafflechain.payments import InMemoryLedger
from rafflechain.raffle import RaffleEngine
from rafflechain.randomness import LocalRandomnessProvider
from rafflechain.workflows import create_raffle, enter_raffle


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    start = datetime.now(timezone.utc)
    settings = RaffleSettings(
        name="demo",
        owner_address="owner",
        entrance_fee=100,
        interval_seconds=30,
        winner_share_percent=60,
        number_of_winners=2,
    )
    ledger = InMemoryLedger(balances={"alice": 1_000, "bob": 1_000, "carol": 1_000})
    provider = LocalRandomnessProvider()

    with Session.begin() as session:
        create_raffle(session, settings, now=start)

    for player, amount in [("alice", 250), ("bob", 100), ("carol", 500)]:
        with Session.begin() as session:
            tickets = enter_raffle(session, "demo", player, amount, ledger)
            print(f"{player} bought {tickets} tickets with {amount}")

    later = start + timedelta(seconds=31)
    with Session.begin() as session:
        raffle_engine = RaffleEngine.load(
            session, "demo", payments=ledger, randomness=provider, clock=lambda: later
        )
        request_id = raffle_engine.perform_upkeep()

    with Session.begin() as session:
        raffle_engine = RaffleEngine.load(session, "demo", payments=ledger, clock=lambda: later)
        result = provider.fulfill(request_id, raffle_engine.fulfill_randomness)

    print(f"Winners: {result.winners}")
    print(f"Each winner received {result.split.per_winner}, owner received {result.split.owner_share}")
    print(f"Final balances: {ledger.balances}")


if __name__ == "__main__":
    main()
