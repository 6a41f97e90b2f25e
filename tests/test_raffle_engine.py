from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from rafflechain.config import RaffleSettings
from rafflechain.errors import (
    InsufficientPayment,
    InvalidConfiguration,
    NotEligible,
    NotOwner,
    RoundNotOpen,
    TransferFailed,
    UnknownRequest,
    UpkeepNotNeeded,
)
from rafflechain.models import Base, RaffleState, RaffleTicket
from rafflechain.payments import InMemoryLedger
from rafflechain.raffle import RaffleEngine
from rafflechain.randomness import LocalRandomnessProvider
from rafflechain.workflows import create_raffle

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RaffleEngineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.clock = FakeClock(T0)
        self.ledger = InMemoryLedger(
            balances={"alice": 10_000, "bob": 10_000, "carol": 10_000}
        )
        self.provider = LocalRandomnessProvider()
        self.events = []

    def tearDown(self) -> None:
        self.engine.dispose()

    def _create(self, **overrides) -> None:
        params = dict(
            name="weekly",
            owner_address="owner",
            entrance_fee=100,
            interval_seconds=30,
            winner_share_percent=60,
            number_of_winners=3,
        )
        params.update(overrides)
        with self.Session.begin() as session:
            create_raffle(session, RaffleSettings(**params), now=T0)

    def _engine(self, session) -> RaffleEngine:
        return RaffleEngine.load(
            session,
            "weekly",
            payments=self.ledger,
            randomness=self.provider,
            clock=self.clock,
            on_event=self.events.append,
        )

    def _enter(self, sender: str, amount: int) -> int:
        with self.Session.begin() as session:
            return self._engine(session).enter(sender, amount)

    def _start_draw(self) -> str:
        self.clock.advance(31)
        with self.Session.begin() as session:
            return self._engine(session).perform_upkeep()

    def _fulfill(self, request_id: str, values):
        with self.Session.begin() as session:
            return self._engine(session).fulfill_randomness(request_id, values)


class EntryTests(RaffleEngineTestCase):
    def test_enter_allocates_whole_tickets_in_insertion_order(self) -> None:
        self._create()
        self.assertEqual(self._enter("alice", 250), 2)
        self.assertEqual(self._enter("bob", 100), 1)

        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.players, ["alice", "alice", "bob"])
            self.assertEqual(engine.number_of_players, 3)
            self.assertEqual(engine.get_player(2), "bob")
            with self.assertRaises(IndexError):
                engine.get_player(3)

        # The fractional remainder stays in the pool.
        self.assertEqual(self.ledger.balance(), 350)
        self.assertEqual(self.ledger.balance_of("alice"), 9_750)
        self.assertEqual([e.name for e in self.events], ["RaffleEnter", "RaffleEnter"])
        self.assertEqual(self.events[0].data["player"], "alice")
        self.assertEqual(self.events[0].data["amount"], 250)

    def test_enter_below_fee_is_rejected(self) -> None:
        self._create()
        with self.assertRaises(InsufficientPayment) as ctx:
            self._enter("alice", 99)
        self.assertEqual(ctx.exception.amount, 99)
        self.assertEqual(ctx.exception.entrance_fee, 100)

        with self.Session() as session:
            self.assertEqual(self._engine(session).players, [])
        self.assertEqual(self.ledger.balance(), 0)
        self.assertEqual(self.ledger.balance_of("alice"), 10_000)

    def test_enter_while_calculating_is_rejected(self) -> None:
        self._create()
        self._enter("alice", 100)
        self._start_draw()

        with self.assertRaises(RoundNotOpen):
            self._enter("bob", 500)
        with self.Session() as session:
            self.assertEqual(self._engine(session).players, ["alice"])
        self.assertEqual(self.ledger.balance_of("bob"), 10_000)

    def test_recent_winner_cannot_enter_until_next_draw_starts(self) -> None:
        self._create(number_of_winners=1)
        self._enter("alice", 100)
        request_id = self._start_draw()
        self._fulfill(request_id, [7])

        with self.assertRaises(NotEligible) as ctx:
            self._enter("alice", 100)
        self.assertEqual(ctx.exception.address, "alice")

        self._enter("bob", 100)
        self._start_draw()
        with self.Session() as session:
            self.assertEqual(self._engine(session).recent_winners, [])
        # alice is no longer excluded; only the in-flight draw blocks her now.
        with self.assertRaises(RoundNotOpen):
            self._enter("alice", 100)

    def test_recent_winner_check_precedes_payment_check(self) -> None:
        self._create(number_of_winners=1)
        self._enter("alice", 100)
        request_id = self._start_draw()
        self._fulfill(request_id, [0])

        with self.assertRaises(NotEligible):
            self._enter("alice", 10)

    def test_payment_check_precedes_round_state_check(self) -> None:
        self._create()
        self._enter("alice", 100)
        self._start_draw()

        with self.assertRaises(InsufficientPayment):
            self._enter("bob", 10)
        with self.assertRaises(RoundNotOpen):
            self._enter("bob", 100)

    def test_failed_deposit_leaves_roster_unchanged(self) -> None:
        self._create()
        self._enter("alice", 100)

        with self.Session.begin() as session:
            engine = self._engine(session)
            # dave has no funds on the ledger.
            with self.assertRaises(ValueError):
                engine.enter("dave", 300)
            self.assertEqual(engine.players, ["alice"])
            self.assertEqual(engine.enter("bob", 100), 1)
            self.assertEqual(engine.players, ["alice", "bob"])

        with self.Session() as session:
            self.assertEqual(self._engine(session).players, ["alice", "bob"])
        self.assertEqual(self.ledger.balance(), 200)


class ReadinessTests(RaffleEngineTestCase):
    def test_fresh_raffle_is_not_ready(self) -> None:
        self._create()
        with self.Session() as session:
            status = self._engine(session).check_upkeep()
        self.assertTrue(status.is_open)
        self.assertFalse(status.time_passed)
        self.assertFalse(status.has_players)
        self.assertFalse(status.has_balance)
        self.assertFalse(status.upkeep_needed)

    def test_interval_must_be_strictly_exceeded(self) -> None:
        self._create()
        self._enter("alice", 100)
        self.clock.advance(30)
        with self.Session() as session:
            self.assertFalse(self._engine(session).is_ready())
        self.clock.advance(1)
        with self.Session() as session:
            self.assertTrue(self._engine(session).is_ready())

    def test_empty_pool_is_not_ready(self) -> None:
        self._create()
        self._enter("alice", 100)
        self.clock.advance(31)
        self.ledger.balances[self.ledger.pool_address] = 0
        with self.Session() as session:
            status = self._engine(session).check_upkeep()
        self.assertTrue(status.has_players)
        self.assertFalse(status.has_balance)
        self.assertFalse(status.upkeep_needed)

    def test_calculating_round_is_not_ready(self) -> None:
        self._create()
        self._enter("alice", 100)
        self._start_draw()
        self.clock.advance(3600)
        with self.Session() as session:
            status = self._engine(session).check_upkeep()
        self.assertFalse(status.is_open)
        self.assertFalse(status.upkeep_needed)


class DrawTests(RaffleEngineTestCase):
    def test_draw_when_not_ready_raises_without_mutation(self) -> None:
        self._create()
        self._enter("alice", 100)
        with self.assertRaises(UpkeepNotNeeded) as ctx:
            with self.Session.begin() as session:
                self._engine(session).perform_upkeep()
        self.assertEqual(ctx.exception.balance, 100)
        self.assertEqual(ctx.exception.player_count, 1)
        self.assertEqual(ctx.exception.state, RaffleState.OPEN)

        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.state, RaffleState.OPEN)
            self.assertIsNone(engine.pending_request_id)
            self.assertEqual(engine.players, ["alice"])
        self.assertEqual(self.provider.pending_requests, {})

    def test_draw_transitions_to_calculating_with_one_request(self) -> None:
        self._create()
        self._enter("alice", 300)
        request_id = self._start_draw()

        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.state, RaffleState.CALCULATING)
            self.assertEqual(engine.pending_request_id, request_id)
            self.assertEqual(engine.recent_winners, [])
            self.assertEqual(engine.recent_winning_amounts, [])
        self.assertEqual(self.provider.pending_requests, {request_id: 3})
        self.assertEqual(self.events[-1].name, "RequestedRaffleWinner")
        self.assertEqual(self.events[-1].data["request_id"], request_id)

        with self.assertRaises(UpkeepNotNeeded):
            with self.Session.begin() as session:
                self._engine(session).perform_upkeep()
        self.assertEqual(len(self.provider.pending_requests), 1)


class SettlementTests(RaffleEngineTestCase):
    def test_settlement_pays_winners_and_sweeps_remainder(self) -> None:
        self._create(winner_share_percent=60, number_of_winners=3)
        self._enter("alice", 500)
        self._enter("bob", 300)
        self._enter("carol", 200)
        request_id = self._start_draw()
        self.clock.advance(5)

        result = self._fulfill(request_id, [0, 15, 19])

        self.assertEqual(result.pool, 1000)
        self.assertEqual(result.winners, ["alice", "bob", "carol"])
        self.assertEqual(result.split.per_winner, 200)
        self.assertEqual(result.split.owner_share, 400)
        self.assertEqual(self.ledger.balance(), 0)
        self.assertEqual(self.ledger.balance_of("owner"), 400)
        self.assertEqual(self.ledger.balance_of("alice"), 9_700)
        self.assertEqual(self.ledger.balance_of("bob"), 9_900)
        self.assertEqual(self.ledger.balance_of("carol"), 10_000)

        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.players, [])
            self.assertEqual(engine.state, RaffleState.OPEN)
            self.assertEqual(engine.last_timestamp, self.clock.now)
            self.assertIsNone(engine.pending_request_id)
            self.assertEqual(engine.recent_winners, ["alice", "bob", "carol"])
            self.assertEqual(engine.recent_winning_amounts, [200, 200, 200])
            self.assertEqual(session.scalar(select(func.count(RaffleTicket.id))), 0)

        picked = [e for e in self.events if e.name == "WinnerPicked"]
        self.assertEqual([e.data["winner"] for e in picked], ["alice", "bob", "carol"])

    def test_rounding_dust_goes_to_owner_and_duplicates_are_kept(self) -> None:
        self._create(entrance_fee=1, winner_share_percent=50, number_of_winners=2)
        self._enter("alice", 7)
        request_id = self._start_draw()

        result = self._fulfill(request_id, [3, 10])

        self.assertEqual(result.winners, ["alice", "alice"])
        self.assertEqual(result.split.per_winner, 1)
        self.assertEqual(result.split.owner_share, 5)
        self.assertEqual(self.ledger.balance_of("owner"), 5)
        self.assertEqual(self.ledger.balance_of("alice"), 10_000 - 7 + 2)
        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.recent_winners, ["alice", "alice"])
            self.assertEqual(engine.recent_winning_amounts, [1, 1])

    def test_failed_transfer_aborts_the_whole_settlement(self) -> None:
        self._create(number_of_winners=2)
        self._enter("alice", 100)
        self._enter("bob", 100)
        request_id = self._start_draw()
        self.ledger.fail_for.add("bob")
        balances_before = dict(self.ledger.balances)

        with self.assertRaises(TransferFailed) as ctx:
            self._fulfill(request_id, [0, 1])
        self.assertEqual(ctx.exception.address, "bob")

        self.assertEqual(self.ledger.balances, balances_before)
        self.assertEqual(self.ledger.transfers, [])
        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.state, RaffleState.CALCULATING)
            self.assertEqual(engine.pending_request_id, request_id)
            self.assertEqual(engine.players, ["alice", "bob"])
            self.assertEqual(engine.recent_winners, [])

    def test_retry_after_failed_transfer_records_winners_once(self) -> None:
        self._create(number_of_winners=2)
        self._enter("alice", 100)
        self._enter("bob", 100)
        request_id = self._start_draw()
        self.ledger.fail_for.add("bob")

        with self.Session.begin() as session:
            engine = self._engine(session)
            with self.assertRaises(TransferFailed):
                engine.fulfill_randomness(request_id, [0, 1])
            self.assertEqual(engine.recent_winners, [])
            self.assertEqual(engine.state, RaffleState.CALCULATING)

            self.ledger.fail_for.clear()
            result = engine.fulfill_randomness(request_id, [0, 1])
            self.assertEqual(result.winners, ["alice", "bob"])
            self.assertEqual(engine.recent_winners, ["alice", "bob"])

        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.recent_winners, ["alice", "bob"])
            self.assertEqual(engine.recent_winning_amounts, [60, 60])
        self.assertEqual(self.ledger.balance_of("owner"), 80)

    def test_fulfillment_with_wrong_request_is_rejected(self) -> None:
        self._create(number_of_winners=1)
        self._enter("alice", 100)

        with self.assertRaises(UnknownRequest):
            self._fulfill("not-requested", [1])

        request_id = self._start_draw()
        with self.assertRaises(UnknownRequest):
            self._fulfill("other", [1])
        with self.assertRaises(ValueError):
            self._fulfill(request_id, [1, 2])

        with self.Session() as session:
            self.assertEqual(self._engine(session).state, RaffleState.CALCULATING)

    def test_settlement_uses_winner_count_from_request_time(self) -> None:
        self._create(number_of_winners=2, winner_share_percent=100)
        self._enter("alice", 400)
        request_id = self._start_draw()
        with self.Session.begin() as session:
            # Bypasses the admin guard to simulate an out-of-order reconfiguration.
            self._engine(session).raffle.number_of_winners = 5

        result = self._fulfill(request_id, [0, 1])
        self.assertEqual(len(result.winners), 2)
        self.assertEqual(result.split.per_winner, 200)
        self.assertEqual(result.split.owner_share, 0)

    def test_local_provider_drives_settlement(self) -> None:
        self._create(number_of_winners=2)
        self._enter("alice", 100)
        self._enter("bob", 200)
        request_id = self._start_draw()

        with self.Session.begin() as session:
            engine = self._engine(session)
            result = self.provider.fulfill(request_id, engine.fulfill_randomness)

        self.assertEqual(len(result.winners), 2)
        self.assertTrue(set(result.winners) <= {"alice", "bob"})
        self.assertEqual(self.provider.pending_requests, {})


class AdminTests(RaffleEngineTestCase):
    def test_number_of_winners_locked_while_calculating(self) -> None:
        self._create()
        self._enter("alice", 100)
        self._start_draw()

        with self.assertRaises(RoundNotOpen):
            with self.Session.begin() as session:
                self._engine(session).set_number_of_winners("owner", 5)

        with self.Session.begin() as session:
            self._engine(session).set_interval("owner", 120)
        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.interval, timedelta(seconds=120))
            self.assertEqual(engine.number_of_winners, 3)

    def test_number_of_winners_can_change_while_open(self) -> None:
        self._create()
        with self.Session.begin() as session:
            self._engine(session).set_number_of_winners("owner", 5)
        with self.Session() as session:
            self.assertEqual(self._engine(session).number_of_winners, 5)

    def test_admin_calls_require_owner(self) -> None:
        self._create()
        with self.Session.begin() as session:
            engine = self._engine(session)
            with self.assertRaises(NotOwner):
                engine.set_interval("alice", 10)
            with self.assertRaises(NotOwner):
                engine.set_number_of_winners("alice", 2)
            with self.assertRaises(InvalidConfiguration):
                engine.set_interval("owner", 0)
            with self.assertRaises(InvalidConfiguration):
                engine.set_number_of_winners("owner", 0)

    def test_accessors_report_configuration(self) -> None:
        self._create()
        with self.Session() as session:
            engine = self._engine(session)
            self.assertEqual(engine.entrance_fee, 100)
            self.assertEqual(engine.interval, timedelta(seconds=30))
            self.assertEqual(engine.winner_share_percent, 60)
            self.assertEqual(engine.number_of_winners, 3)
            self.assertEqual(engine.owner, "owner")
            self.assertEqual(engine.last_timestamp, T0)
            self.assertEqual(engine.balance, 0)
            self.assertEqual(engine.state, RaffleState.OPEN)


if __name__ == "__main__":
    unittest.main()
