"""Single-iteration upkeep poller; scheduling is left to the caller."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from .errors import UpkeepNotNeeded
from .payments import PaymentGateway
from .raffle.engine import Clock, RaffleEngine, SettlementResult
from .randomness import HttpRandomnessProvider, RandomnessProvider

logger = logging.getLogger(__name__)


class UpkeepPoller:
    """Checks readiness of one raffle and starts a draw when it holds.

    Every call opens its own transaction through ``session_factory`` so the
    check and the draw run as one unit of work.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        name: str,
        *,
        payments: PaymentGateway,
        randomness: RandomnessProvider,
        clock: Optional[Clock] = None,
    ) -> None:
        self._session_factory = session_factory
        self._name = name
        self._payments = payments
        self._randomness = randomness
        self._clock = clock

    def _engine(self, session) -> RaffleEngine:
        return RaffleEngine.load(
            session,
            self._name,
            payments=self._payments,
            randomness=self._randomness,
            clock=self._clock,
        )

    def poll_once(self) -> Optional[str]:
        """Start a draw if the raffle is ready.

        Returns
        -------
        Optional[str]
            The randomness correlator when a draw was started, otherwise ``None``.
        """
        with self._session_factory.begin() as session:
            engine = self._engine(session)
            status = engine.check_upkeep()
            if not status.upkeep_needed:
                logger.debug(f"Raffle '{self._name}' not ready: {status}")
                return None
            try:
                return engine.perform_upkeep()
            except UpkeepNotNeeded as e:
                logger.info(f"Raffle '{self._name}' stopped being ready: {e}")
                return None

    def settle_fulfilled(self) -> Optional[SettlementResult]:
        """Settle the outstanding draw once the remote provider has answered.

        Only meaningful with :class:`HttpRandomnessProvider`; pushed
        fulfillments are handed to :meth:`RaffleEngine.fulfill_randomness`
        directly.
        """
        if not isinstance(self._randomness, HttpRandomnessProvider):
            raise TypeError("settle_fulfilled requires an HttpRandomnessProvider")
        with self._session_factory.begin() as session:
            engine = self._engine(session)
            request_id = engine.pending_request_id
            if request_id is None:
                return None
            values = self._randomness.poll(request_id)
            if values is None:
                logger.debug(f"Randomness request {request_id} not fulfilled yet")
                return None
            return engine.fulfill_randomness(request_id, values)


__all__ = ["UpkeepPoller"]
