"""Randomness provider generating values in-process."""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Dict, Optional, Sequence

from .base import FulfillmentCallback, RandomnessProvider

logger = logging.getLogger(__name__)


class LocalRandomnessProvider(RandomnessProvider):
    """Provider backed by :mod:`secrets`, fulfilled on demand.

    Requests are kept in a pending table keyed by correlator until
    :meth:`fulfill` delivers them. Each request is delivered at most once.

    Parameters
    ----------
    bits : int, default: 256
        Size of every generated value.
    """

    def __init__(self, bits: int = 256) -> None:
        if bits <= 0:
            raise ValueError("bits must be positive")
        self.bits = bits
        self._pending: Dict[str, int] = {}

    @property
    def pending_requests(self) -> Dict[str, int]:
        """Return a copy of the outstanding requests and their value counts."""
        return dict(self._pending)

    def request_randomness(self, count: int) -> str:
        if count <= 0:
            raise ValueError("count must be positive")
        request_id = uuid.uuid4().hex
        self._pending[request_id] = count
        logger.debug(f"Randomness request {request_id} queued for {count} values")
        return request_id

    def fulfill(
        self,
        request_id: str,
        callback: FulfillmentCallback,
        values: Optional[Sequence[int]] = None,
    ):
        """Deliver the values for ``request_id`` to ``callback``.

        ``values`` overrides the generated values, which makes draws
        reproducible in tests. The request leaves the pending table only when
        ``callback`` returns without raising.
        """
        try:
            count = self._pending[request_id]
        except KeyError as exc:
            raise KeyError(f"Unknown randomness request '{request_id}'") from exc

        if values is None:
            values = [secrets.randbits(self.bits) for _ in range(count)]
        elif len(values) != count:
            raise ValueError(f"Request {request_id} expects {count} values")

        result = callback(request_id, list(values))
        del self._pending[request_id]
        return result


__all__ = ["LocalRandomnessProvider"]
