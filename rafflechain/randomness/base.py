"""Two-phase randomness source: request now, fulfill later."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

FulfillmentCallback = Callable[[str, Sequence[int]], object]
"""Callable receiving ``(request_id, random_values)`` once a request is fulfilled."""


class RandomnessProvider(ABC):
    """Issues randomness requests that are answered asynchronously."""

    @abstractmethod
    def request_randomness(self, count: int) -> str:
        """Request ``count`` random values and return the request correlator.

        The call must not block waiting for the values.
        """


__all__ = ["FulfillmentCallback", "RandomnessProvider"]
