"""Randomness provider backed by a remote verifiable randomness service."""

from __future__ import annotations

import logging
from typing import Optional

from ..service_client import ServiceClient
from .base import RandomnessProvider

logger = logging.getLogger(__name__)


class HttpRandomnessProvider(ServiceClient, RandomnessProvider):
    """Client for the randomness service API.

    Values are not pushed back; callers poll with :meth:`poll` and hand the
    result to the settlement step themselves.
    """

    fqdn_env = "RANDOMNESS_BASE_FQDN"
    token_env = "RANDOMNESS_API_TOKEN"

    def request_randomness(self, count: int) -> str:
        if count <= 0:
            raise ValueError("count must be positive")
        response = self._request(
            "POST", "/api/v1/randomness/requests", json={"num_words": count}
        )
        if not isinstance(response, dict) or not response.get("request_id"):
            raise RuntimeError(f"Unexpected randomness response: {response!r}")
        request_id = str(response["request_id"])
        logger.debug(f"Randomness request {request_id} submitted for {count} values")
        return request_id

    def poll(self, request_id: str) -> Optional[list[int]]:
        """Return the random values once the request is fulfilled, else ``None``."""
        response = self._request("GET", f"/api/v1/randomness/requests/{request_id}")
        if not isinstance(response, dict):
            raise RuntimeError(f"Unexpected randomness response: {response!r}")
        if response.get("status") != "fulfilled":
            return None
        return [int(value) for value in response["random_words"]]


__all__ = ["HttpRandomnessProvider"]
