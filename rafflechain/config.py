"""Raffle settings loaded from the environment (and ``.env``)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


def _int_setting(env: Mapping[str, str], key: str, default: Optional[int] = None) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        if default is None:
            raise ValueError(f"Environment variable '{key}' is not set")
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{key}' must be an integer") from exc


@dataclass(frozen=True)
class RaffleSettings:
    """Parameters used to create a raffle.

    Attributes
    ----------
    name : str
        Raffle identifier (``RAFFLE_NAME``, default ``"default"``).
    owner_address : str
        Administrator address (``RAFFLE_OWNER_ADDRESS``, required).
    entrance_fee : int
        Ticket price (``RAFFLE_ENTRANCE_FEE``, required).
    interval_seconds : int
        Minimum seconds between draws (``RAFFLE_INTERVAL_SECONDS``, default 30).
    winner_share_percent : int
        Share of the pool paid to winners (``RAFFLE_WINNER_SHARE_PERCENT``, default 100).
    number_of_winners : int
        Winners per draw (``RAFFLE_NUMBER_OF_WINNERS``, default 1).
    """

    name: str
    owner_address: str
    entrance_fee: int
    interval_seconds: int = 30
    winner_share_percent: int = 100
    number_of_winners: int = 1

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RaffleSettings":
        """Build settings from ``env``, defaulting to ``os.environ`` after loading ``.env``."""
        if env is None:
            load_dotenv()
            env = os.environ

        owner = env.get("RAFFLE_OWNER_ADDRESS")
        if not owner:
            raise ValueError("Environment variable 'RAFFLE_OWNER_ADDRESS' is not set")

        return cls(
            name=env.get("RAFFLE_NAME") or "default",
            owner_address=owner,
            entrance_fee=_int_setting(env, "RAFFLE_ENTRANCE_FEE"),
            interval_seconds=_int_setting(env, "RAFFLE_INTERVAL_SECONDS", 30),
            winner_share_percent=_int_setting(env, "RAFFLE_WINNER_SHARE_PERCENT", 100),
            number_of_winners=_int_setting(env, "RAFFLE_NUMBER_OF_WINNERS", 1),
        )


__all__ = ["RaffleSettings"]
