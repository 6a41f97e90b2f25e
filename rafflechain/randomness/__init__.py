"""Randomness providers answering draw requests."""

from .base import FulfillmentCallback, RandomnessProvider
from .http import HttpRandomnessProvider
from .local import LocalRandomnessProvider

__all__ = [
    "FulfillmentCallback",
    "RandomnessProvider",
    "HttpRandomnessProvider",
    "LocalRandomnessProvider",
]
