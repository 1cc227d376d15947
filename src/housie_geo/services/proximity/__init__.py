"""Proximity detection and imprint logging."""

from .engine import ImprintContext, ImprintEngine, WatchState
from .events import ImprintEventChannel, Subscription
from .position import PositionSource, PushPositionSource
from .sessions import ProximitySession, SessionRegistry

__all__ = [
    "ImprintContext",
    "ImprintEngine",
    "ImprintEventChannel",
    "PositionSource",
    "ProximitySession",
    "PushPositionSource",
    "SessionRegistry",
    "Subscription",
    "WatchState",
]
