"""Loot session tracking built on top of :mod:`gw2`."""

from .autostart import AutoStartMode, AutoStartTrigger
from .history import SessionHistory
from .resolver import ReferenceResolver
from .session import LootSession, SessionState
from .tracking_filter import TrackingFilter, TrackingMode, TrackingProfile

__all__ = [
    "AutoStartMode",
    "AutoStartTrigger",
    "LootSession",
    "ReferenceResolver",
    "SessionHistory",
    "SessionState",
    "TrackingFilter",
    "TrackingMode",
    "TrackingProfile",
]
