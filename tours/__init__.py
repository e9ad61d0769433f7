"""
Tour Verification and Check-in Rewards Engine

This module provides:
- Tour registration, owner updates and deactivation
- Community upvotes with a latched verification threshold
- Proof-of-presence check-ins against verified tours
- Per-participant reward point balances
- Administrative pause switch and vote threshold control
"""

from .models import (
    CheckIn,
    CheckInStatus,
    EventType,
    Tour,
    TourEvent,
)
from .notifications import InMemoryNotifier
from .policy import StaticAccessPolicy
from .service import InMemoryStorage, TourService

__all__ = [
    "CheckIn",
    "CheckInStatus",
    "EventType",
    "Tour",
    "TourEvent",
    "InMemoryNotifier",
    "StaticAccessPolicy",
    "InMemoryStorage",
    "TourService",
]
