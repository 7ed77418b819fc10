"""SQLAlchemy models for the card battle ledger.

This module exports all database models and the declarative base.
"""

from .base import Base, TimestampCreatedMixin, utc_now
from .battle import Battle
from .ledger import LedgerEvent, LedgerMeta
from .player import CharacterStats, Player
from .token import TokenOwner

__all__ = [
    "Base",
    "Battle",
    "CharacterStats",
    "LedgerEvent",
    "LedgerMeta",
    "Player",
    "TimestampCreatedMixin",
    "TokenOwner",
    "utc_now",
]
