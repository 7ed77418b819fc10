"""Enumerations used by the card battle ledger."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class CharacterClass(IntEnum):
    """The six character classes an NFT card can belong to.

    Values mirror the on-chain enum ordinals, so ``0`` (``WARRIOR``) is the
    class every character record starts with.
    """

    WARRIOR = 0
    MAGE = 1
    ARCHER = 2
    ROGUE = 3
    PALADIN = 4
    NECROMANCER = 5


class BattleStatus(StrEnum):
    """Lifecycle of a battle record."""

    CREATED = "created"
    RESOLVED = "resolved"


class EventType(StrEnum):
    """Entries that may appear in the ledger event log."""

    PLAYER_REGISTERED = "PlayerRegistered"
    BATTLE_REGISTERED = "BattleRegistered"
    BATTLE_RESOLVED = "BattleResolved"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
