"""Dataclasses describing ledger entities outside the persistence layer.

The ORM models in :mod:`cardbattle.models` own the stored state.  The types
below are what services hand back to callers and what the authority signs,
so the rules and the API never hold on to live database rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .enums import BattleStatus, CharacterClass, EventType

# Largest id or counter the store holds (signed 64-bit columns).
MAX_STORED_INT = 2**63 - 1


@dataclass(frozen=True, slots=True)
class BattleOutcome:
    """An externally computed battle result awaiting authorization.

    Field order matches the signed ``BattleResult`` struct and must not
    change; see :mod:`cardbattle.authorization`.
    """

    battle_id: int
    player2: str
    is_computer: bool
    p1_token_id: int
    p2_token_id: int
    winner: str
    winner_exp: int
    loser_exp: int

    def as_message(self) -> dict[str, Any]:
        """Return the typed-data message body for this outcome."""

        return {
            "battleId": self.battle_id,
            "player2": self.player2,
            "isComputer": self.is_computer,
            "p1TokenId": self.p1_token_id,
            "p2TokenId": self.p2_token_id,
            "winner": self.winner,
            "winnerExp": self.winner_exp,
            "loserExp": self.loser_exp,
        }


@dataclass(frozen=True, slots=True)
class CharacterStats:
    """Progression record of one character plus its class-derived stats."""

    player: str
    token_id: int
    character_class: CharacterClass
    level: int
    exp: int
    wins: int
    losses: int
    health: int
    mana: int
    attack: int
    defense: int


@dataclass(frozen=True, slots=True)
class PlayerRecord:
    """Player counters; unknown addresses read as zero-valued records."""

    address: str
    name: str
    total_wins: int
    total_losses: int
    experience: int

    @property
    def is_player(self) -> bool:
        return bool(self.name)


@dataclass(frozen=True, slots=True)
class BattleRecord:
    """Snapshot of a battle."""

    id: int
    name: str
    player1: str
    player2: str | None
    player1_token_id: int | None
    player2_token_id: int | None
    start_time: datetime
    resolved: bool

    @property
    def status(self) -> BattleStatus:
        return BattleStatus.RESOLVED if self.resolved else BattleStatus.CREATED


@dataclass(frozen=True, slots=True)
class LedgerInfo:
    """Deployment metadata and global counters."""

    owner: str
    nft_contract: str
    next_battle_id: int
    total_battles: int


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """One entry of the ordered event log."""

    sequence: int
    event_type: EventType
    payload: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Resolution:
    """What a successful ``resolve_battle`` call changed."""

    battle: BattleRecord
    winner: str
    loser: str
    winner_stats: CharacterStats
    loser_stats: CharacterStats
