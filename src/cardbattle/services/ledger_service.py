"""Battle ledger service.

This module owns every state transition of the ledger: player registration,
battle registration, signature-gated battle resolution with stats
progression, and ownership transfer of the signing authority.

Each mutating call runs inside one session transaction.  All preconditions
are checked before the first write, and any exception rolls the session
back, so a rejected call leaves no trace in the store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from cardbattle.domain import progression
from cardbattle.domain import models as dm
from cardbattle.domain.enums import CharacterClass, EventType
from cardbattle.domain.errors import (
    AlreadyRegistered,
    AlreadyResolved,
    BattleNotFound,
    InvalidAddress,
    InvalidAuthorization,
    InvalidName,
    InvalidOutcome,
    InvalidPlayer2,
    InvalidWinner,
    LedgerError,
    LedgerNotDeployed,
    NotOwner,
    NotRegistered,
    OwnershipMismatch,
    SecondPlayerAlreadySet,
)
from cardbattle.domain.rules_config import DEFAULT_RULES, RulesConfig
from cardbattle.interfaces import IAuthorityVerifier, IOwnershipOracle
from cardbattle.models import Battle, CharacterStats, LedgerEvent, LedgerMeta, Player, utc_now
from cardbattle.utils.addresses import is_zero_address, normalize_address

logger = logging.getLogger(__name__)

DEFAULT_EVENT_PAGE_SIZE = 100


class LedgerService:
    """Service for the battle ledger."""

    def __init__(
        self,
        session: Session,
        oracle: IOwnershipOracle,
        verifier: IAuthorityVerifier,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        require_registered_creator: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize LedgerService.

        Args:
            session: Database session holding the ledger store
            oracle: NFT ownership oracle
            verifier: Recovers the signer of battle outcomes
            rules: Progression and base-stat constants
            require_registered_creator: Reject battles from unregistered callers
            clock: Source of timestamps for battles and events
        """
        self.session = session
        self.oracle = oracle
        self.verifier = verifier
        self.rules = rules
        self.require_registered_creator = require_registered_creator
        self.clock = clock

    # --- Transactions -------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except LedgerError as exc:
            self.session.rollback()
            logger.warning("%s rejected: %s (%s)", operation, exc.code, exc.message)
            raise
        except Exception:
            self.session.rollback()
            raise

    def _emit(self, event_type: EventType, payload: dict[str, Any]) -> None:
        self.session.add(
            LedgerEvent(event_type=str(event_type), payload=payload, created_at=self.clock())
        )

    def _meta(self) -> LedgerMeta:
        meta = self.session.get(LedgerMeta, 1)
        if meta is None:
            raise LedgerNotDeployed("Ledger has not been deployed")
        return meta

    # --- Deployment and ownership -------------------------------------------------

    def deploy(self, owner: str, nft_contract: str) -> dm.LedgerInfo:
        """Initialize the store with its authority and NFT contract.

        Deploying onto a store that already has metadata changes nothing and
        returns the existing metadata.

        Raises:
            InvalidAddress: If either address is malformed or the owner is zero
        """
        existing = self.session.get(LedgerMeta, 1)
        if existing is not None:
            return self._to_info(existing)

        with self._transaction("deploy"):
            owner = normalize_address(owner, field="owner")
            if is_zero_address(owner):
                raise InvalidAddress("owner must not be the zero address")
            meta = LedgerMeta(
                id=1,
                owner=owner,
                nft_contract=normalize_address(nft_contract, field="nft_contract"),
                next_battle_id=1,
                total_battles=0,
                deployed_at=self.clock(),
            )
            self.session.add(meta)

        logger.info("ledger deployed with owner %s", meta.owner)
        return self._to_info(meta)

    def ledger_info(self) -> dm.LedgerInfo:
        return self._to_info(self._meta())

    def owner(self) -> str:
        return self._meta().owner

    def transfer_ownership(self, caller: str, new_owner: str) -> dm.LedgerInfo:
        """Hand the signing authority to ``new_owner``.

        Raises:
            NotOwner: If ``caller`` is not the current owner
            InvalidAddress: If ``new_owner`` is malformed or the zero address
        """
        with self._transaction("transfer_ownership"):
            meta = self._meta()
            caller = normalize_address(caller, field="caller")
            if caller != meta.owner:
                raise NotOwner(f"{caller} is not the ledger owner")
            new_owner = normalize_address(new_owner, field="new_owner")
            if is_zero_address(new_owner):
                raise InvalidAddress("new owner must not be the zero address")

            previous = meta.owner
            meta.owner = new_owner
            self._emit(
                EventType.OWNERSHIP_TRANSFERRED,
                {"previous_owner": previous, "new_owner": new_owner},
            )

        logger.info("ledger ownership transferred from %s to %s", previous, new_owner)
        return self._to_info(meta)

    # --- Registration -------------------------------------------------------------

    def register_player(self, caller: str, name: str) -> dm.PlayerRecord:
        """Register ``caller`` under ``name``.

        Raises:
            InvalidName: If ``name`` is empty
            AlreadyRegistered: If ``caller`` already has a name
        """
        with self._transaction("register_player"):
            self._meta()
            caller = normalize_address(caller, field="caller")
            if not name or not name.strip():
                raise InvalidName("name must not be empty")

            player = self.session.get(Player, caller)
            if player is not None and player.name:
                raise AlreadyRegistered(f"{caller} is already registered as {player.name!r}")
            if player is None:
                player = Player(
                    address=caller, name=name, total_wins=0, total_losses=0, experience=0
                )
                self.session.add(player)
            else:
                player.name = name

            self._emit(EventType.PLAYER_REGISTERED, {"name": name, "address": caller})

        logger.info("registered player %s as %r", caller, name)
        return self._to_player(player)

    def register_battle(self, caller: str, name: str) -> int:
        """Create a battle with ``caller`` as its first player.

        Returns:
            The new battle id

        Raises:
            NotRegistered: If registration is required and ``caller`` has none
        """
        with self._transaction("register_battle"):
            meta = self._meta()
            caller = normalize_address(caller, field="caller")
            if self.require_registered_creator and not self.is_player(caller):
                raise NotRegistered(f"{caller} must register before creating battles")

            battle_id = meta.next_battle_id
            meta.next_battle_id += 1
            meta.total_battles += 1
            self.session.add(
                Battle(
                    id=battle_id,
                    name=name,
                    player1=caller,
                    player2=None,
                    player1_token_id=None,
                    player2_token_id=None,
                    start_time=self.clock(),
                    resolved=False,
                )
            )
            self._emit(
                EventType.BATTLE_REGISTERED,
                {"battle_id": battle_id, "name": name, "player1": caller},
            )

        logger.info("registered battle %s (%r) for %s", battle_id, name, caller)
        return battle_id

    # --- Resolution ---------------------------------------------------------------

    def resolve_battle(self, outcome: dm.BattleOutcome, authorization: bytes) -> dm.Resolution:
        """Commit an authority-signed outcome for a battle.

        Args:
            outcome: Result computed off-chain
            authorization: Authority signature over ``outcome``

        Returns:
            Resolution describing the updated battle and both characters

        Raises:
            BattleNotFound: If the battle id is unknown
            AlreadyResolved: If the battle already has an outcome
            SecondPlayerAlreadySet: If the battle already has a second player
            InvalidPlayer2: If ``player2`` is the zero address
            OwnershipMismatch: If a participant does not hold the named token
            TokenNotFound: If a named token does not exist
            InvalidWinner: If ``winner`` is not one of the two participants
            InvalidAuthorization: If the signature is not the owner's
        """
        with self._transaction("resolve_battle"):
            meta = self._meta()
            outcome = self._normalize_outcome(outcome)

            battle = self._battle_row(outcome.battle_id)
            if battle is None:
                raise BattleNotFound(f"Battle {outcome.battle_id} does not exist")
            if battle.resolved:
                raise AlreadyResolved(f"Battle {battle.id} is already resolved")
            if battle.player2 is not None:
                raise SecondPlayerAlreadySet(f"Battle {battle.id} already has a second player")
            if is_zero_address(outcome.player2):
                raise InvalidPlayer2("player2 must not be the zero address")

            self._require_owner(battle.player1, outcome.p1_token_id)
            if not outcome.is_computer:
                self._require_owner(outcome.player2, outcome.p2_token_id)

            if outcome.winner not in (battle.player1, outcome.player2):
                raise InvalidWinner(f"{outcome.winner} did not take part in battle {battle.id}")

            signer = self.verifier.recover(outcome, authorization)
            if signer != meta.owner:
                raise InvalidAuthorization("outcome was not signed by the ledger owner")

            battle.player2 = outcome.player2
            battle.player1_token_id = outcome.p1_token_id
            battle.player2_token_id = outcome.p2_token_id
            battle.resolved = True

            if outcome.winner == battle.player1:
                loser = outcome.player2
                winner_token, loser_token = outcome.p1_token_id, outcome.p2_token_id
            else:
                loser = battle.player1
                winner_token, loser_token = outcome.p2_token_id, outcome.p1_token_id

            winner_stats = self._credit(outcome.winner, winner_token, outcome.winner_exp, won=True)
            loser_stats = self._credit(loser, loser_token, outcome.loser_exp, won=False)

            self._emit(
                EventType.BATTLE_RESOLVED,
                {
                    "battle_id": battle.id,
                    "winner": outcome.winner,
                    "loser": loser,
                    "winner_exp": outcome.winner_exp,
                    "loser_exp": outcome.loser_exp,
                },
            )

        logger.info(
            "resolved battle %s: %s beat %s (+%s/+%s exp)",
            battle.id,
            outcome.winner,
            loser,
            outcome.winner_exp,
            outcome.loser_exp,
        )
        return dm.Resolution(
            battle=self._to_battle(battle),
            winner=outcome.winner,
            loser=loser,
            winner_stats=self._to_stats(winner_stats),
            loser_stats=self._to_stats(loser_stats),
        )

    @staticmethod
    def _normalize_outcome(outcome: dm.BattleOutcome) -> dm.BattleOutcome:
        unsigned = {
            "battle_id": outcome.battle_id,
            "p1_token_id": outcome.p1_token_id,
            "p2_token_id": outcome.p2_token_id,
            "winner_exp": outcome.winner_exp,
            "loser_exp": outcome.loser_exp,
        }
        for field, value in unsigned.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidOutcome(f"{field} must be a non-negative integer")
            if value > dm.MAX_STORED_INT:
                raise InvalidOutcome(f"{field} must not exceed {dm.MAX_STORED_INT}")
        if not isinstance(outcome.is_computer, bool):
            raise InvalidOutcome("is_computer must be a boolean")

        return dm.BattleOutcome(
            battle_id=outcome.battle_id,
            player2=normalize_address(outcome.player2, field="player2"),
            is_computer=outcome.is_computer,
            p1_token_id=outcome.p1_token_id,
            p2_token_id=outcome.p2_token_id,
            winner=normalize_address(outcome.winner, field="winner"),
            winner_exp=outcome.winner_exp,
            loser_exp=outcome.loser_exp,
        )

    def _require_owner(self, player: str, token_id: int) -> None:
        holder = normalize_address(self.oracle.owner_of(token_id))
        if holder != player:
            raise OwnershipMismatch(f"{player} does not own token {token_id}")

    def _battle_row(self, battle_id: int) -> Battle | None:
        if not 0 <= battle_id <= dm.MAX_STORED_INT:
            return None
        return self.session.get(Battle, battle_id)

    def _player_row(self, address: str) -> Player:
        player = self.session.get(Player, address)
        if player is None:
            player = Player(address=address, name="", total_wins=0, total_losses=0, experience=0)
            self.session.add(player)
            self.session.flush()
        return player

    def _character_row(self, address: str, token_id: int) -> CharacterStats | None:
        return self.session.scalars(
            select(CharacterStats).where(
                CharacterStats.player_address == address,
                CharacterStats.token_id == token_id,
            )
        ).one_or_none()

    def _credit(self, address: str, token_id: int, exp: int, *, won: bool) -> CharacterStats:
        player = self._player_row(address)
        stats = self._character_row(address, token_id)
        if player.experience + exp > dm.MAX_STORED_INT:
            raise InvalidOutcome(f"experience of {address} would exceed {dm.MAX_STORED_INT}")
        if stats is None:
            stats = CharacterStats(
                player_address=address,
                token_id=token_id,
                character_class=int(CharacterClass.WARRIOR),
                level=0,
                exp=0,
                wins=0,
                losses=0,
            )
            self.session.add(stats)

        stats.exp += exp
        player.experience += exp
        if won:
            stats.wins += 1
            player.total_wins += 1
        else:
            stats.losses += 1
            player.total_losses += 1
        stats.level = progression.apply_leveling(stats.level, stats.exp, self.rules)
        self.session.flush()
        return stats

    # --- Read accessors -----------------------------------------------------------

    def is_player(self, address: str) -> bool:
        player = self.session.get(Player, normalize_address(address))
        return player is not None and bool(player.name)

    def get_player(self, address: str) -> dm.PlayerRecord:
        address = normalize_address(address)
        player = self.session.get(Player, address)
        if player is None:
            return dm.PlayerRecord(
                address=address, name="", total_wins=0, total_losses=0, experience=0
            )
        return self._to_player(player)

    def get_battle(self, battle_id: int) -> dm.BattleRecord:
        battle = self._battle_row(battle_id)
        if battle is None:
            raise BattleNotFound(f"Battle {battle_id} does not exist")
        return self._to_battle(battle)

    def total_battles(self) -> int:
        return self._meta().total_battles

    def next_battle_id(self) -> int:
        return self._meta().next_battle_id

    def get_character_stats(self, player: str, token_id: int) -> dm.CharacterStats:
        """Return the stats of ``player``'s character ``token_id``.

        Characters that never fought read as zero-valued ``WARRIOR`` records.

        Raises:
            OwnershipMismatch: If ``player`` does not currently hold the token
            TokenNotFound: If the token does not exist
        """
        player = normalize_address(player, field="player")
        self._require_owner(player, token_id)

        stats = self._character_row(player, token_id)
        if stats is None:
            return self._stats_view(player, token_id, int(CharacterClass.WARRIOR), 0, 0, 0, 0)
        return self._to_stats(stats)

    def get_required_exp(self, level: int) -> int:
        return progression.required_exp(level, self.rules)

    def get_base_health(self, character_class: int) -> int:
        return progression.base_health(character_class, self.rules)

    def get_base_mana(self, character_class: int) -> int:
        return progression.base_mana(character_class, self.rules)

    def get_base_attack(self, character_class: int) -> int:
        return progression.base_attack(character_class, self.rules)

    def get_base_defense(self, character_class: int) -> int:
        return progression.base_defense(character_class, self.rules)

    def list_events(
        self, *, after: int = 0, limit: int = DEFAULT_EVENT_PAGE_SIZE
    ) -> list[dm.LedgerEvent]:
        """Return up to ``limit`` events with a sequence number above ``after``."""

        if after >= dm.MAX_STORED_INT:
            return []
        rows = self.session.scalars(
            select(LedgerEvent).where(LedgerEvent.id > after).order_by(LedgerEvent.id).limit(limit)
        )
        return [
            dm.LedgerEvent(
                sequence=row.id,
                event_type=EventType(row.event_type),
                payload=dict(row.payload),
                created_at=row.created_at,
            )
            for row in rows
        ]

    # --- Conversions --------------------------------------------------------------

    @staticmethod
    def _to_info(meta: LedgerMeta) -> dm.LedgerInfo:
        return dm.LedgerInfo(
            owner=meta.owner,
            nft_contract=meta.nft_contract,
            next_battle_id=meta.next_battle_id,
            total_battles=meta.total_battles,
        )

    @staticmethod
    def _to_player(player: Player) -> dm.PlayerRecord:
        return dm.PlayerRecord(
            address=player.address,
            name=player.name,
            total_wins=player.total_wins,
            total_losses=player.total_losses,
            experience=player.experience,
        )

    @staticmethod
    def _to_battle(battle: Battle) -> dm.BattleRecord:
        return dm.BattleRecord(
            id=battle.id,
            name=battle.name,
            player1=battle.player1,
            player2=battle.player2,
            player1_token_id=battle.player1_token_id,
            player2_token_id=battle.player2_token_id,
            start_time=battle.start_time,
            resolved=battle.resolved,
        )

    def _to_stats(self, stats: CharacterStats) -> dm.CharacterStats:
        return self._stats_view(
            stats.player_address,
            stats.token_id,
            stats.character_class,
            stats.level,
            stats.exp,
            stats.wins,
            stats.losses,
        )

    def _stats_view(
        self,
        player: str,
        token_id: int,
        character_class: int,
        level: int,
        exp: int,
        wins: int,
        losses: int,
    ) -> dm.CharacterStats:
        return dm.CharacterStats(
            player=player,
            token_id=token_id,
            character_class=CharacterClass(character_class),
            level=level,
            exp=exp,
            wins=wins,
            losses=losses,
            health=progression.base_health(character_class, self.rules),
            mana=progression.base_mana(character_class, self.rules),
            attack=progression.base_attack(character_class, self.rules),
            defense=progression.base_defense(character_class, self.rules),
        )
