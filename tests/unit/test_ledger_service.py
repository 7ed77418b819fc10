"""Unit tests for LedgerService."""

import time
from dataclasses import replace

import pytest
from conftest import ALICE, AUTHORITY, BOB, COMPUTER, FIXED_NOW, MALLORY, NFT_CONTRACT

from cardbattle.domain.enums import BattleStatus, CharacterClass, EventType
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
    LedgerNotDeployed,
    NotOwner,
    NotRegistered,
    OwnershipMismatch,
    SecondPlayerAlreadySet,
    TokenNotFound,
    UnknownCharacterClass,
)
from cardbattle.domain.models import MAX_STORED_INT, BattleOutcome
from cardbattle.models import Battle, CharacterStats, LedgerEvent, Player
from cardbattle.services.ledger_service import LedgerService

ZERO = "0x0000000000000000000000000000000000000000"
SIGNATURE = b"\x01" * 65


def _outcome(**changes) -> BattleOutcome:
    outcome = BattleOutcome(
        battle_id=1,
        player2=BOB.address,
        is_computer=False,
        p1_token_id=5,
        p2_token_id=9,
        winner=ALICE.address,
        winner_exp=150,
        loser_exp=50,
    )
    return replace(outcome, **changes)


def _snapshot(session) -> dict[str, list]:
    session.expire_all()
    return {
        "players": sorted(
            (p.address, p.name, p.total_wins, p.total_losses, p.experience)
            for p in session.query(Player).all()
        ),
        "stats": sorted(
            (s.player_address, s.token_id, s.level, s.exp, s.wins, s.losses)
            for s in session.query(CharacterStats).all()
        ),
        "battles": sorted(
            (b.id, b.player2, b.player1_token_id, b.player2_token_id, b.resolved)
            for b in session.query(Battle).all()
        ),
        "events": [e.id for e in session.query(LedgerEvent).order_by(LedgerEvent.id)],
    }


@pytest.fixture
def duel(ledger):
    """Alice and Bob registered, Alice created battle 1."""
    ledger.register_player(ALICE.address, "Alice")
    ledger.register_player(BOB.address, "Bob")
    battle_id = ledger.register_battle(ALICE.address, "Duel1")
    assert battle_id == 1
    return ledger


class TestDeployment:
    def test_deploy_initializes_counters(self, ledger):
        info = ledger.ledger_info()
        assert info.owner == AUTHORITY.address
        assert info.next_battle_id == 1
        assert info.total_battles == 0
        assert info.nft_contract.lower() == NFT_CONTRACT

    def test_redeploy_is_a_noop(self, ledger):
        ledger.register_battle(ALICE.address, "first")
        info = ledger.deploy(MALLORY.address, NFT_CONTRACT)
        assert info.owner == AUTHORITY.address
        assert info.next_battle_id == 2

    def test_operations_require_deployment(self, session, oracle, verifier):
        service = LedgerService(session, oracle, verifier)
        with pytest.raises(LedgerNotDeployed):
            service.register_player(ALICE.address, "Alice")
        with pytest.raises(LedgerNotDeployed):
            service.register_battle(ALICE.address, "Duel")

    def test_deploy_rejects_zero_owner(self, session, oracle, verifier):
        service = LedgerService(session, oracle, verifier)
        with pytest.raises(InvalidAddress):
            service.deploy(ZERO, NFT_CONTRACT)


class TestRegisterPlayer:
    def test_register_marks_player(self, ledger):
        record = ledger.register_player(ALICE.address, "Alice")
        assert record.name == "Alice"
        assert record.is_player
        assert ledger.is_player(ALICE.address)
        assert not ledger.is_player(BOB.address)

    def test_second_registration_fails(self, ledger):
        ledger.register_player(ALICE.address, "x")
        with pytest.raises(AlreadyRegistered):
            ledger.register_player(ALICE.address, "y")
        assert ledger.get_player(ALICE.address).name == "x"

    def test_address_casing_identifies_same_player(self, ledger):
        ledger.register_player(ALICE.address.lower(), "Alice")
        with pytest.raises(AlreadyRegistered):
            ledger.register_player(ALICE.address, "Alice again")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, ledger, name):
        with pytest.raises(InvalidName):
            ledger.register_player(ALICE.address, name)
        assert not ledger.is_player(ALICE.address)

    def test_malformed_address_rejected(self, ledger):
        with pytest.raises(InvalidAddress):
            ledger.register_player("0x1234", "Alice")

    def test_same_name_for_different_players(self, ledger):
        ledger.register_player(ALICE.address, "Twin")
        ledger.register_player(BOB.address, "Twin")
        assert ledger.is_player(BOB.address)

    def test_emits_event(self, ledger):
        ledger.register_player(ALICE.address, "Alice")
        events = ledger.list_events()
        assert [e.event_type for e in events] == [EventType.PLAYER_REGISTERED]
        assert events[0].payload == {"name": "Alice", "address": ALICE.address}

    def test_unknown_player_reads_as_zero_record(self, ledger):
        record = ledger.get_player(BOB.address)
        assert record.name == ""
        assert (record.total_wins, record.total_losses, record.experience) == (0, 0, 0)
        assert not record.is_player


class TestRegisterBattle:
    def test_ids_are_monotonic(self, ledger):
        first = ledger.register_battle(ALICE.address, "a")
        second = ledger.register_battle(BOB.address, "a")
        assert (first, second) == (1, 2)
        assert ledger.total_battles() == 2
        assert ledger.next_battle_id() == 3

    def test_new_battle_is_unresolved(self, ledger):
        battle_id = ledger.register_battle(ALICE.address, "Duel")
        battle = ledger.get_battle(battle_id)
        assert battle.player1 == ALICE.address
        assert battle.player2 is None
        assert battle.player1_token_id is None
        assert battle.player2_token_id is None
        assert battle.start_time.replace(tzinfo=None) == FIXED_NOW.replace(tzinfo=None)
        assert not battle.resolved
        assert battle.status == BattleStatus.CREATED

    def test_unregistered_creator_allowed_by_default(self, ledger):
        ledger.register_battle(MALLORY.address, "drive-by")
        assert not ledger.is_player(MALLORY.address)

    def test_registration_can_be_required(self, session, oracle, verifier):
        service = LedgerService(session, oracle, verifier, require_registered_creator=True)
        service.deploy(AUTHORITY.address, NFT_CONTRACT)
        with pytest.raises(NotRegistered):
            service.register_battle(MALLORY.address, "drive-by")
        assert service.total_battles() == 0
        assert service.next_battle_id() == 1

        service.register_player(MALLORY.address, "Mallory")
        assert service.register_battle(MALLORY.address, "now allowed") == 1

    def test_emits_event(self, ledger):
        ledger.register_battle(ALICE.address, "Duel")
        event = ledger.list_events()[-1]
        assert event.event_type == EventType.BATTLE_REGISTERED
        assert event.payload == {"battle_id": 1, "name": "Duel", "player1": ALICE.address}

    def test_unknown_battle(self, ledger):
        with pytest.raises(BattleNotFound):
            ledger.get_battle(99)


class TestResolveBattle:
    def test_scenario_credits_both_players(self, duel):
        resolution = duel.resolve_battle(_outcome(), SIGNATURE)

        assert resolution.winner == ALICE.address
        assert resolution.loser == BOB.address
        assert resolution.battle.resolved
        assert resolution.battle.player2 == BOB.address
        assert resolution.battle.status == BattleStatus.RESOLVED

        alice = duel.get_player(ALICE.address)
        assert (alice.total_wins, alice.total_losses, alice.experience) == (1, 0, 150)
        bob = duel.get_player(BOB.address)
        assert (bob.total_wins, bob.total_losses, bob.experience) == (0, 1, 50)

        alice_card = duel.get_character_stats(ALICE.address, 5)
        assert (alice_card.exp, alice_card.wins, alice_card.losses, alice_card.level) == (
            150,
            1,
            0,
            1,
        )
        bob_card = duel.get_character_stats(BOB.address, 9)
        assert (bob_card.exp, bob_card.wins, bob_card.losses, bob_card.level) == (50, 0, 1, 0)

    def test_player2_can_win(self, duel):
        resolution = duel.resolve_battle(_outcome(winner=BOB.address), SIGNATURE)
        assert resolution.loser == ALICE.address
        assert resolution.winner_stats.token_id == 9
        assert resolution.loser_stats.token_id == 5
        assert duel.get_character_stats(BOB.address, 9).exp == 150
        assert duel.get_character_stats(ALICE.address, 5).exp == 50

    def test_battle_records_tokens(self, duel):
        duel.resolve_battle(_outcome(), SIGNATURE)
        battle = duel.get_battle(1)
        assert (battle.player1_token_id, battle.player2_token_id) == (5, 9)

    def test_verifier_sees_normalized_outcome(self, duel, verifier):
        duel.resolve_battle(
            _outcome(player2=BOB.address.lower(), winner=ALICE.address.lower()), SIGNATURE
        )
        outcome, signature = verifier.calls[0]
        assert outcome == _outcome()
        assert signature == SIGNATURE

    def test_second_resolution_fails(self, duel):
        duel.resolve_battle(_outcome(), SIGNATURE)
        with pytest.raises(AlreadyResolved):
            duel.resolve_battle(_outcome(), SIGNATURE)
        with pytest.raises(AlreadyResolved):
            duel.resolve_battle(_outcome(winner=BOB.address, winner_exp=999), SIGNATURE)
        assert duel.get_player(ALICE.address).total_wins == 1

    def test_player2_already_set(self, duel, session):
        session.get(Battle, 1).player2 = MALLORY.address
        session.commit()
        with pytest.raises(SecondPlayerAlreadySet):
            duel.resolve_battle(_outcome(), SIGNATURE)

    def test_unknown_battle(self, duel):
        with pytest.raises(BattleNotFound):
            duel.resolve_battle(_outcome(battle_id=42), SIGNATURE)

    def test_zero_player2(self, duel):
        with pytest.raises(InvalidPlayer2):
            duel.resolve_battle(_outcome(player2=ZERO, is_computer=True), SIGNATURE)

    def test_player1_must_own_token(self, duel):
        with pytest.raises(OwnershipMismatch):
            duel.resolve_battle(_outcome(p1_token_id=9), SIGNATURE)

    def test_player2_must_own_token(self, duel):
        with pytest.raises(OwnershipMismatch):
            duel.resolve_battle(_outcome(p2_token_id=13), SIGNATURE)

    def test_missing_token(self, duel):
        with pytest.raises(TokenNotFound):
            duel.resolve_battle(_outcome(p1_token_id=404), SIGNATURE)

    def test_ownership_checked_at_call_time(self, duel, oracle):
        oracle.transfer(5, MALLORY.address)
        with pytest.raises(OwnershipMismatch):
            duel.resolve_battle(_outcome(), SIGNATURE)

    def test_computer_opponent_skips_second_ownership_check(self, duel):
        resolution = duel.resolve_battle(
            _outcome(player2=COMPUTER, is_computer=True, p2_token_id=777), SIGNATURE
        )
        assert resolution.loser.lower() == COMPUTER
        computer = duel.get_player(COMPUTER)
        assert (computer.total_losses, computer.experience) == (1, 50)
        assert not computer.is_player

    def test_winner_must_be_a_participant(self, duel):
        with pytest.raises(InvalidWinner):
            duel.resolve_battle(_outcome(winner=MALLORY.address), SIGNATURE)

    def test_signature_from_someone_else(self, duel, verifier):
        verifier.signer = MALLORY.address
        with pytest.raises(InvalidAuthorization):
            duel.resolve_battle(_outcome(), SIGNATURE)

    @pytest.mark.parametrize(
        "changes",
        [{"winner_exp": -1}, {"loser_exp": -5}, {"p1_token_id": -1}, {"battle_id": True}],
    )
    def test_rejects_negative_or_non_integer_values(self, duel, changes):
        with pytest.raises(InvalidOutcome):
            duel.resolve_battle(_outcome(**changes), SIGNATURE)

    def test_rejected_call_changes_nothing(self, duel, session, verifier):
        before = _snapshot(session)
        verifier.signer = MALLORY.address
        with pytest.raises(InvalidAuthorization):
            duel.resolve_battle(_outcome(), SIGNATURE)
        assert _snapshot(session) == before
        assert not duel.get_battle(1).resolved

    def test_failed_resolution_can_be_retried(self, duel, verifier):
        verifier.signer = MALLORY.address
        with pytest.raises(InvalidAuthorization):
            duel.resolve_battle(_outcome(), SIGNATURE)
        verifier.signer = AUTHORITY.address
        duel.resolve_battle(_outcome(), SIGNATURE)
        assert duel.get_battle(1).resolved

    def test_checks_run_before_signature(self, duel, verifier):
        with pytest.raises(OwnershipMismatch):
            duel.resolve_battle(_outcome(p2_token_id=5), SIGNATURE)
        assert verifier.calls == []

    def test_emits_event(self, duel):
        duel.resolve_battle(_outcome(), SIGNATURE)
        event = duel.list_events()[-1]
        assert event.event_type == EventType.BATTLE_RESOLVED
        assert event.payload == {
            "battle_id": 1,
            "winner": ALICE.address,
            "loser": BOB.address,
            "winner_exp": 150,
            "loser_exp": 50,
        }

    def test_stats_accumulate_across_battles(self, duel):
        duel.resolve_battle(_outcome(), SIGNATURE)
        duel.register_battle(ALICE.address, "Rematch")
        duel.resolve_battle(_outcome(battle_id=2, winner_exp=100), SIGNATURE)

        card = duel.get_character_stats(ALICE.address, 5)
        assert (card.exp, card.wins, card.level) == (250, 2, 2)
        assert duel.get_player(ALICE.address).experience == 250
        assert duel.get_character_stats(BOB.address, 9).exp == 100

    def test_unregistered_participants_get_counters(self, ledger):
        ledger.register_battle(ALICE.address, "Open")
        ledger.resolve_battle(_outcome(), SIGNATURE)
        alice = ledger.get_player(ALICE.address)
        assert alice.total_wins == 1
        assert not alice.is_player

        # Counters from battles survive a later registration.
        ledger.register_player(ALICE.address, "Alice")
        assert ledger.get_player(ALICE.address).experience == 150


class TestCharacterStats:
    def test_defaults_for_fresh_character(self, ledger):
        stats = ledger.get_character_stats(ALICE.address, 5)
        assert stats.character_class == CharacterClass.WARRIOR
        assert (stats.level, stats.exp, stats.wins, stats.losses) == (0, 0, 0, 0)
        assert stats.health == ledger.get_base_health(CharacterClass.WARRIOR)
        assert stats.mana == ledger.get_base_mana(CharacterClass.WARRIOR)

    def test_requires_current_ownership(self, ledger, oracle):
        with pytest.raises(OwnershipMismatch):
            ledger.get_character_stats(BOB.address, 5)
        oracle.transfer(5, BOB.address)
        assert ledger.get_character_stats(BOB.address, 5).token_id == 5

    def test_stats_stay_with_the_player_who_earned_them(self, duel, oracle):
        duel.resolve_battle(_outcome(), SIGNATURE)
        oracle.transfer(5, BOB.address)
        assert duel.get_character_stats(BOB.address, 5).exp == 0
        with pytest.raises(OwnershipMismatch):
            duel.get_character_stats(ALICE.address, 5)


class TestAccessors:
    def test_required_exp(self, ledger):
        assert ledger.get_required_exp(3) == 300

    def test_base_stat_asymmetry(self, ledger):
        with pytest.raises(UnknownCharacterClass):
            ledger.get_base_health(9)
        assert ledger.get_base_mana(9) == 70
        assert ledger.get_base_attack(9) == 20
        assert ledger.get_base_defense(9) == 10

    def test_event_paging(self, duel):
        events = duel.list_events()
        assert [e.sequence for e in events] == sorted(e.sequence for e in events)
        assert len(events) == 3
        page = duel.list_events(after=events[0].sequence, limit=1)
        assert [e.sequence for e in page] == [events[1].sequence]


class TestTransferOwnership:
    def test_owner_can_transfer(self, ledger):
        info = ledger.transfer_ownership(AUTHORITY.address, MALLORY.address)
        assert info.owner == MALLORY.address
        assert ledger.owner() == MALLORY.address
        event = ledger.list_events()[-1]
        assert event.event_type == EventType.OWNERSHIP_TRANSFERRED
        assert event.payload == {
            "previous_owner": AUTHORITY.address,
            "new_owner": MALLORY.address,
        }

    def test_only_owner_may_transfer(self, ledger):
        with pytest.raises(NotOwner):
            ledger.transfer_ownership(ALICE.address, ALICE.address)
        assert ledger.owner() == AUTHORITY.address

    def test_zero_owner_rejected(self, ledger):
        with pytest.raises(InvalidAddress):
            ledger.transfer_ownership(AUTHORITY.address, ZERO)

    def test_old_authority_rejected_after_transfer(self, duel, verifier):
        duel.transfer_ownership(AUTHORITY.address, MALLORY.address)
        with pytest.raises(InvalidAuthorization):
            duel.resolve_battle(_outcome(), SIGNATURE)
        verifier.signer = MALLORY.address
        duel.resolve_battle(_outcome(), SIGNATURE)


class TestStorageLimits:
    def test_largest_exp_resolves_immediately(self, duel):
        started = time.perf_counter()
        resolution = duel.resolve_battle(_outcome(winner_exp=MAX_STORED_INT), SIGNATURE)
        assert time.perf_counter() - started < 1.0

        assert resolution.winner_stats.exp == MAX_STORED_INT
        assert resolution.winner_stats.level == MAX_STORED_INT // 100
        assert duel.get_player(ALICE.address).experience == MAX_STORED_INT

    @pytest.mark.parametrize(
        "changes",
        [
            {"winner_exp": 2**64},
            {"loser_exp": 2**256 - 1},
            {"battle_id": 2**64},
            {"p1_token_id": MAX_STORED_INT + 1},
            {"p2_token_id": 2**255},
        ],
    )
    def test_values_beyond_storage_rejected(self, duel, session, changes):
        before = _snapshot(session)
        with pytest.raises(InvalidOutcome):
            duel.resolve_battle(_outcome(**changes), SIGNATURE)
        assert _snapshot(session) == before

    def test_accumulated_exp_overflow_rolls_back(self, duel, session):
        duel.resolve_battle(_outcome(winner_exp=MAX_STORED_INT), SIGNATURE)
        duel.register_battle(ALICE.address, "Rematch")
        before = _snapshot(session)

        with pytest.raises(InvalidOutcome):
            duel.resolve_battle(_outcome(battle_id=2, winner_exp=1), SIGNATURE)

        assert _snapshot(session) == before
        assert not duel.get_battle(2).resolved

    @pytest.mark.parametrize("battle_id", [-1, MAX_STORED_INT + 1, 2**64])
    def test_out_of_range_battle_id_is_not_found(self, ledger, battle_id):
        with pytest.raises(BattleNotFound):
            ledger.get_battle(battle_id)

    def test_event_cursor_beyond_storage(self, duel):
        assert duel.list_events(after=2**64) == []
