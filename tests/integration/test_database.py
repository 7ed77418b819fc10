"""Integration tests for database functionality.

Tests schema creation, health checks, and session management against a
file-backed SQLite store.
"""

import pytest
from conftest import ALICE, AUTHORITY, NFT_CONTRACT, StubVerifier
from sqlalchemy.exc import IntegrityError

from cardbattle.config import Settings
from cardbattle.database import (
    check_database_health,
    create_db_engine,
    create_session_factory,
    get_table_names,
    init_db,
)
from cardbattle.models import CharacterStats, LedgerMeta, Player
from cardbattle.models.base import utc_now
from cardbattle.services.ledger_service import LedgerService
from cardbattle.services.ownership_service import InMemoryOwnershipOracle


@pytest.fixture
def file_engine(tmp_path):
    """Create a file-backed SQLite engine with the ledger schema."""
    engine = create_db_engine(Settings(database_url=f"sqlite:///{tmp_path / 'ledger.db'}"))
    init_db(engine)
    yield engine
    engine.dispose()


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_all_tables_created(self, file_engine):
        assert set(get_table_names(file_engine)) == {
            "battles",
            "character_stats",
            "ledger_events",
            "ledger_meta",
            "players",
            "token_owners",
        }

    def test_init_is_idempotent(self, file_engine):
        init_db(file_engine)
        assert "players" in get_table_names(file_engine)

    def test_health_check(self, file_engine):
        assert check_database_health(file_engine)


class TestPersistence:
    """Ledger state survives across sessions."""

    def test_state_visible_from_new_session(self, file_engine):
        sessions = create_session_factory(file_engine)
        oracle = InMemoryOwnershipOracle({5: ALICE.address})
        verifier = StubVerifier(AUTHORITY.address)

        with sessions() as session:
            ledger = LedgerService(session, oracle, verifier)
            ledger.deploy(AUTHORITY.address, NFT_CONTRACT)
            ledger.register_player(ALICE.address, "Alice")
            ledger.register_battle(ALICE.address, "Duel")

        with sessions() as session:
            ledger = LedgerService(session, oracle, verifier)
            assert ledger.is_player(ALICE.address)
            assert ledger.get_battle(1).name == "Duel"
            assert ledger.next_battle_id() == 2

    def test_single_metadata_row(self, file_engine):
        sessions = create_session_factory(file_engine)
        with sessions() as session:
            session.add(
                LedgerMeta(
                    id=2,
                    owner=AUTHORITY.address,
                    nft_contract=NFT_CONTRACT,
                    next_battle_id=1,
                    total_battles=0,
                    deployed_at=utc_now(),
                )
            )
            with pytest.raises(IntegrityError):
                session.commit()

    def test_character_rows_are_unique_per_token(self, file_engine):
        sessions = create_session_factory(file_engine)
        with sessions() as session:
            session.add(Player(address=ALICE.address, name="Alice"))
            session.add(CharacterStats(player_address=ALICE.address, token_id=5))
            session.commit()
            session.add(CharacterStats(player_address=ALICE.address, token_id=5))
            with pytest.raises(IntegrityError):
                session.commit()

    def test_character_requires_player(self, file_engine):
        sessions = create_session_factory(file_engine)
        with sessions() as session:
            session.add(CharacterStats(player_address=ALICE.address, token_id=5))
            with pytest.raises(IntegrityError):
                session.commit()
