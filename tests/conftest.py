"""Pytest configuration and shared ledger fixtures.

Adds the `src/` directory to `sys.path` so tests can import the
`cardbattle` package without requiring an editable install in CI, and
provides accounts, an in-memory store and a ledger wired with fakes.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from eth_account import Account  # noqa: E402

from cardbattle.authorization import SigningDomain  # noqa: E402
from cardbattle.config import Settings  # noqa: E402
from cardbattle.database import create_db_engine, create_session_factory, init_db  # noqa: E402
from cardbattle.services.ledger_service import LedgerService  # noqa: E402
from cardbattle.services.ownership_service import InMemoryOwnershipOracle  # noqa: E402

AUTHORITY = Account.from_key("0x" + "a1" * 32)
ALICE = Account.from_key("0x" + "b2" * 32)
BOB = Account.from_key("0x" + "c3" * 32)
MALLORY = Account.from_key("0x" + "d4" * 32)
COMPUTER = "0x000000000000000000000000000000000000c0de"
NFT_CONTRACT = "0xd652eb6b97b268489c5c4a95606e31ecade677f6"
VERIFYING_CONTRACT = "0x5fbdb2315678afecb367f032d93f642f64180aa3"

DOMAIN = SigningDomain(
    name="CardBattleGame",
    version="1",
    chain_id=31337,
    verifying_contract=VERIFYING_CONTRACT,
)

FIXED_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


class StubVerifier:
    """Authority verifier that reports a fixed signer and records its calls."""

    def __init__(self, signer: str) -> None:
        self.signer = signer
        self.calls: list[tuple[object, bytes]] = []

    def recover(self, outcome, signature):
        self.calls.append((outcome, signature))
        return self.signer


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine with the ledger schema."""
    engine = create_db_engine(Settings(database_url="sqlite:///:memory:"))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a new database session for testing."""
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def oracle():
    """Alice holds token 5, Bob holds token 9, Mallory holds token 13."""
    return InMemoryOwnershipOracle({5: ALICE.address, 9: BOB.address, 13: MALLORY.address})


@pytest.fixture
def verifier():
    return StubVerifier(AUTHORITY.address)


@pytest.fixture
def ledger(session, oracle, verifier):
    """A deployed ledger owned by AUTHORITY, using fakes for its collaborators."""
    service = LedgerService(session, oracle, verifier, clock=lambda: FIXED_NOW)
    service.deploy(AUTHORITY.address, NFT_CONTRACT)
    return service
