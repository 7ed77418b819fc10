"""Service layer for the card battle ledger.

Services depend on Protocol interfaces (IOwnershipOracle, IAuthorityVerifier)
for their collaborators:

- Use factory.py for production dependency wiring
- Inject protocol-based fakes for testing (avoid complex mocking)

Architecture:
    - LedgerService: registration, battle resolution, progression, ownership
    - InMemoryOwnershipOracle / SqlOwnershipOracle: NFT ownership lookups

Production Usage:
    from cardbattle.factory import create_ledger_service
    ledger = create_ledger_service(session)
    battle_id = ledger.register_battle(caller, "Duel")
"""

from cardbattle.services.ledger_service import LedgerService
from cardbattle.services.ownership_service import InMemoryOwnershipOracle, SqlOwnershipOracle

__all__ = ["InMemoryOwnershipOracle", "LedgerService", "SqlOwnershipOracle"]
