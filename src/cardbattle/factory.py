"""Service Factory for the card battle ledger.

This module provides factory functions for creating service instances with
proper dependency wiring. Use these functions in production code to ensure
all service dependencies are correctly initialized.

For testing, inject protocol-based fakes instead of using these factories.

Example:
    # Production usage
    from cardbattle.factory import create_ledger_service
    ledger = create_ledger_service(session)

    # Testing usage
    from cardbattle.services.ledger_service import LedgerService
    from cardbattle.services.ownership_service import InMemoryOwnershipOracle

    class FakeVerifier:
        def recover(self, outcome, signature):
            return OWNER

    ledger = LedgerService(session, InMemoryOwnershipOracle({5: ALICE}), FakeVerifier())
"""

from sqlalchemy.orm import Session

from cardbattle.authorization import EthAuthorityVerifier, SigningDomain
from cardbattle.config import Settings, get_settings
from cardbattle.services.ledger_service import LedgerService
from cardbattle.services.ownership_service import SqlOwnershipOracle


def create_ownership_oracle(session: Session) -> SqlOwnershipOracle:
    """Create the ownership oracle backed by the token mirror table.

    Args:
        session: Database session

    Returns:
        SqlOwnershipOracle reading ``token_owners``
    """
    return SqlOwnershipOracle(session)


def create_authority_verifier(settings: Settings | None = None) -> EthAuthorityVerifier:
    """Create an EIP-712 verifier for the configured signing domain.

    Args:
        settings: Settings providing the domain; defaults to cached settings

    Returns:
        EthAuthorityVerifier bound to the ledger's domain
    """
    settings = settings or get_settings()
    return EthAuthorityVerifier(SigningDomain.from_settings(settings))


def create_ledger_service(session: Session, settings: Settings | None = None) -> LedgerService:
    """Create a LedgerService with all dependencies.

    Args:
        session: Database session
        settings: Settings to configure the service; defaults to cached settings

    Returns:
        Fully initialized LedgerService
    """
    settings = settings or get_settings()
    return LedgerService(
        session,
        create_ownership_oracle(session),
        create_authority_verifier(settings),
        require_registered_creator=settings.require_registered_creator,
    )
