"""Protocol interfaces for ledger collaborators.

The ledger service depends on these protocols rather than on concrete
implementations, so tests can inject simple fakes and production wiring
lives in :mod:`cardbattle.factory`.
"""

from cardbattle.interfaces.authority import IAuthorityVerifier
from cardbattle.interfaces.ownership import IOwnershipOracle

__all__ = ["IAuthorityVerifier", "IOwnershipOracle"]
