"""Authority Verifier Protocol Interface."""

from typing import Protocol

from cardbattle.domain.models import BattleOutcome


class IAuthorityVerifier(Protocol):
    """Recovers who attested a battle outcome."""

    def recover(self, outcome: BattleOutcome, signature: bytes) -> str:
        """Recover the signer of ``signature`` over ``outcome``.

        The digest must be domain separated and cover every field of the
        outcome, so a signature never validates a different outcome.

        Args:
            outcome: The outcome that was supposedly signed
            signature: Raw signature bytes

        Returns:
            Checksummed signer address

        Raises:
            InvalidAuthorization: If the signature is malformed
        """
        ...
