"""NFT Ownership Oracle Protocol Interface."""

from typing import Protocol


class IOwnershipOracle(Protocol):
    """Source of truth for who currently holds an NFT token."""

    def owner_of(self, token_id: int) -> str:
        """Return the checksummed address holding ``token_id``.

        Args:
            token_id: NFT token id

        Returns:
            Holder address

        Raises:
            TokenNotFound: If the token does not exist
        """
        ...
