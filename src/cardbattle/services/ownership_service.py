"""NFT ownership oracles.

The ledger only ever asks "who owns token T".  Two answers are provided:

* :class:`InMemoryOwnershipOracle` keeps holders in a dict and is what tests
  and scripted scenarios use.
* :class:`SqlOwnershipOracle` reads the ``token_owners`` mirror table, which
  the authority keeps in sync with the NFT contract through the API.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from cardbattle.domain.errors import InvalidAddress, InvalidTokenId, TokenNotFound
from cardbattle.domain.models import MAX_STORED_INT
from cardbattle.models import TokenOwner
from cardbattle.utils.addresses import is_zero_address, normalize_address

logger = logging.getLogger(__name__)


class InMemoryOwnershipOracle:
    """Dict-backed token registry."""

    def __init__(self, holders: dict[int, str] | None = None) -> None:
        self._holders: dict[int, str] = {}
        for token_id, owner in (holders or {}).items():
            self.mint(token_id, owner)

    def owner_of(self, token_id: int) -> str:
        try:
            return self._holders[token_id]
        except KeyError as exc:
            raise TokenNotFound(f"Token {token_id} does not exist") from exc

    def mint(self, token_id: int, owner: str) -> None:
        if token_id in self._holders:
            raise ValueError(f"Token {token_id} already minted")
        self._holders[token_id] = normalize_address(owner, field="owner")

    def transfer(self, token_id: int, new_owner: str) -> None:
        self.owner_of(token_id)
        self._holders[token_id] = normalize_address(new_owner, field="new_owner")


class SqlOwnershipOracle:
    """Token registry backed by the ``token_owners`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def owner_of(self, token_id: int) -> str:
        record = None
        if 0 <= token_id <= MAX_STORED_INT:
            record = self.session.get(TokenOwner, token_id)
        if record is None:
            raise TokenNotFound(f"Token {token_id} does not exist")
        return record.owner

    def record_owner(self, token_id: int, owner: str) -> str:
        """Insert or update the holder of ``token_id`` and commit.

        Returns:
            The checksummed holder address

        Raises:
            InvalidTokenId: If ``token_id`` is negative or too large to store
            InvalidAddress: If ``owner`` is malformed or the zero address
        """
        if not 0 <= token_id <= MAX_STORED_INT:
            raise InvalidTokenId(f"Token id {token_id} is out of range")

        try:
            holder = normalize_address(owner, field="owner")
            if is_zero_address(holder):
                raise InvalidAddress("owner must not be the zero address")

            record = self.session.get(TokenOwner, token_id)
            if record is None:
                self.session.add(TokenOwner(token_id=token_id, owner=holder))
            else:
                record.owner = holder
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info("token %s now held by %s", token_id, holder)
        return holder
