"""Runtime primitives backing the card battle HTTP API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cardbattle.authorization import EthAuthorityVerifier, SigningDomain
from cardbattle.config import Settings, get_settings
from cardbattle.database import (
    check_database_health,
    create_db_engine,
    create_session_factory,
    init_db,
)
from cardbattle.domain.errors import NotOwner
from cardbattle.factory import create_ownership_oracle
from cardbattle.interfaces import IAuthorityVerifier
from cardbattle.services.ledger_service import LedgerService
from cardbattle.utils.addresses import normalize_address

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ApiState:
    """Services shared by the FastAPI layer.

    Mutating calls are applied one at a time: they queue on a single lock and
    each runs in its own session and transaction on a worker thread.  Reads
    skip the lock unless every session shares one connection (in-memory
    SQLite), where a concurrent read would see uncommitted writes.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        engine: Engine | None = None,
        verifier: IAuthorityVerifier | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine or create_db_engine(self.settings)
        init_db(self.engine)
        self.sessions: sessionmaker[Session] = create_session_factory(self.engine)
        self.domain = SigningDomain.from_settings(self.settings)
        self.verifier = verifier or EthAuthorityVerifier(self.domain)
        self._write_lock = asyncio.Lock()
        self.serialize_reads = isinstance(self.engine.pool, StaticPool)

        info = self._run(
            lambda ledger: ledger.deploy(
                self.settings.authority_address, self.settings.nft_contract_address
            )
        )
        logger.info("ledger ready: owner=%s next_battle_id=%s", info.owner, info.next_battle_id)

    def ledger(self, session: Session) -> LedgerService:
        return LedgerService(
            session,
            create_ownership_oracle(session),
            self.verifier,
            require_registered_creator=self.settings.require_registered_creator,
        )

    def _run(self, operation: Callable[[LedgerService], T]) -> T:
        with self.sessions() as session:
            return operation(self.ledger(session))

    async def read(self, operation: Callable[[LedgerService], T]) -> T:
        if self.serialize_reads:
            return await self.write(operation)
        return await asyncio.to_thread(self._run, operation)

    async def write(self, operation: Callable[[LedgerService], T]) -> T:
        async with self._write_lock:
            return await asyncio.to_thread(self._run, operation)

    async def record_token_owner(self, caller: str, token_id: int, owner: str) -> str:
        """Mirror an NFT holder into the ownership table; owner only."""

        def _record(ledger: LedgerService) -> str:
            if normalize_address(caller, field="caller") != ledger.owner():
                raise NotOwner("only the ledger owner may record token ownership")
            return create_ownership_oracle(ledger.session).record_owner(token_id, owner)

        return await self.write(_record)

    def database_healthy(self) -> bool:
        return check_database_health(self.engine)

    async def shutdown(self) -> None:
        self.engine.dispose()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
