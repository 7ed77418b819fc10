"""FastAPI application wiring for the card battle ledger."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cardbattle.api import routes
from cardbattle.api.runtime import ApiState, build_state
from cardbattle.config import get_settings
from cardbattle.domain.errors import LedgerError

logger = logging.getLogger(__name__)


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Report ledger errors a route did not translate itself."""

    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=routes.status_for_error(exc),
        content={"detail": routes.error_detail(exc)},
    )


def create_app(*, state_factory: Callable[[], ApiState] = build_state) -> FastAPI:
    """Build the ledger API; ``state_factory`` supplies the store and verifier."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = state_factory()
        app.state.api_state = state
        logger.info(
            "serving ledger for %s on chain %s", state.domain.name, state.domain.chain_id
        )
        try:
            yield
        finally:
            await state.shutdown()
            logger.info("ledger API stopped")

    settings = get_settings()
    app = FastAPI(title="Card Battle Ledger API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["Content-Type", "X-Caller-Address"],
    )
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.include_router(routes.router)
    return app


app = create_app()
