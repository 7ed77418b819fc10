"""HTTP routes for the card battle ledger."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi import Path as PathParam
from pydantic import BaseModel, Field

from cardbattle.api.runtime import ApiState
from cardbattle.authorization import parse_signature
from cardbattle.domain import models as dm
from cardbattle.domain.models import MAX_STORED_INT
from cardbattle.domain.errors import (
    AlreadyRegistered,
    AlreadyResolved,
    AuthorizationError,
    BattleNotFound,
    LedgerError,
    SecondPlayerAlreadySet,
    TokenNotFound,
    UnknownCharacterClass,
)
from cardbattle.services.ledger_service import DEFAULT_EVENT_PAGE_SIZE, LedgerService

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


def get_caller(
    caller: Annotated[str | None, Header(alias="X-Caller-Address")] = None,
) -> str:
    if not caller:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="X-Caller-Address header required"
        )
    return caller


ApiStateDep = Annotated[ApiState, Depends(get_state)]
CallerDep = Annotated[str, Depends(get_caller)]
TokenIdPath = Annotated[int, PathParam(ge=0, le=MAX_STORED_INT)]
BattleIdPath = Annotated[int, PathParam(ge=0, le=MAX_STORED_INT)]


def status_for_error(exc: LedgerError) -> int:
    """HTTP status a rejected ledger call is reported with."""

    if isinstance(exc, BattleNotFound | TokenNotFound | UnknownCharacterClass):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, AuthorizationError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, AlreadyRegistered | AlreadyResolved | SecondPlayerAlreadySet):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return code


def error_detail(exc: LedgerError) -> dict[str, str]:
    return {"code": exc.code, "message": exc.message}


def _http_error(exc: LedgerError) -> HTTPException:
    return HTTPException(status_code=status_for_error(exc), detail=error_detail(exc))


class BaseStat(StrEnum):
    HEALTH = "health"
    MANA = "mana"
    ATTACK = "attack"
    DEFENSE = "defense"


class LedgerSummary(BaseModel):
    owner: str
    nft_contract: str
    next_battle_id: int
    total_battles: int
    chain_id: int
    verifying_contract: str


class PlayerSummary(BaseModel):
    address: str
    name: str
    total_wins: int
    total_losses: int
    experience: int
    is_player: bool


class CharacterSummary(BaseModel):
    player: str
    token_id: int
    character_class: int
    class_name: str
    level: int
    exp: int
    wins: int
    losses: int
    health: int
    mana: int
    attack: int
    defense: int


class BattleSummary(BaseModel):
    id: int
    name: str
    player1: str
    player2: str | None
    player1_token_id: int | None
    player2_token_id: int | None
    start_time: datetime
    resolved: bool
    status: str


class ResolutionSummary(BaseModel):
    battle: BattleSummary
    winner: str
    loser: str
    winner_stats: CharacterSummary
    loser_stats: CharacterSummary


class EventSummary(BaseModel):
    sequence: int
    event_type: str
    payload: dict[str, Any]
    created_at: datetime


class TokenSummary(BaseModel):
    token_id: int
    owner: str


class RegisterPlayerRequest(BaseModel):
    name: str = Field(min_length=1)


class RegisterBattleRequest(BaseModel):
    name: str = ""


class ResolveBattleRequest(BaseModel):
    player2: str
    is_computer: bool = False
    p1_token_id: int = Field(ge=0, le=MAX_STORED_INT)
    p2_token_id: int = Field(ge=0, le=MAX_STORED_INT)
    winner: str
    winner_exp: int = Field(ge=0, le=MAX_STORED_INT)
    loser_exp: int = Field(ge=0, le=MAX_STORED_INT)
    authorization: str = Field(min_length=1, description="0x-prefixed 65-byte signature")


class RecordTokenRequest(BaseModel):
    owner: str


class TransferOwnershipRequest(BaseModel):
    new_owner: str


def _player_summary(player: dm.PlayerRecord) -> PlayerSummary:
    return PlayerSummary(**asdict(player), is_player=player.is_player)


def _character_summary(stats: dm.CharacterStats) -> CharacterSummary:
    payload = asdict(stats)
    payload["character_class"] = int(stats.character_class)
    return CharacterSummary(**payload, class_name=stats.character_class.name.lower())


def _battle_summary(battle: dm.BattleRecord) -> BattleSummary:
    return BattleSummary(**asdict(battle), status=str(battle.status))


def _ledger_summary(state: ApiState, info: dm.LedgerInfo) -> LedgerSummary:
    return LedgerSummary(
        **asdict(info),
        chain_id=state.domain.chain_id,
        verifying_contract=state.domain.verifying_contract,
    )


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    healthy = state.database_healthy()
    return {
        "status": "ok" if healthy else "degraded",
        "database": "connected" if healthy else "unavailable",
        "contract": state.domain.name,
        "chain_id": state.domain.chain_id,
    }


@router.get("/ledger", response_model=LedgerSummary)
async def get_ledger(state: ApiStateDep) -> LedgerSummary:
    info = await state.read(LedgerService.ledger_info)
    return _ledger_summary(state, info)


@router.post("/ledger/owner", response_model=LedgerSummary)
async def transfer_ownership(
    request: TransferOwnershipRequest, caller: CallerDep, state: ApiStateDep
) -> LedgerSummary:
    try:
        info = await state.write(lambda ledger: ledger.transfer_ownership(caller, request.new_owner))
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return _ledger_summary(state, info)


@router.post("/players", response_model=PlayerSummary, status_code=status.HTTP_201_CREATED)
async def register_player(
    request: RegisterPlayerRequest, caller: CallerDep, state: ApiStateDep
) -> PlayerSummary:
    try:
        player = await state.write(lambda ledger: ledger.register_player(caller, request.name))
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return _player_summary(player)


@router.get("/players/{address}", response_model=PlayerSummary)
async def get_player(address: str, state: ApiStateDep) -> PlayerSummary:
    try:
        player = await state.read(lambda ledger: ledger.get_player(address))
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return _player_summary(player)


@router.get("/players/{address}/characters/{token_id}", response_model=CharacterSummary)
async def get_character_stats(
    address: str, token_id: TokenIdPath, state: ApiStateDep
) -> CharacterSummary:
    try:
        stats = await state.read(lambda ledger: ledger.get_character_stats(address, token_id))
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return _character_summary(stats)


@router.post("/battles", response_model=BattleSummary, status_code=status.HTTP_201_CREATED)
async def register_battle(
    request: RegisterBattleRequest, caller: CallerDep, state: ApiStateDep
) -> BattleSummary:
    def _register(ledger: LedgerService) -> dm.BattleRecord:
        battle_id = ledger.register_battle(caller, request.name)
        return ledger.get_battle(battle_id)

    try:
        battle = await state.write(_register)
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return _battle_summary(battle)


@router.get("/battles/{battle_id}", response_model=BattleSummary)
async def get_battle(battle_id: BattleIdPath, state: ApiStateDep) -> BattleSummary:
    try:
        battle = await state.read(lambda ledger: ledger.get_battle(battle_id))
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return _battle_summary(battle)


@router.post("/battles/{battle_id}/resolve", response_model=ResolutionSummary)
async def resolve_battle(
    battle_id: BattleIdPath,
    request: ResolveBattleRequest,
    state: ApiStateDep,
) -> ResolutionSummary:
    outcome = dm.BattleOutcome(
        battle_id=battle_id,
        player2=request.player2,
        is_computer=request.is_computer,
        p1_token_id=request.p1_token_id,
        p2_token_id=request.p2_token_id,
        winner=request.winner,
        winner_exp=request.winner_exp,
        loser_exp=request.loser_exp,
    )
    try:
        signature = parse_signature(request.authorization)
        resolution = await state.write(lambda ledger: ledger.resolve_battle(outcome, signature))
    except LedgerError as exc:
        raise _http_error(exc) from exc

    return ResolutionSummary(
        battle=_battle_summary(resolution.battle),
        winner=resolution.winner,
        loser=resolution.loser,
        winner_stats=_character_summary(resolution.winner_stats),
        loser_stats=_character_summary(resolution.loser_stats),
    )


@router.get("/progression/required-exp/{level}")
async def get_required_exp(
    level: Annotated[int, PathParam(ge=0, le=MAX_STORED_INT)], state: ApiStateDep
) -> dict[str, int]:
    required = await state.read(lambda ledger: ledger.get_required_exp(level))
    return {"level": level, "required_exp": required}


@router.get("/classes/{class_id}/{stat}")
async def get_base_stat(class_id: int, stat: BaseStat, state: ApiStateDep) -> dict[str, object]:
    lookups = {
        BaseStat.HEALTH: LedgerService.get_base_health,
        BaseStat.MANA: LedgerService.get_base_mana,
        BaseStat.ATTACK: LedgerService.get_base_attack,
        BaseStat.DEFENSE: LedgerService.get_base_defense,
    }
    try:
        value = await state.read(lambda ledger: lookups[stat](ledger, class_id))
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return {"class_id": class_id, "stat": str(stat), "value": value}


@router.get("/events", response_model=list[EventSummary])
async def list_events(
    state: ApiStateDep,
    after: Annotated[int, Query(ge=0, le=MAX_STORED_INT)] = 0,
    limit: Annotated[int, Query(ge=1, le=500)] = DEFAULT_EVENT_PAGE_SIZE,
) -> list[EventSummary]:
    events = await state.read(lambda ledger: ledger.list_events(after=after, limit=limit))
    return [
        EventSummary(
            sequence=event.sequence,
            event_type=str(event.event_type),
            payload=event.payload,
            created_at=event.created_at,
        )
        for event in events
    ]


@router.put("/tokens/{token_id}", response_model=TokenSummary)
async def record_token_owner(
    token_id: TokenIdPath,
    request: RecordTokenRequest,
    caller: CallerDep,
    state: ApiStateDep,
) -> TokenSummary:
    try:
        owner = await state.record_token_owner(caller, token_id, request.owner)
    except LedgerError as exc:
        raise _http_error(exc) from exc
    return TokenSummary(token_id=token_id, owner=owner)
