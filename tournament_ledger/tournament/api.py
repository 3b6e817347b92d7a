"""
Tournament API Router.

HTTP surface of the ledger. The caller identity always comes from the
bearer token; request bodies carry only operation arguments. Reads pull
the shared registry first when several workers serve one ledger.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from ..api.deps import CurrentCaller, Engine


# =============================================================================
# Request/Response Models
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AddTournamentRequest(_CamelModel):
    """Create request."""

    min_users: int = Field(..., alias="minUser")


class TournamentIdRequest(_CamelModel):
    """Join / start request."""

    tournament_id: int = Field(..., alias="id")


class EndTournamentRequest(_CamelModel):
    """Settlement request; users[i] scored scores[i]."""

    users: List[str]
    scores: List[int]
    tournament_id: int = Field(..., alias="id")


class TournamentResponse(BaseModel):
    """Tournament summary."""

    id: int
    min_users: int
    participant_count: int
    started: bool
    finished: bool
    phase: str


class CreatedResponse(BaseModel):
    id: int
    counter: int


class JoinResponse(TournamentResponse):
    participants: List[str]


class SettlementEntryResponse(BaseModel):
    participant: str
    score: int


class SettlementResponse(BaseModel):
    """Settlement result."""

    id: int
    entries: List[SettlementEntryResponse]
    unscored: List[str]
    partial: bool
    settled_at: str


class ScoreCardResponse(BaseModel):
    id: int
    participant: str
    is_participant: bool
    settled: bool
    score: Optional[int] = None


class OwnerResponse(BaseModel):
    owner: str
    counter: int


# =============================================================================
# API Router
# =============================================================================

router = APIRouter(prefix="/tournament", tags=["Tournament"])


def _summary_dict(record) -> Dict[str, Any]:
    return record.to_summary().to_dict()


# =============================================================================
# Queries
# =============================================================================


@router.get("/getActiveTournaments", response_model=List[TournamentResponse])
async def get_active_tournaments(engine: Engine):
    """Tournaments that have not ended, ascending by id."""
    await engine.refresh()
    return [summary.to_dict() for summary in engine.get_active_tournaments()]


@router.get("/getScoreCard", response_model=ScoreCardResponse)
async def get_score_card(
    engine: Engine,
    user_address: str = Query(..., alias="userAddress", min_length=1),
    tournament_id: int = Query(..., alias="id"),
):
    """A participant's recorded score; `settled` is false until one exists."""
    await engine.refresh()
    return engine.get_player_score(user_address, tournament_id).to_dict()


@router.get("/owner", response_model=OwnerResponse)
async def get_owner(engine: Engine):
    await engine.refresh()
    return OwnerResponse(owner=engine.owner, counter=engine.counter)


@router.get("/{tournament_id}", response_model=TournamentResponse)
async def get_tournament(tournament_id: int, engine: Engine):
    """Tournament details."""
    await engine.refresh()
    return engine.get_tournament_details(tournament_id).to_dict()


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("/addTournament", response_model=CreatedResponse)
async def add_tournament(request: AddTournamentRequest, caller: CurrentCaller, engine: Engine):
    """Create a tournament (owner only)."""
    tournament_id = await engine.create_tournament(caller, request.min_users)
    return CreatedResponse(id=tournament_id, counter=engine.counter)


@router.post("/joinTournament", response_model=JoinResponse)
async def join_tournament(request: TournamentIdRequest, caller: CurrentCaller, engine: Engine):
    """Enroll the caller in an open tournament."""
    record = await engine.join_tournament(caller, request.tournament_id)
    return JoinResponse(participants=list(record.participants), **_summary_dict(record))


@router.post("/startTournament", response_model=TournamentResponse)
async def start_tournament(request: TournamentIdRequest, caller: CurrentCaller, engine: Engine):
    """Start a tournament that reached its participant threshold (owner only)."""
    record = await engine.start_tournament(caller, request.tournament_id)
    return _summary_dict(record)


@router.post("/endTournament", response_model=SettlementResponse)
async def end_tournament(request: EndTournamentRequest, caller: CurrentCaller, engine: Engine):
    """
    Record final scores and end the tournament (owner only).

    Participants left out of ``users`` stay unscored.
    """
    summary = await engine.end_tournament(
        caller, request.users, request.scores, request.tournament_id
    )
    return summary.to_dict()
