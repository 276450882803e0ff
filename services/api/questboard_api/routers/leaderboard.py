from __future__ import annotations

from fastapi import APIRouter, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from questboard_api.core.config import Settings
from questboard_api.deps import AppSettings, Store
from questboard_api.profile_store import ProfileStore
from questboard_api.submissions import standings
from questboard_engine.models import AttemptRecord, LeaderboardEntry, RankStrategy
from questboard_engine.ranking import normalize_strategy, top_entries

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])

CACHE_CONTROL = "public, max-age=60"


class LeaderboardOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    leaderboard: list[LeaderboardEntry]
    total: int
    sort_by: RankStrategy = Field(alias="sortBy")


class AttemptBoardOut(BaseModel):
    success: bool = True
    leaderboard: list[AttemptRecord]
    total: int


def parse_limit(raw: str | None, *, settings: Settings) -> int:
    """Lenient `limit` parsing: junk or non-positive values use the default."""
    try:
        limit = int(str(raw).strip())
    except (TypeError, ValueError):
        limit = settings.leaderboard_default_limit
    if limit <= 0:
        limit = settings.leaderboard_default_limit
    return min(limit, settings.leaderboard_max_limit)


@router.get("", response_model=LeaderboardOut)
def leaderboard(
    response: Response,
    limit: str | None = Query(default=None),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    store: ProfileStore = Store,
    settings: Settings = AppSettings,
) -> LeaderboardOut:
    strategy = normalize_strategy(sort_by)
    entries = standings(store, strategy)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return LeaderboardOut(
        leaderboard=top_entries(entries, parse_limit(limit, settings=settings)),
        total=len(entries),
        sort_by=strategy,
    )


@router.get("/attempts", response_model=AttemptBoardOut)
def attempt_board(
    response: Response,
    limit: str | None = Query(default=None),
    store: ProfileStore = Store,
    settings: Settings = AppSettings,
) -> AttemptBoardOut:
    board = store.load_attempt_board()
    response.headers["Cache-Control"] = CACHE_CONTROL
    return AttemptBoardOut(
        leaderboard=board[: parse_limit(limit, settings=settings)],
        total=len(board),
    )
