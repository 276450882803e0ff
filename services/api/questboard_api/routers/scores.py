from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, field_validator

from questboard_api.core.config import Settings
from questboard_api.deps import AppSettings, Store
from questboard_api.profile_store import ProfileStore
from questboard_api.submissions import StoreWriteError, submit_score
from questboard_engine.models import LeaderboardEntry, RewardBundle
from questboard_engine.ranking import round_half_up

router = APIRouter(prefix="/api", tags=["scores"])

# Largest magnitude accepted for score, time and reward values.
MAX_SUBMITTED_VALUE = 10**9


class SubmitScoreIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    username: str
    score: StrictInt | StrictFloat
    time: StrictInt | StrictFloat | None = None
    course_name: str | None = Field(default=None, alias="courseName")
    rewards: RewardBundle | None = None

    @field_validator("username")
    @classmethod
    def _strip_username(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("username is required")
        return name

    @field_validator("score", "time")
    @classmethod
    def _finite(cls, v: int | float | None) -> int | float | None:
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("must be a finite number")
        if v is not None and abs(v) > MAX_SUBMITTED_VALUE:
            raise ValueError(f"must be between -{MAX_SUBMITTED_VALUE} and {MAX_SUBMITTED_VALUE}")
        return v

    @field_validator("rewards")
    @classmethod
    def _bounded_rewards(cls, v: RewardBundle | None) -> RewardBundle | None:
        if v is not None and max(v.model_dump().values()) > MAX_SUBMITTED_VALUE:
            raise ValueError(f"reward values must be at most {MAX_SUBMITTED_VALUE}")
        return v

    @field_validator("course_name")
    @classmethod
    def _blank_course_as_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class SubmitScoreOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    rank: int | None
    profile: dict[str, Any]
    leaderboard: list[LeaderboardEntry]
    message: str
    rewards: RewardBundle
    level_up: dict[str, object] = Field(alias="levelUp")


@router.post("/submit-score", response_model=SubmitScoreOut)
def submit(
    req: SubmitScoreIn,
    store: ProfileStore = Store,
    settings: Settings = AppSettings,
) -> SubmitScoreOut:
    if len(req.username) > settings.username_max_length:
        raise HTTPException(status_code=400, detail="username too long")

    score = round_half_up(req.score)
    time = None if req.time is None else max(0, round_half_up(req.time))
    try:
        result = submit_score(
            store,
            username=req.username,
            score=score,
            time=time,
            course_name=req.course_name,
            rewards=req.rewards,
            now=datetime.now(UTC),
            settings=settings,
        )
    except StoreWriteError as exc:
        raise HTTPException(status_code=500, detail="could not save progress") from exc

    return SubmitScoreOut(
        rank=result.rank.rank,
        profile=result.profile.summary(),
        leaderboard=result.leaderboard,
        message="Score saved",
        rewards=result.rewards,
        level_up=result.level_up.to_wire(),
    )
