from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from questboard_api.core.config import Settings
from questboard_api.profile_store import ProfileStore
from questboard_engine.leveling import LevelUpReport
from questboard_engine.models import (
    AttemptRecord,
    LeaderboardEntry,
    RankStrategy,
    RewardBundle,
    UserProgression,
)
from questboard_engine.progression import complete_course
from questboard_engine.ranking import (
    RankResult,
    build_leaderboard,
    rank_of,
    record_attempt,
    top_entries,
)
from questboard_engine.rng import session_rng


logger = logging.getLogger(__name__)


class StoreWriteError(RuntimeError):
    pass


@dataclass(frozen=True)
class SubmitResult:
    profile: UserProgression
    rewards: RewardBundle
    level_up: LevelUpReport
    rank: RankResult
    leaderboard: list[LeaderboardEntry]


def standings(
    store: ProfileStore, strategy: RankStrategy
) -> list[LeaderboardEntry]:
    return build_leaderboard(store.list_all(), strategy)


def submit_score(
    store: ProfileStore,
    *,
    username: str,
    score: int,
    time: int | None,
    course_name: str | None,
    rewards: RewardBundle | None,
    now: datetime,
    settings: Settings | None = None,
) -> SubmitResult:
    """
    Record one finished session for `username`.

    Read-modify-write without a lock: two concurrent submissions for the same
    user can lose one update.
    """
    settings = settings or Settings()
    profile = store.load(username, now=now)
    rng = session_rng(
        salt=settings.rng_salt,
        username=profile.username,
        session_index=int(profile.total_sessions),
    )
    outcome = complete_course(
        profile,
        course_name=course_name,
        score=score,
        time=time,
        rng=rng,
        now=now,
        rewards=rewards,
    )
    if not store.save(profile):
        raise StoreWriteError(f"could not persist profile for {profile.username}")

    board = record_attempt(
        store.load_attempt_board(),
        AttemptRecord(
            username=profile.username,
            score=int(score),
            time=int(time or 0),
            timestamp=int(now.timestamp() * 1000),
        ),
        size=settings.attempt_board_size,
    )
    if not store.save_attempt_board(board):
        logger.warning("attempt board not updated username=%s", profile.username)

    entries = standings(store, "total")
    rank = rank_of(entries, profile.username)
    logger.info(
        "score submitted username=%s course=%s score=%s rank=%s level=%s",
        profile.username,
        course_name,
        score,
        rank.rank,
        profile.level,
    )
    return SubmitResult(
        profile=profile,
        rewards=outcome.rewards,
        level_up=outcome.level_up,
        rank=rank,
        leaderboard=top_entries(entries, settings.leaderboard_default_limit),
    )
