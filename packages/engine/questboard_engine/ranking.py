from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from questboard_engine.models import (
    BASE_EXPERIENCE_TO_NEXT_LEVEL,
    RANK_STRATEGIES,
    AttemptRecord,
    LeaderboardEntry,
    RankStrategy,
    UserProgression,
)


# Must exceed any reachable experience value so that level always dominates.
LEVEL_SCORE_WEIGHT = 10**12
COURSE_SCORE_WEIGHT = 100
DEFAULT_ATTEMPT_BOARD_SIZE = 100


@dataclass(frozen=True)
class RankResult:
    rank: int | None
    total: int
    score: int | None = None


def normalize_strategy(value: str | None) -> RankStrategy:
    raw = str(value or "").strip().lower()
    for strategy in RANK_STRATEGIES:
        if raw == strategy:
            return strategy
    return "total"


def round_half_up(value: float) -> int:
    if isinstance(value, int):
        return value
    return int(math.floor(float(value) + 0.5))


def lifetime_experience(progression: UserProgression) -> int:
    total = int(progression.experience or 0)
    for k in range(int(progression.level) - 1):
        # floor(base * 1.5**k), kept in integers.
        total += (BASE_EXPERIENCE_TO_NEXT_LEVEL * 3**k) // 2**k
    return total


def _high_scores(progression: UserProgression) -> list[int]:
    return [int(c.high_score or 0) for c in progression.course_records.values()]


def compute_score(progression: UserProgression, strategy: RankStrategy) -> int:
    if strategy == "level":
        raw: float = int(progression.level) * LEVEL_SCORE_WEIGHT + int(progression.experience or 0)
    elif strategy == "courses":
        scored = [s for s in _high_scores(progression) if s > 0]
        avg = (sum(scored) / len(scored)) if scored else 0.0
        raw = progression.completed_courses * COURSE_SCORE_WEIGHT + avg
    elif strategy == "score":
        raw = sum(_high_scores(progression))
    else:
        raw = lifetime_experience(progression) + sum(_high_scores(progression))
    return round_half_up(raw)


def is_ranked(progression: UserProgression) -> bool:
    return int(progression.total_sessions or 0) > 0


def build_leaderboard(
    profiles: Iterable[UserProgression], strategy: RankStrategy
) -> list[LeaderboardEntry]:
    """
    Rank the whole population under `strategy`.

    Sorted by score descending; `sorted` is stable so ties keep input order.
    """
    scored = [(compute_score(p, strategy), p) for p in profiles if is_ranked(p)]
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    return [
        LeaderboardEntry(
            username=p.username,
            level=int(p.level),
            experience=int(p.experience or 0),
            currency=int(p.currency or 0),
            intelligence=int(p.intelligence or 0),
            strength=int(p.strength or 0),
            charm=int(p.charm or 0),
            completed_courses=p.completed_courses,
            total_sessions=int(p.total_sessions or 0),
            score=score,
            rank=idx + 1,
        )
        for idx, (score, p) in enumerate(scored)
    ]


def top_entries(entries: Sequence[LeaderboardEntry], limit: int) -> list[LeaderboardEntry]:
    return list(entries[: max(0, int(limit))])


def rank_of(entries: Sequence[LeaderboardEntry], username: str) -> RankResult:
    for entry in entries:
        if entry.username == username:
            return RankResult(rank=entry.rank, total=len(entries), score=entry.score)
    return RankResult(rank=None, total=len(entries))


def _attempt_key(attempt: AttemptRecord) -> tuple[int, int]:
    return (-int(attempt.score), int(attempt.time))


def _beats(candidate: AttemptRecord, current: AttemptRecord) -> bool:
    return _attempt_key(candidate) < _attempt_key(current)


def record_attempt(
    board: Sequence[AttemptRecord],
    attempt: AttemptRecord,
    *,
    size: int = DEFAULT_ATTEMPT_BOARD_SIZE,
) -> list[AttemptRecord]:
    """
    Merge `attempt` into a best-attempt board.

    One row per user; a new attempt replaces the old one only when it has a
    higher score, or the same score in less time. Ordered by score descending,
    then time ascending, and truncated to `size` rows.
    """
    out = list(board)
    for idx, existing in enumerate(out):
        if existing.username == attempt.username:
            if _beats(attempt, existing):
                out[idx] = attempt
            break
    else:
        out.append(attempt)
    out = sorted(out, key=_attempt_key)
    return out[: max(0, int(size))]


def attempt_rank(board: Sequence[AttemptRecord], username: str) -> int | None:
    for idx, attempt in enumerate(board):
        if attempt.username == username:
            return idx + 1
    return None
