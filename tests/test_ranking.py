from __future__ import annotations

import pytest

from questboard_engine.leveling import threshold_for_level
from questboard_engine.models import MAX_LEVEL, AttemptRecord, CourseRecord, UserProgression
from questboard_engine.ranking import (
    LEVEL_SCORE_WEIGHT,
    attempt_rank,
    build_leaderboard,
    compute_score,
    lifetime_experience,
    normalize_strategy,
    rank_of,
    record_attempt,
    round_half_up,
    top_entries,
)


def _profile(name: str, *, level: int = 1, exp: int = 0, scores=(), sessions: int = 1) -> UserProgression:
    courses = {
        f"course-{i}": CourseRecord(high_score=s, attempts=1, completed=s >= 60)
        for i, s in enumerate(scores)
    }
    return UserProgression(
        username=name,
        level=level,
        experience=exp,
        course_records=courses,
        total_sessions=sessions,
    )


def test_scores_per_strategy() -> None:
    p = _profile("amy", level=3, exp=20, scores=(80, 40))
    assert lifetime_experience(p) == 270
    assert compute_score(p, "total") == 390
    assert compute_score(p, "level") == 3 * 10**12 + 20
    assert compute_score(p, "courses") == 160
    assert compute_score(p, "score") == 120


def test_lifetime_experience_is_exact_at_max_level() -> None:
    p = _profile("amy", level=MAX_LEVEL, exp=7)
    expected = 7 + sum((100 * 3**k) // 2**k for k in range(MAX_LEVEL - 1))
    assert lifetime_experience(p) == expected
    assert isinstance(compute_score(p, "total"), int)
    assert compute_score(p, "level") == MAX_LEVEL * LEVEL_SCORE_WEIGHT + 7


def test_level_weight_dominates_at_the_cap() -> None:
    top = _profile("top", level=MAX_LEVEL, exp=0)
    below = _profile("below", level=MAX_LEVEL - 1, exp=threshold_for_level(MAX_LEVEL - 1) - 1)
    entries = build_leaderboard([below, top], "level")
    assert [e.username for e in entries] == ["top", "below"]


def test_courses_average_rounds_half_up() -> None:
    p = _profile("amy", scores=(80, 45))
    assert compute_score(p, "courses") == 163


def test_courses_average_ignores_unscored_courses() -> None:
    p = _profile("amy", scores=(70, 0))
    assert compute_score(p, "courses") == 170


def test_level_strategy_orders_by_level_first() -> None:
    high = _profile("high", level=9, exp=0)
    low = _profile("low", level=8, exp=5000)
    entries = build_leaderboard([low, high], "level")
    assert [e.username for e in entries] == ["high", "low"]


@pytest.mark.parametrize("strategy", ["total", "level", "courses", "score"])
def test_leaderboard_sorted_with_consecutive_ranks(strategy) -> None:
    profiles = [
        _profile("a", level=2, exp=10, scores=(30,)),
        _profile("b", level=1, exp=90, scores=(90, 70)),
        _profile("c", level=4, exp=0, scores=(10, 20, 30)),
        _profile("d", level=1, exp=0, scores=(100,)),
    ]
    entries = build_leaderboard(profiles, strategy)
    assert [e.rank for e in entries] == [1, 2, 3, 4]
    scores = [e.score for e in entries]
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_input_order() -> None:
    profiles = [_profile(n, scores=(50,)) for n in ("zed", "amy", "kim")]
    entries = build_leaderboard(profiles, "score")
    assert [e.username for e in entries] == ["zed", "amy", "kim"]
    assert [e.rank for e in entries] == [1, 2, 3]


def test_profiles_without_sessions_are_not_ranked() -> None:
    entries = build_leaderboard([_profile("new", sessions=0), _profile("old")], "total")
    assert [e.username for e in entries] == ["old"]
    result = rank_of(entries, "new")
    assert result.rank is None
    assert result.total == 1


def test_rank_of_matches_position_in_full_population() -> None:
    profiles = [_profile(f"u{i}", scores=(i,)) for i in range(1, 31)]
    entries = build_leaderboard(profiles, "score")
    top = top_entries(entries, 20)
    assert len(top) == 20
    result = rank_of(entries, "u1")
    assert result.rank == 30
    assert result.total == 30
    assert result.score == 1


def test_leaderboard_entry_wire_names() -> None:
    entry = build_leaderboard([_profile("amy", scores=(80,))], "score")[0]
    wire = entry.model_dump(by_alias=True)
    assert wire["completedCourses"] == 1
    assert wire["totalQuizzes"] == 1
    assert {"exp", "coins", "score", "rank"} <= set(wire)


def test_normalize_strategy() -> None:
    assert normalize_strategy("SCORE") == "score"
    assert normalize_strategy("bogus") == "total"
    assert normalize_strategy(None) == "total"


def test_round_half_up() -> None:
    assert round_half_up(62.5) == 63
    assert round_half_up(62.4) == 62
    assert round_half_up(2.5) == 3


def test_attempt_board_keeps_best_attempt_per_user() -> None:
    board = record_attempt([], AttemptRecord(username="amy", score=70, time=90))
    board = record_attempt(board, AttemptRecord(username="bob", score=80, time=120))
    board = record_attempt(board, AttemptRecord(username="amy", score=60, time=30))
    assert [(a.username, a.score) for a in board] == [("bob", 80), ("amy", 70)]

    board = record_attempt(board, AttemptRecord(username="amy", score=80, time=100))
    assert [(a.username, a.time) for a in board] == [("amy", 100), ("bob", 120)]
    assert attempt_rank(board, "bob") == 2
    assert attempt_rank(board, "nobody") is None


def test_attempt_board_truncates_to_size() -> None:
    board = []
    for i in range(5):
        board = record_attempt(board, AttemptRecord(username=f"u{i}", score=i * 10), size=3)
    assert [a.username for a in board] == ["u4", "u3", "u2"]
