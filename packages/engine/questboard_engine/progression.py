from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime

from questboard_engine.leveling import LevelUpReport, apply_experience
from questboard_engine.models import (
    ATTRIBUTES,
    PASSING_SCORE,
    CourseRecord,
    RewardBundle,
    ScoreHistory,
    UserProgression,
)
from questboard_engine.rewards import calculate_rewards


@dataclass(frozen=True)
class SessionOutcome:
    rewards: RewardBundle
    level_up: LevelUpReport
    course_record: CourseRecord | None


def new_progression(username: str, *, now: datetime) -> UserProgression:
    return UserProgression(username=username, created_at=now, last_updated=now)


def update_course_record(
    progression: UserProgression,
    *,
    course_name: str,
    score: int,
    time: int | None,
) -> CourseRecord:
    elapsed = int(time or 0)
    record = progression.course_records.get(course_name)
    if record is None:
        record = CourseRecord(last_time=elapsed)
        progression.course_records[course_name] = record

    record.attempts = int(record.attempts) + 1
    record.last_score = int(score)
    record.last_time = elapsed
    if int(score) > int(record.high_score):
        record.high_score = int(score)
    if elapsed > 0 and (record.best_time is None or elapsed < int(record.best_time)):
        record.best_time = elapsed
    if int(score) >= PASSING_SCORE:
        record.completed = True
    return record


def apply_reward_bundle(
    progression: UserProgression,
    rewards: RewardBundle,
    *,
    rng: random.Random,
) -> LevelUpReport:
    progression.currency = int(progression.currency) + int(rewards.currency)
    for attr in ATTRIBUTES:
        setattr(progression, attr, int(getattr(progression, attr)) + int(getattr(rewards, attr)))
    return apply_experience(progression, int(rewards.experience), rng=rng)


def complete_course(
    progression: UserProgression,
    *,
    course_name: str | None,
    score: int,
    time: int | None,
    rng: random.Random,
    now: datetime,
    rewards: RewardBundle | None = None,
) -> SessionOutcome:
    """
    Close one quiz session on `progression` in place.

    Given `rewards` are applied as-is and leave active effects alone;
    otherwise rewards are calculated here and the effects are consumed.
    """
    if rewards is None:
        outcome = calculate_rewards(score, progression.active_effects, rng=rng)
        rewards = outcome.rewards
        progression.active_effects = outcome.remaining_effects

    level_up = apply_reward_bundle(progression, rewards, rng=rng)

    record: CourseRecord | None = None
    if course_name:
        record = update_course_record(
            progression, course_name=course_name, score=score, time=time
        )

    progression.total_sessions = int(progression.total_sessions) + 1
    progression.last_updated = now
    return SessionOutcome(rewards=rewards, level_up=level_up, course_record=record)


def update_history(history: ScoreHistory, *, score: int, rank: int | None) -> ScoreHistory:
    if int(score) > int(history.high_score):
        return ScoreHistory(high_score=int(score), high_rank=rank)
    if (
        int(score) == int(history.high_score)
        and rank is not None
        and (history.high_rank is None or rank < history.high_rank)
    ):
        return ScoreHistory(high_score=int(history.high_score), high_rank=rank)
    return history
