__all__ = [
    "Effect",
    "LeaderboardEntry",
    "LevelUpReport",
    "RewardBundle",
    "UserProgression",
    "apply_experience",
    "build_leaderboard",
    "calculate_rewards",
    "complete_course",
    "compute_score",
    "derive_seed",
    "rank_of",
]

from questboard_engine.leveling import LevelUpReport, apply_experience
from questboard_engine.models import (
    Effect,
    LeaderboardEntry,
    RewardBundle,
    UserProgression,
)
from questboard_engine.progression import complete_course
from questboard_engine.ranking import build_leaderboard, compute_score, rank_of
from questboard_engine.rewards import calculate_rewards
from questboard_engine.rng import derive_seed
