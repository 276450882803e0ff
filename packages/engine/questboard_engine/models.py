from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)


EffectType = Literal[
    "experienceMultiplier", "currencyMultiplier", "luckyBonus", "attributeBoost"
]
Attribute = Literal["intelligence", "strength", "charm"]
RankStrategy = Literal["total", "level", "courses", "score"]

ATTRIBUTES: tuple[Attribute, ...] = ("intelligence", "strength", "charm")
RANK_STRATEGIES: tuple[RankStrategy, ...] = ("total", "level", "courses", "score")

BASE_EXPERIENCE_TO_NEXT_LEVEL = 100
PASSING_SCORE = 60
# Keeps every threshold, and so every stored counter, well inside 64 bits.
MAX_LEVEL = 50

# Names written by older clients.
_LEGACY_EFFECT_TYPES: dict[str, str] = {
    "expMultiplier": "experienceMultiplier",
    "coinMultiplier": "currencyMultiplier",
    "lucky": "luckyBonus",
}


def _wire_config() -> ConfigDict:
    return ConfigDict(populate_by_name=True, extra="ignore")


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _as_utc_ms(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utc_now_ms() -> datetime:
    return _as_utc_ms(datetime.now(UTC))


def _to_epoch_ms(value: datetime) -> int:
    return (_as_utc_ms(value) - _EPOCH) // timedelta(milliseconds=1)


class Effect(BaseModel):
    model_config = _wire_config()

    type: EffectType
    value: float = 1.0
    active: bool = True
    attribute: Attribute | None = None
    remaining_uses: int | None = Field(default=None, alias="uses")
    remaining_duration: int | None = Field(default=None, alias="duration")
    item_id: str | None = Field(default=None, alias="itemId")
    item_name: str | None = Field(default=None, alias="itemName")

    @field_validator("type", mode="before")
    @classmethod
    def _map_legacy_type(cls, v: Any) -> Any:
        return _LEGACY_EFFECT_TYPES.get(str(v), v)

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_flag_value(cls, v: Any) -> Any:
        # luckyBonus was stored as `value: true`.
        if isinstance(v, bool):
            return 1.0 if v else 0.0
        return v

    @model_validator(mode="after")
    def _validate_target(self) -> "Effect":
        if self.type == "attributeBoost" and self.attribute is None:
            raise ValueError("attributeBoost effect requires an attribute")
        return self

    def consume(self) -> "Effect":
        """Return a copy with each present counter decremented once."""
        uses = self.remaining_uses
        duration = self.remaining_duration
        active = self.active
        if uses is not None:
            uses = max(0, uses - 1)
            if uses == 0:
                active = False
        if duration is not None:
            duration = max(0, duration - 1)
            if duration == 0:
                active = False
        return self.model_copy(
            update={
                "remaining_uses": uses,
                "remaining_duration": duration,
                "active": active,
            }
        )


class CourseRecord(BaseModel):
    model_config = _wire_config()

    high_score: int = Field(default=0, alias="highScore")
    attempts: int = 0
    last_score: int = Field(default=0, alias="lastScore")
    best_time: int | None = Field(default=None, alias="bestTime")
    last_time: int = Field(default=0, alias="lastTime")
    completed: bool = False


class RewardBundle(BaseModel):
    model_config = _wire_config()

    experience: int = Field(default=0, alias="exp")
    currency: int = Field(default=0, alias="coins")
    intelligence: int = 0
    strength: int = 0
    charm: int = 0

    @field_validator(
        "experience", "currency", "intelligence", "strength", "charm", mode="before"
    )
    @classmethod
    def _clamp_non_negative(cls, v: Any) -> Any:
        if v is None:
            return 0
        if isinstance(v, float) and not math.isfinite(v):
            return v
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return max(0, int(v))
        return v


class UserProgression(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", validate_assignment=True
    )

    username: str
    level: int = 1
    experience: int = Field(default=0, alias="exp")
    experience_to_next_level: int = Field(
        default=BASE_EXPERIENCE_TO_NEXT_LEVEL, alias="expToNextLevel"
    )
    currency: int = Field(default=0, alias="coins")
    intelligence: int = 0
    strength: int = 0
    charm: int = 0
    course_records: dict[str, CourseRecord] = Field(
        default_factory=dict, alias="courses"
    )
    total_sessions: int = Field(default=0, alias="totalQuizzes")
    active_effects: list[Effect] = Field(default_factory=list, alias="activeEffects")
    created_at: datetime = Field(default_factory=utc_now_ms, alias="createdAt")
    last_updated: datetime = Field(default_factory=utc_now_ms, alias="lastUpdated")

    @field_validator("username")
    @classmethod
    def _validate_username(cls, v: str) -> str:
        name = str(v or "").strip()
        if not name:
            raise ValueError("username must not be empty")
        return name

    @field_validator("active_effects", mode="before")
    @classmethod
    def _drop_spent_attribute_effects(cls, v: Any) -> Any:
        # Older clients kept permanent stat purchases in the effect list after
        # applying them; they carry no reward semantics.
        if not isinstance(v, list):
            return v
        return [
            e
            for e in v
            if not (isinstance(e, dict) and str(e.get("type") or "") in ATTRIBUTES)
        ]

    @field_validator(
        "level",
        "experience",
        "currency",
        "intelligence",
        "strength",
        "charm",
        "total_sessions",
        mode="before",
    )
    @classmethod
    def _null_as_default(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("level")
    @classmethod
    def _level_range(cls, v: int) -> int:
        if int(v) > MAX_LEVEL:
            raise ValueError(f"level must be <= {MAX_LEVEL}")
        return max(1, int(v))

    @field_validator("created_at", "last_updated")
    @classmethod
    def _millisecond_precision(cls, v: datetime) -> datetime:
        return _as_utc_ms(v)

    @field_serializer("created_at", "last_updated")
    def _serialize_timestamp(self, value: datetime) -> int:
        return _to_epoch_ms(value)

    @property
    def completed_courses(self) -> int:
        return sum(1 for c in self.course_records.values() if c.completed)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def summary(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "level": int(self.level),
            "exp": int(self.experience),
            "expToNextLevel": int(self.experience_to_next_level),
            "coins": int(self.currency),
            "intelligence": int(self.intelligence),
            "strength": int(self.strength),
            "charm": int(self.charm),
        }


class LeaderboardEntry(BaseModel):
    model_config = _wire_config()

    username: str
    level: int
    experience: int = Field(alias="exp")
    currency: int = Field(alias="coins")
    intelligence: int
    strength: int
    charm: int
    completed_courses: int = Field(alias="completedCourses")
    total_sessions: int = Field(alias="totalQuizzes")
    score: int
    rank: int = 0


class AttemptRecord(BaseModel):
    model_config = _wire_config()

    username: str
    score: int
    time: int = 0
    timestamp: int = 0


class ScoreHistory(BaseModel):
    model_config = _wire_config()

    high_score: int = Field(default=0, alias="highScore")
    high_rank: int | None = Field(default=None, alias="highRank")
