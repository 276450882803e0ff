from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import orjson
from pydantic import BaseModel, Field, ValidationError, model_validator

from questboard_api.core.config import Settings


logger = logging.getLogger(__name__)


class Question(BaseModel):
    question: str
    options: list[str] = Field(min_length=2)
    correct: int
    explanation: str | None = None

    @model_validator(mode="after")
    def _validate_correct(self) -> "Question":
        if not 0 <= self.correct < len(self.options):
            raise ValueError(f"correct index {self.correct} out of range")
        return self


class QuestionPool(BaseModel):
    questions: list[Question] = Field(min_length=1)


@dataclass(frozen=True)
class CourseDef:
    id: str
    name: str
    description: str
    question_file: str

    def to_wire(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "description": self.description}


COURSES: dict[str, CourseDef] = {
    c.name: c
    for c in (
        CourseDef(
            id="smart-connect",
            name="Connected Vehicle Technology",
            description="Vehicle networking, V2X and driver assistance.",
            question_file="questions.json",
        ),
        CourseDef(
            id="bms",
            name="Battery Management Systems",
            description="How EV battery management works and how to maintain it.",
            question_file="questions-bms.json",
        ),
        CourseDef(
            id="motor",
            name="Electric Drive Motors",
            description="Motor types, controllers and regenerative braking.",
            question_file="questions-motor.json",
        ),
    )
}


COURSES_BY_ID: dict[str, CourseDef] = {c.id: c for c in COURSES.values()}


def get_course(name_or_id: str) -> CourseDef | None:
    key = str(name_or_id)
    return COURSES.get(key) or COURSES_BY_ID.get(key)


def placeholder_questions(course: CourseDef, *, count: int = 5) -> list[Question]:
    return [
        Question(
            question=f"{course.name} - placeholder question {i + 1}",
            options=["Option A", "Option B", "Option C", "Option D"],
            correct=i % 4,
            explanation="Placeholder question used while the question bank is unavailable.",
        )
        for i in range(count)
    ]


def load_questions(course: CourseDef, *, settings: Settings | None = None) -> list[Question]:
    """Question pool for `course`; falls back to placeholders if the file is unusable."""
    settings = settings or Settings()
    path = Path(settings.courses_dir) / course.question_file
    try:
        pool = QuestionPool.model_validate(orjson.loads(path.read_bytes()))
    except OSError:
        logger.warning("question bank unreadable course=%s path=%s", course.id, path)
        return placeholder_questions(course)
    except (orjson.JSONDecodeError, ValidationError):
        logger.warning("question bank invalid course=%s path=%s", course.id, path, exc_info=True)
        return placeholder_questions(course)
    return list(pool.questions)
