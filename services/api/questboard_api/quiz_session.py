from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime

from questboard_api.courses import Question


POINTS_PER_CORRECT = 10
DEFAULT_QUESTION_COUNT = 10


@dataclass(frozen=True)
class SessionResult:
    course_name: str
    score: int
    time: int

    def to_wire(self) -> dict[str, object]:
        return {"courseName": self.course_name, "score": self.score, "time": self.time}


def select_questions(
    pool: list[Question], *, count: int, rng: random.Random
) -> list[Question]:
    if len(pool) <= count:
        return list(pool)
    return rng.sample(pool, count)


@dataclass
class QuizSession:
    course_name: str
    questions: list[Question]
    started_at: datetime
    answers: dict[int, int] = field(default_factory=dict)
    finished_at: datetime | None = None

    @classmethod
    def start(
        cls,
        *,
        course_name: str,
        pool: list[Question],
        rng: random.Random,
        now: datetime,
        count: int = DEFAULT_QUESTION_COUNT,
    ) -> "QuizSession":
        if not pool:
            raise ValueError(f"no questions available for {course_name}")
        return cls(
            course_name=course_name,
            questions=select_questions(pool, count=count, rng=rng),
            started_at=now,
        )

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    def answer(self, index: int, option: int) -> bool:
        """Record the chosen option for question `index`; returns whether it is correct."""
        if self.finished:
            raise ValueError("session already finished")
        if not 0 <= index < len(self.questions):
            raise IndexError(f"question index {index} out of range")
        question = self.questions[index]
        if not 0 <= option < len(question.options):
            raise ValueError(f"option {option} out of range")
        self.answers[index] = option
        return question.correct == option

    def is_correct(self, index: int) -> bool:
        chosen = self.answers.get(index)
        return chosen is not None and self.questions[index].correct == chosen

    @property
    def score(self) -> int:
        return sum(POINTS_PER_CORRECT for i in range(len(self.questions)) if self.is_correct(i))

    def elapsed_seconds(self, now: datetime) -> int:
        end = self.finished_at or now
        return max(0, int((end - self.started_at).total_seconds()))

    def finish(self, *, now: datetime) -> SessionResult:
        if self.finished_at is None:
            self.finished_at = now
        return SessionResult(
            course_name=self.course_name,
            score=self.score,
            time=self.elapsed_seconds(now),
        )
