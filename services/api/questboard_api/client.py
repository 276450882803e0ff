from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from questboard_api.core.config import Settings
from questboard_api.courses import Question, get_course, load_questions
from questboard_api.profile_store import ProfileStore
from questboard_api.quiz_session import QuizSession, SessionResult
from questboard_api.submissions import standings
from questboard_engine.models import LeaderboardEntry, RankStrategy, RewardBundle, ScoreHistory
from questboard_engine.progression import SessionOutcome, complete_course, update_history
from questboard_engine.ranking import normalize_strategy, rank_of, top_entries
from questboard_engine.rng import session_rng


logger = logging.getLogger(__name__)


class RemoteError(RuntimeError):
    pass


@dataclass(frozen=True)
class LocalFinish:
    result: SessionResult
    outcome: SessionOutcome
    saved: bool


@dataclass(frozen=True)
class SubmitOutcome:
    rank: int | None
    leaderboard: list[LeaderboardEntry]
    history: ScoreHistory
    provisional: bool
    error: str | None = None


@dataclass(frozen=True)
class LeaderboardView:
    entries: list[LeaderboardEntry]
    total: int
    sort_by: RankStrategy
    provisional: bool


def _payload(resp: httpx.Response) -> dict[str, Any]:
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict) or not data.get("success"):
        error = data.get("error") if isinstance(data, dict) else None
        raise RemoteError(str(error or "request failed"))
    return data


@dataclass
class QuizClient:
    """
    Talks to the score service, falling back to the local store.

    One attempt per call and no retries; anything computed locally after a
    failed call is returned with `provisional=True`.
    """

    base_url: str
    store: ProfileStore
    settings: Settings = field(default_factory=Settings)
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None

    def _http(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        )

    def fetch_questions(self, course_id: str) -> list[Question]:
        course = get_course(course_id)
        try:
            with self._http() as http:
                data = _payload(http.get(f"/api/courses/{course_id}/questions"))
            return [Question.model_validate(q) for q in data.get("questions") or []]
        except (httpx.HTTPError, RemoteError, ValueError):
            logger.warning("question fetch failed course=%s; using local bank", course_id)
        if course is None:
            return []
        return load_questions(course, settings=self.settings)

    def start_session(
        self, course_id: str, *, rng: random.Random, now: datetime
    ) -> QuizSession:
        course = get_course(course_id)
        return QuizSession.start(
            course_name=course.name if course is not None else course_id,
            pool=self.fetch_questions(course_id),
            rng=rng,
            now=now,
            count=self.settings.session_question_count,
        )

    def finish_session(
        self, session: QuizSession, *, username: str, now: datetime
    ) -> LocalFinish:
        """Close `session` and apply its rewards to the local profile."""
        result = session.finish(now=now)
        profile = self.store.load(username, now=now)
        rng = session_rng(
            salt=self.settings.rng_salt,
            username=profile.username,
            session_index=int(profile.total_sessions),
        )
        outcome = complete_course(
            profile,
            course_name=result.course_name,
            score=result.score,
            time=result.time,
            rng=rng,
            now=now,
        )
        saved = self.store.save(profile)
        if not saved:
            logger.error("local profile save failed username=%s", profile.username)
        return LocalFinish(result=result, outcome=outcome, saved=saved)

    def submit(
        self,
        *,
        username: str,
        result: SessionResult,
        rewards: RewardBundle | None = None,
    ) -> SubmitOutcome:
        body: dict[str, Any] = {"username": username, **result.to_wire()}
        if rewards is not None:
            body["rewards"] = rewards.model_dump(by_alias=True)

        error: str | None = None
        try:
            with self._http() as http:
                data = _payload(http.post("/api/submit-score", json=body))
            rank = data.get("rank")
            entries = [LeaderboardEntry.model_validate(e) for e in data.get("leaderboard") or []]
            provisional = False
        except (httpx.HTTPError, RemoteError, ValueError) as exc:
            error = str(exc)[:300]
            logger.warning("score submit failed username=%s error=%s", username, error)
            local = standings(self.store, "total")
            rank = rank_of(local, username).rank
            entries = top_entries(local, self.settings.leaderboard_default_limit)
            provisional = True

        history = update_history(
            self.store.load_history(username), score=result.score, rank=rank
        )
        self.store.save_history(username, history)
        return SubmitOutcome(
            rank=rank,
            leaderboard=entries,
            history=history,
            provisional=provisional,
            error=error,
        )

    def leaderboard(
        self, *, sort_by: str | None = None, limit: int | None = None
    ) -> LeaderboardView:
        strategy = normalize_strategy(sort_by)
        limit = int(limit or self.settings.leaderboard_default_limit)
        params = {"sortBy": strategy, "limit": str(limit)}
        try:
            with self._http() as http:
                data = _payload(http.get("/api/leaderboard", params=params))
            return LeaderboardView(
                entries=[LeaderboardEntry.model_validate(e) for e in data.get("leaderboard") or []],
                total=int(data.get("total") or 0),
                sort_by=normalize_strategy(data.get("sortBy")),
                provisional=False,
            )
        except (httpx.HTTPError, RemoteError, ValueError):
            logger.warning("leaderboard fetch failed; ranking local profiles")
        local = standings(self.store, strategy)
        return LeaderboardView(
            entries=top_entries(local, limit),
            total=len(local),
            sort_by=strategy,
            provisional=True,
        )
