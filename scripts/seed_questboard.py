from __future__ import annotations

import argparse
import os
import random
from datetime import UTC, datetime, timedelta

from questboard_api.core.config import Settings
from questboard_api.courses import COURSES
from questboard_api.profile_store import ATTEMPT_BOARD_KEY, ProfileStore, get_profile_store
from questboard_api.submissions import submit_score


DEMO_USERS = ["alice", "bob", "carol", "dave", "erin", "frank"]


def _ensure_schema(settings: Settings) -> None:
    if settings.store_backend != "sql":
        return
    from questboard_api import models  # noqa: F401
    from questboard_api.db import Base, engine

    Base.metadata.create_all(engine)


def _reset(store: ProfileStore, usernames: list[str]) -> None:
    for username in usernames:
        store.delete(username)
    store.backend.delete(key=ATTEMPT_BOARD_KEY)


def main() -> None:
    settings = Settings()
    os.makedirs(settings.artifacts_dir, exist_ok=True)

    parser = argparse.ArgumentParser(description="Seed demo profiles and scores.")
    parser.add_argument(
        "--reset", action="store_true", help="Delete demo profiles before seeding."
    )
    parser.add_argument(
        "--sessions",
        type=int,
        default=6,
        help="Quiz sessions to play per demo user (default: 6).",
    )
    parser.add_argument("--seed", type=int, default=7, help="Score generator seed.")
    args = parser.parse_args()

    _ensure_schema(settings)
    store = get_profile_store()
    if args.reset:
        _reset(store, DEMO_USERS)

    rng = random.Random(int(args.seed))
    course_names = list(COURSES)
    start = datetime.now(UTC) - timedelta(days=7)
    for u_idx, username in enumerate(DEMO_USERS):
        for s_idx in range(max(0, int(args.sessions))):
            score = 10 * rng.randint(3, 10)
            submit_score(
                store,
                username=username,
                score=score,
                time=rng.randint(45, 300),
                course_name=course_names[(u_idx + s_idx) % len(course_names)],
                rewards=None,
                now=start + timedelta(hours=u_idx * 12 + s_idx),
                settings=settings,
            )
    print(f"seeded {len(DEMO_USERS)} users x {int(args.sessions)} sessions")


if __name__ == "__main__":
    main()
