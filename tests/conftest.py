from __future__ import annotations

import os
import random
import tempfile
from datetime import UTC, datetime
from pathlib import Path

import pytest


_TEST_ROOT = Path(tempfile.mkdtemp(prefix="questboard_test_"))
_DB_PATH = _TEST_ROOT / "questboard_test.db"
_ARTIFACTS_DIR = _TEST_ROOT / "artifacts"
_COURSES_DIR = Path(__file__).resolve().parents[1] / "content" / "courses"

os.environ["QUESTBOARD_DB_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["QUESTBOARD_ARTIFACTS_DIR"] = str(_ARTIFACTS_DIR)
os.environ["QUESTBOARD_STORE_BACKEND"] = "sql"
os.environ["QUESTBOARD_COURSES_DIR"] = str(_COURSES_DIR)


class FixedRandom(random.Random):
    """`randint` always returns the low (or high) bound."""

    def __init__(self, *, high: bool = False) -> None:
        super().__init__(0)
        self.high = high

    def randint(self, a: int, b: int) -> int:
        return b if self.high else a


@pytest.fixture()
def now() -> datetime:
    return datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def schema() -> None:
    from questboard_api import models  # noqa: F401
    from questboard_api.db import Base, engine

    Base.metadata.create_all(engine)


@pytest.fixture()
def store(schema):
    from sqlalchemy import delete

    from questboard_api.db import SessionLocal
    from questboard_api.kv_backend import reset_kv_backend_cache
    from questboard_api.models import KVEntry
    from questboard_api.profile_store import get_profile_store

    with SessionLocal() as session:
        session.execute(delete(KVEntry))
        session.commit()
    reset_kv_backend_cache()
    return get_profile_store()


@pytest.fixture()
def local_store(tmp_path):
    from questboard_api.kv_backend import LocalFSBackend
    from questboard_api.profile_store import ProfileStore

    return ProfileStore(backend=LocalFSBackend(root_dir=tmp_path / "kv"))


@pytest.fixture()
def api_client(store):
    from fastapi.testclient import TestClient

    from questboard_api.main import app

    return TestClient(app)
