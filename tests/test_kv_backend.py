from __future__ import annotations

import logging

import orjson
import pytest
from pydantic import ValidationError

from questboard_api.core.config import Settings
from questboard_api.core.logging import JsonFormatter
from questboard_api.kv_backend import LocalFSBackend, SqlKVBackend, build_kv_backend
from questboard_engine.rng import derive_seed, session_rng


def test_local_backend_keeps_keys_inside_root(tmp_path) -> None:
    backend = LocalFSBackend(root_dir=tmp_path)
    backend.put_bytes(key="../../etc/passwd", data=b"x")
    backend.put_bytes(key="profile:a/b", data=b"y")
    assert sorted(p.parent for p in tmp_path.iterdir()) == [tmp_path, tmp_path]
    assert backend.list_keys(prefix="profile:") == ["profile:a/b"]
    assert backend.get_bytes(key="../../etc/passwd") == b"x"
    with pytest.raises(ValueError):
        backend.get_bytes(key="  ")


def test_sql_backend_upserts_and_lists_by_prefix(store) -> None:
    backend = store.backend
    assert isinstance(backend, SqlKVBackend)
    backend.put_bytes(key="profile:a_b", data=b"1")
    backend.put_bytes(key="profile:a_b", data=b"2")
    backend.put_bytes(key="profile:axb", data=b"3")
    backend.put_bytes(key="history:a_b", data=b"4")
    assert backend.get_bytes(key="profile:a_b") == b"2"
    assert backend.list_keys(prefix="profile:a_") == ["profile:a_b"]
    assert backend.delete(key="profile:axb") is True
    assert backend.exists(key="profile:axb") is False


def test_build_backend_by_setting(tmp_path) -> None:
    local = build_kv_backend(Settings(store_backend="local", artifacts_dir=str(tmp_path)))
    assert isinstance(local, LocalFSBackend)
    assert local.root_dir == tmp_path / "kv"
    with pytest.raises(RuntimeError):
        build_kv_backend(Settings(store_backend="s3"))


def test_settings_validation() -> None:
    assert Settings(store_backend=" LOCAL ").store_backend == "local"
    with pytest.raises(ValidationError):
        Settings(store_backend="redis")
    with pytest.raises(ValidationError):
        Settings(leaderboard_max_limit=0)


def test_seeds_are_stable_and_distinct() -> None:
    assert derive_seed("s", "amy", 0) == derive_seed("s", "amy", 0)
    assert derive_seed("s", "amy", 0) != derive_seed("s", "amy", 1)
    a = session_rng(salt="s", username="amy", session_index=4).random()
    b = session_rng(salt="s", username="amy", session_index=4).random()
    assert a == b


def test_json_log_lines() -> None:
    record = logging.LogRecord(
        name="questboard_api.http",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="GET %s -> %s",
        args=("/api/health", 200),
        exc_info=None,
    )
    record.fields = {"request_id": "req_1", "status": 200}
    line = orjson.loads(JsonFormatter().format(record))
    assert line["message"] == "GET /api/health -> 200"
    assert line["level"] == "info"
    assert line["request_id"] == "req_1"
