from __future__ import annotations

import logging

import pytest

MOTORS = "Electric Drive Motors"


def _submit(api_client, **body):
    return api_client.post("/api/submit-score", json=body)


def test_unknown_user_gets_new_record(api_client, store) -> None:
    resp = _submit(
        api_client,
        username="newbie",
        score=40,
        time=80,
        courseName=MOTORS,
        rewards={"exp": 10, "coins": 0},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["profile"]["level"] == 1
    assert body["profile"]["coins"] == 0
    assert body["rank"] == 1

    stored = store.get("newbie")
    assert stored is not None
    assert stored.level == 1
    assert stored.currency == 0
    assert stored.course_records[MOTORS].attempts == 1
    assert stored.course_records[MOTORS].completed is False


def test_server_computes_rewards_without_bundle(api_client, store) -> None:
    body = _submit(api_client, username="amy", score=85, time=120, courseName=MOTORS).json()
    assert body["rewards"]["exp"] == 85
    assert body["rewards"]["coins"] == 42
    assert body["levelUp"]["leveledUp"] is False
    assert body["profile"]["exp"] == 85
    assert body["message"]
    assert [e["username"] for e in body["leaderboard"]] == ["amy"]

    record = store.get("amy").course_records[MOTORS]
    assert record.completed is True
    assert record.best_time == 120


def test_same_submission_is_deterministic(api_client, store) -> None:
    first = _submit(api_client, username="amy", score=50, time=60).json()
    assert first["success"] is True
    # Seeds derive from the session count, so a fresh user replays identically.
    store.delete("amy")
    again = _submit(api_client, username="amy", score=50, time=60).json()
    assert again["rewards"] == first["rewards"]


def test_level_up_is_reported(api_client, store) -> None:
    body = _submit(
        api_client, username="amy", score=90, time=60, courseName=MOTORS, rewards={"exp": 150}
    ).json()
    assert body["levelUp"]["leveledUp"] is True
    assert body["levelUp"]["newLevel"] == 2
    assert body["profile"]["level"] == 2
    assert body["profile"]["exp"] == 50
    assert body["profile"]["expToNextLevel"] == 150
    assert body["profile"]["coins"] == 20


def test_negative_rewards_are_clamped(api_client) -> None:
    body = _submit(
        api_client, username="amy", score=10, rewards={"exp": -50, "coins": -10, "charm": 2}
    ).json()
    assert body["rewards"]["exp"] == 0
    assert body["rewards"]["coins"] == 0
    assert body["profile"]["coins"] == 0
    assert body["profile"]["charm"] == 2


def test_fractional_score_is_rounded(api_client, store) -> None:
    assert _submit(api_client, username="amy", score=84.5, courseName=MOTORS).status_code == 200
    assert store.get("amy").course_records[MOTORS].last_score == 85


def test_rank_reflects_everyone(api_client) -> None:
    _submit(api_client, username="amy", score=90, rewards={"exp": 0})
    body = _submit(api_client, username="bob", score=30, courseName=MOTORS, rewards={"exp": 0}).json()
    assert body["rank"] == 1
    body = _submit(api_client, username="amy", score=90, courseName=MOTORS, rewards={"exp": 0}).json()
    assert body["rank"] == 1
    assert [e["username"] for e in body["leaderboard"]] == ["amy", "bob"]


@pytest.mark.parametrize(
    "payload",
    [
        {"score": 50},
        {"username": "   ", "score": 50},
        {"username": "amy"},
        {"username": "amy", "score": "50"},
        {"username": "amy", "score": True},
        {"username": "amy", "score": None},
        {"username": 42, "score": 50},
        {"username": "amy", "score": 50, "rewards": {"exp": "lots"}},
    ],
)
def test_invalid_payloads_are_rejected(api_client, store, payload) -> None:
    resp = api_client.post("/api/submit-score", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]
    assert store.list_all() == []


def test_non_json_body_is_rejected(api_client) -> None:
    resp = api_client.post(
        "/api/submit-score",
        content=b"username=amy&score=5",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid JSON body"}


def test_username_too_long(api_client) -> None:
    resp = _submit(api_client, username="x" * 33, score=50)
    assert resp.status_code == 400
    assert resp.json()["error"] == "username too long"


def test_get_is_not_allowed(api_client) -> None:
    resp = api_client.get("/api/submit-score")
    assert resp.status_code == 405
    assert resp.json()["success"] is False


@pytest.mark.parametrize(
    "payload",
    [
        {"username": "amy", "score": 2**64},
        {"username": "amy", "score": -(10**10)},
        {"username": "amy", "score": 1e300},
        {"username": "amy", "score": 50, "time": 10**10},
        {"username": "amy", "score": 50, "rewards": {"exp": 2**64}},
        {"username": "amy", "score": 50, "rewards": {"exp": 10, "coins": 10**12}},
    ],
)
def test_out_of_range_values_are_rejected(api_client, store, payload) -> None:
    resp = api_client.post("/api/submit-score", json=payload)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert store.list_all() == []
    assert store.load_attempt_board() == []


def test_largest_accepted_values_are_stored(api_client, store) -> None:
    resp = _submit(
        api_client,
        username="amy",
        score=10**9,
        time=10**9,
        courseName=MOTORS,
        rewards={"exp": 0, "coins": 10**9},
    )
    assert resp.status_code == 200
    assert store.get("amy").currency == 10**9
    assert [(a.username, a.score) for a in store.load_attempt_board()] == [("amy", 10**9)]


def test_attempt_board_write_failure_still_saves_profile(api_client, store, monkeypatch, caplog) -> None:
    from questboard_api.profile_store import ProfileStore

    monkeypatch.setattr(ProfileStore, "save_attempt_board", lambda self, board: False)
    monkeypatch.setattr(logging.getLogger("questboard_api"), "propagate", True)
    with caplog.at_level(logging.WARNING):
        resp = _submit(api_client, username="amy", score=70, courseName=MOTORS)
    assert resp.status_code == 200
    assert store.get("amy") is not None
    assert "attempt board not updated" in caplog.text
