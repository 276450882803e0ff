from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import orjson
from pydantic import ValidationError

from questboard_api.kv_backend import KVBackend, get_kv_backend
from questboard_engine.models import AttemptRecord, ScoreHistory, UserProgression
from questboard_engine.progression import new_progression


logger = logging.getLogger(__name__)

PROFILE_PREFIX = "profile:"
HISTORY_PREFIX = "history:"
ATTEMPT_BOARD_KEY = "leaderboard"

_JSON = "application/json"


def profile_key(username: str) -> str:
    return f"{PROFILE_PREFIX}{username}"


def history_key(username: str) -> str:
    return f"{HISTORY_PREFIX}{username}"


def encode_json(payload: Any) -> bytes:
    return orjson.dumps(payload, option=orjson.OPT_SORT_KEYS)


@dataclass(frozen=True)
class ProfileStore:
    """
    Progression records and boards on a key-value backend.

    Reads never raise: a missing, unreadable or malformed value is logged and
    treated as absent. There is no locking; concurrent writers to one key race
    and the last write wins.
    """

    backend: KVBackend

    def _read(self, key: str) -> Any | None:
        try:
            raw = self.backend.get_bytes(key=key)
        except Exception:  # noqa: BLE001
            logger.warning("store read failed key=%s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("store value is not valid JSON key=%s", key)
            return None

    def _write(self, key: str, payload: Any) -> bool:
        try:
            self.backend.put_bytes(key=key, data=encode_json(payload), content_type=_JSON)
        except Exception:  # noqa: BLE001
            logger.error("store write failed key=%s", key, exc_info=True)
            return False
        return True

    def _decode_profile(self, key: str, payload: Any) -> UserProgression | None:
        if not isinstance(payload, dict) or not payload.get("username"):
            logger.warning("skipping malformed profile key=%s", key)
            return None
        try:
            return UserProgression.model_validate(payload)
        except ValidationError as exc:
            logger.warning(
                "skipping malformed profile key=%s errors=%d", key, exc.error_count()
            )
            return None

    def get(self, username: str) -> UserProgression | None:
        key = profile_key(username)
        payload = self._read(key)
        if payload is None:
            return None
        return self._decode_profile(key, payload)

    def load(self, username: str, *, now: datetime) -> UserProgression:
        return self.get(username) or new_progression(username, now=now)

    def save(self, progression: UserProgression) -> bool:
        return self._write(profile_key(progression.username), progression.to_wire())

    def exists(self, username: str) -> bool:
        try:
            return self.backend.exists(key=profile_key(username))
        except Exception:  # noqa: BLE001
            logger.warning("store exists check failed username=%s", username, exc_info=True)
            return False

    def delete(self, username: str) -> bool:
        try:
            removed = self.backend.delete(key=profile_key(username))
            self.backend.delete(key=history_key(username))
        except Exception:  # noqa: BLE001
            logger.error("store delete failed username=%s", username, exc_info=True)
            return False
        return bool(removed)

    def list_all(self) -> list[UserProgression]:
        try:
            keys = self.backend.list_keys(prefix=PROFILE_PREFIX)
        except Exception:  # noqa: BLE001
            logger.warning("store listing failed", exc_info=True)
            return []
        out: list[UserProgression] = []
        for key in keys:
            payload = self._read(key)
            if payload is None:
                continue
            profile = self._decode_profile(key, payload)
            if profile is not None:
                out.append(profile)
        return out

    def export_json(self, username: str) -> bytes | None:
        profile = self.get(username)
        if profile is None:
            return None
        return orjson.dumps(profile.to_wire(), option=orjson.OPT_INDENT_2)

    def import_json(self, raw: bytes | str) -> UserProgression | None:
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("profile import is not valid JSON")
            return None
        profile = self._decode_profile("<import>", payload)
        if profile is None or not self.save(profile):
            return None
        return profile

    def load_history(self, username: str) -> ScoreHistory:
        payload = self._read(history_key(username))
        if not isinstance(payload, dict):
            return ScoreHistory()
        try:
            return ScoreHistory.model_validate(payload)
        except ValidationError:
            logger.warning("malformed score history username=%s", username)
            return ScoreHistory()

    def save_history(self, username: str, history: ScoreHistory) -> bool:
        return self._write(history_key(username), history.model_dump(by_alias=True))

    def load_attempt_board(self) -> list[AttemptRecord]:
        payload = self._read(ATTEMPT_BOARD_KEY)
        if not isinstance(payload, list):
            return []
        out: list[AttemptRecord] = []
        for row in payload:
            try:
                out.append(AttemptRecord.model_validate(row))
            except ValidationError:
                logger.warning("skipping malformed attempt row")
        return out

    def save_attempt_board(self, board: list[AttemptRecord]) -> bool:
        return self._write(
            ATTEMPT_BOARD_KEY, [a.model_dump(by_alias=True) for a in board]
        )


def get_profile_store() -> ProfileStore:
    return ProfileStore(backend=get_kv_backend())
