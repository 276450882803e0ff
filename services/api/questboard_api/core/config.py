from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUESTBOARD_", extra="ignore")

    trust_proxy_headers: bool = False
    allowed_hosts: str = "*"
    cors_allowed_origins: str = "*"
    log_json: bool = False
    log_level: str = "INFO"

    db_url: str = "sqlite:///./artifacts/questboard.db"
    db_auto_create: bool = True
    artifacts_dir: str = "./artifacts"

    # Key-value store holding profiles and boards.
    # - sql: `kv_entries` table in db_url (default)
    # - local: one file per key under artifacts_dir/kv
    # - s3: optional; requires boto3 + QUESTBOARD_STORE_S3_BUCKET
    store_backend: str = "sql"
    store_s3_bucket: str | None = None
    store_s3_prefix: str = ""
    store_s3_region: str | None = None
    store_s3_endpoint_url: str | None = None

    leaderboard_default_limit: int = 20
    leaderboard_max_limit: int = 100
    attempt_board_size: int = 100
    username_max_length: int = 32

    courses_dir: str = "./content/courses"
    session_question_count: int = 10

    # Per-session random sources are seeded from (salt, username, session #).
    rng_salt: str = "questboard"

    @field_validator("store_backend")
    @classmethod
    def _validate_store_backend(cls, v: str) -> str:
        kind = str(v or "sql").strip().lower()
        if kind not in {"sql", "local", "s3"}:
            raise ValueError(
                f"QUESTBOARD_STORE_BACKEND must be one of sql, local, s3 (got {v!r})"
            )
        return kind

    @field_validator("leaderboard_default_limit", "leaderboard_max_limit")
    @classmethod
    def _validate_positive_limit(cls, v: int) -> int:
        if int(v) < 1:
            raise ValueError("leaderboard limits must be >= 1")
        return int(v)
