from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from questboard_api.core.config import Settings


class KVBackend(Protocol):
    def get_bytes(self, *, key: str) -> bytes | None: ...
    def put_bytes(
        self, *, key: str, data: bytes, content_type: str | None = None
    ) -> None: ...
    def exists(self, *, key: str) -> bool: ...
    def delete(self, *, key: str) -> bool: ...
    def list_keys(self, *, prefix: str = "") -> list[str]: ...


def _validate_key(key: str) -> str:
    raw = str(key or "")
    if not raw.strip():
        raise ValueError("empty key")
    return raw


def _kv_entry():
    # Imported lazily so non-SQL backends never create a database engine.
    from questboard_api.models import KVEntry

    return KVEntry


@dataclass(frozen=True)
class SqlKVBackend:
    session_factory: sessionmaker[Session]

    def get_bytes(self, *, key: str) -> bytes | None:
        key = _validate_key(key)
        with self.session_factory() as session:
            row = session.get(_kv_entry(), key)
            return None if row is None else bytes(row.value)

    def put_bytes(
        self, *, key: str, data: bytes, content_type: str | None = None
    ) -> None:
        key = _validate_key(key)
        entry = _kv_entry()
        now = datetime.now(UTC)
        with self.session_factory() as session:
            row = session.get(entry, key)
            if row is None:
                row = entry(
                    key=key, value=data, content_type=content_type, updated_at=now
                )
            else:
                row.value = data
                row.content_type = content_type
                row.updated_at = now
            session.add(row)
            session.commit()

    def exists(self, *, key: str) -> bool:
        key = _validate_key(key)
        with self.session_factory() as session:
            return session.get(_kv_entry(), key) is not None

    def delete(self, *, key: str) -> bool:
        key = _validate_key(key)
        entry = _kv_entry()
        with self.session_factory() as session:
            res = session.execute(delete(entry).where(entry.key == key))
            session.commit()
            return bool(res.rowcount)

    def list_keys(self, *, prefix: str = "") -> list[str]:
        entry = _kv_entry()
        stmt = select(entry.key).order_by(entry.key.asc())
        if prefix:
            stmt = stmt.where(entry.key.startswith(prefix, autoescape=True))
        with self.session_factory() as session:
            return [str(k) for k in session.execute(stmt).scalars().all()]


@dataclass(frozen=True)
class LocalFSBackend:
    root_dir: Path

    def _abs(self, key: str) -> Path:
        key = _validate_key(key)
        # One flat file per key; quoting keeps "/" and ".." inside the root.
        name = quote(key, safe="") + ".json"
        root = self.root_dir.resolve()
        p = (root / name).resolve()
        if p.parent != root:
            raise ValueError("key escapes store root")
        return p

    def get_bytes(self, *, key: str) -> bytes | None:
        p = self._abs(key)
        if not p.exists():
            return None
        return p.read_bytes()

    def put_bytes(
        self, *, key: str, data: bytes, content_type: str | None = None
    ) -> None:
        dst = self._abs(key)
        dst.parent.mkdir(parents=True, exist_ok=True)
        tmp = dst.with_suffix(dst.suffix + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(dst)

    def exists(self, *, key: str) -> bool:
        return self._abs(key).exists()

    def delete(self, *, key: str) -> bool:
        p = self._abs(key)
        if not p.is_file():
            return False
        p.unlink(missing_ok=True)
        return True

    def list_keys(self, *, prefix: str = "") -> list[str]:
        root = self.root_dir
        if not root.exists():
            return []
        keys: list[str] = []
        for p in root.iterdir():
            if not p.is_file() or not p.name.endswith(".json"):
                continue
            key = unquote(p.name[: -len(".json")])
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)


@dataclass(frozen=True)
class S3Backend:
    bucket: str
    prefix: str = ""
    region: str | None = None
    endpoint_url: str | None = None

    def _pfx(self) -> str:
        pfx = (self.prefix or "").lstrip("/")
        if pfx and not pfx.endswith("/"):
            pfx += "/"
        return pfx

    def _full_key(self, key: str) -> str:
        return f"{self._pfx()}{_validate_key(key)}"

    def _client(self):
        try:
            import boto3  # type: ignore
        except Exception as exc:  # noqa: BLE001
            raise RuntimeError(
                "S3 backend selected but boto3 is not installed. Install `boto3`."
            ) from exc
        return boto3.client(
            "s3", region_name=self.region, endpoint_url=self.endpoint_url
        )

    def get_bytes(self, *, key: str) -> bytes | None:
        client = self._client()
        try:
            obj = client.get_object(Bucket=self.bucket, Key=self._full_key(key))
        except client.exceptions.NoSuchKey:
            return None
        body = obj.get("Body")
        if body is None:
            raise RuntimeError("S3 get_object missing Body")
        return body.read()

    def put_bytes(
        self, *, key: str, data: bytes, content_type: str | None = None
    ) -> None:
        args = {"Bucket": self.bucket, "Key": self._full_key(key), "Body": data}
        if content_type:
            args["ContentType"] = content_type
        self._client().put_object(**args)

    def exists(self, *, key: str) -> bool:
        try:
            self._client().head_object(Bucket=self.bucket, Key=self._full_key(key))
        except Exception:  # noqa: BLE001
            return False
        return True

    def delete(self, *, key: str) -> bool:
        try:
            self._client().delete_object(Bucket=self.bucket, Key=self._full_key(key))
            return True
        except Exception:  # noqa: BLE001
            return False

    def list_keys(self, *, prefix: str = "") -> list[str]:
        pfx = self._pfx()
        paginator = self._client().get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{pfx}{prefix}"):
            for obj in page.get("Contents") or []:
                keys.append(str(obj["Key"])[len(pfx) :])
        return sorted(keys)


def build_kv_backend(settings: Settings) -> KVBackend:
    kind = settings.store_backend
    if kind == "s3":
        if not settings.store_s3_bucket:
            raise RuntimeError("QUESTBOARD_STORE_S3_BUCKET is required for s3 backend")
        return S3Backend(
            bucket=settings.store_s3_bucket,
            prefix=settings.store_s3_prefix or "",
            region=settings.store_s3_region or None,
            endpoint_url=settings.store_s3_endpoint_url or None,
        )
    if kind == "local":
        root = Path(settings.artifacts_dir) / "kv"
        root.mkdir(parents=True, exist_ok=True)
        return LocalFSBackend(root_dir=root)

    from questboard_api.db import SessionLocal

    return SqlKVBackend(session_factory=SessionLocal)


@lru_cache(maxsize=1)
def get_kv_backend() -> KVBackend:
    return build_kv_backend(Settings())


def reset_kv_backend_cache() -> None:
    get_kv_backend.cache_clear()
