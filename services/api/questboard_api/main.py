from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from questboard_api.core.config import Settings
from questboard_api.core.logging import configure_logging
from questboard_api.kv_backend import get_kv_backend


logger = logging.getLogger("questboard_api.http")


def _parse_csv(value: str) -> list[str]:
    raw = str(value or "").strip()
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _error_response(
    request: Request,
    *,
    status_code: int,
    error: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        resp.headers["X-Request-Id"] = str(request_id)
    return resp


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = str(first.get("msg") or "invalid value")
    return f"{loc}: {msg}" if loc else msg


def _create_schema() -> None:
    # Local/dev databases get the schema without running Alembic.
    from questboard_api import models  # noqa: F401
    from questboard_api.db import Base, engine

    Base.metadata.create_all(engine)


def create_app(*, settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if settings.store_backend == "sql" and settings.db_auto_create:
            _create_schema()
        yield

    app = FastAPI(
        title="Questboard API",
        version="0.1.0",
        openapi_url="/api/openapi.json",
        docs_url="/docs",
        lifespan=lifespan,
    )

    if settings.trust_proxy_headers:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    allowed_hosts = _parse_csv(settings.allowed_hosts) or ["*"]
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

    cors_origins = _parse_csv(settings.cors_allowed_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("x-request-id") or f"req_{uuid4().hex}"
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001
            duration_ms = (time.perf_counter() - start) * 1000.0
            logger.error(
                "%s %s -> 500",
                request.method,
                request.url.path,
                exc_info=True,
                extra={
                    "fields": {
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "status": 500,
                        "duration_ms": round(duration_ms, 2),
                    }
                },
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000.0
        response.headers["X-Request-Id"] = request_id
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "fields": {
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                }
            },
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception(request: Request, exc: StarletteHTTPException):
        return _error_response(
            request,
            status_code=exc.status_code,
            error=str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return _error_response(
            request, status_code=400, error=_validation_message(exc)
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        _ = exc
        return _error_response(request, status_code=500, error="Internal server error")

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "store_backend": settings.store_backend}

    @app.get("/api/ready")
    def ready() -> dict[str, object]:
        db_ok = True
        store_ok = False
        db_err: str | None = None
        store_err: str | None = None

        if settings.store_backend == "sql":
            try:
                from questboard_api.db import SessionLocal

                with SessionLocal() as session:
                    session.execute(text("SELECT 1"))
            except Exception as exc:  # noqa: BLE001
                db_ok = False
                db_err = str(exc)[:400]

        try:
            get_kv_backend().exists(key="ops:ready")
            store_ok = True
        except Exception as exc:  # noqa: BLE001
            store_err = str(exc)[:400]

        return {
            "status": "ok" if (db_ok and store_ok) else "fail",
            "db": {"ok": db_ok, "error": db_err},
            "store": {"ok": store_ok, "error": store_err},
        }

    from questboard_api.routers import courses, leaderboard, profiles, scores, shop

    app.include_router(leaderboard.router)
    app.include_router(scores.router)
    app.include_router(profiles.router)
    app.include_router(shop.router)
    app.include_router(courses.router)

    # Bare OPTIONS requests; real CORS preflights are answered by CORSMiddleware.
    @app.options("/api/leaderboard", include_in_schema=False)
    @app.options("/api/submit-score", include_in_schema=False)
    def _options() -> Response:
        return Response(status_code=200, headers={"Allow": "GET, POST, OPTIONS"})

    return app


app = create_app()
