from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)

CheckResult = dict[str, Any]


def _failed(check_name: str, error_code: str, exc: Exception | None = None) -> CheckResult:
    # Raw exception text may carry DSNs or credentials, so only the type is logged.
    logger.warning(
        "health_check_failed",
        check=check_name,
        error=error_code,
        exc_type=type(exc).__name__ if exc is not None else None,
    )
    return {"status": "failed", "error": error_code}


async def _check_database() -> CheckResult:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        return _failed("database", "database_unavailable", exc)
    return {"status": "ok"}


async def _check_redis() -> CheckResult:
    client = Redis.from_url(get_settings().redis_url)
    try:
        if await client.ping() is not True:
            return _failed("redis", "redis_unexpected_reply")
    except Exception as exc:
        return _failed("redis", "redis_unavailable", exc)
    finally:
        await client.aclose()
    return {"status": "ok"}


def _check_celery_worker_sync() -> CheckResult:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = (inspector.ping() if inspector is not None else None) or {}
    except Exception as exc:
        return _failed("celery", "celery_unavailable", exc)
    if not replies:
        return _failed("celery", "celery_no_workers")
    return {"status": "ok", "workers": len(replies)}


async def _check_celery_worker() -> CheckResult:
    return await asyncio.to_thread(_check_celery_worker_sync)


async def _run_checks(checks: dict[str, Callable[[], Awaitable[CheckResult]]]) -> dict[str, CheckResult]:
    results = await asyncio.gather(*(check() for check in checks.values()))
    return dict(zip(checks.keys(), results, strict=True))


def _report(checks: dict[str, CheckResult], *, ok_status: str, failed_status: str) -> JSONResponse:
    passed = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if passed else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_status if passed else failed_status, "checks": checks},
    )


@router.get("/health")
async def health() -> JSONResponse:
    checks = await _run_checks(
        {
            "database": _check_database,
            "redis": _check_redis,
            "celery": _check_celery_worker,
        }
    )
    return _report(checks, ok_status="ok", failed_status="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    """Readiness covers the stores requests depend on; workers only affect /health."""
    checks = await _run_checks({"database": _check_database, "redis": _check_redis})
    return _report(checks, ok_status="ready", failed_status="not_ready")


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}
