from __future__ import annotations

import asyncio
import time
from collections.abc import Coroutine
from typing import Any, TypeVar

import structlog

from app.db.session import dispose_engine

T = TypeVar("T")
logger = structlog.get_logger(__name__)


async def _run_with_fresh_db_pool(job: Coroutine[Any, Any, T]) -> T:
    # Each asyncio.run() gets a new loop, so pooled asyncpg connections from a
    # previous loop must never be reused.
    await dispose_engine()
    started = time.monotonic()
    try:
        return await job
    finally:
        logger.debug(
            "async_job_completed",
            job=getattr(job, "__qualname__", type(job).__name__),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        await dispose_engine()


def run_async_job(job: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(_run_with_fresh_db_pool(job))
