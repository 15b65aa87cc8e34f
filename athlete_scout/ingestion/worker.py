"""
Remote Worker Module
====================

arq tasks for running scrape jobs out of process, with Redis as the queue
backend. Each task runs the same collect-then-store unit of work as the
in-process Scheduler.
"""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from arq import create_pool
from arq.connections import RedisSettings
from arq.jobs import Job as ArqJob

from athlete_scout.ingestion.adapters import create_default_adapters
from athlete_scout.ingestion.adapters.base import SearchOptions
from athlete_scout.ingestion.aggregator import Aggregator
from athlete_scout.ingestion.fetcher import Fetcher
from athlete_scout.ingestion.jobs import profile_summary, validate_athlete_name
from athlete_scout.ingestion.registry import get_default_registry
from athlete_scout.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

TASK_NAME = "scrape_athlete"


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from environment."""
    return RedisSettings(
        host=os.environ.get("REDIS_HOST", "localhost"),
        port=int(os.environ.get("REDIS_PORT", "6379")),
        database=int(os.environ.get("REDIS_DB", "0")),
        password=os.environ.get("REDIS_PASSWORD") or None,
    )


async def startup(ctx: dict[str, Any]) -> None:
    """Create the collaborators shared by every task on this worker."""
    fetcher = Fetcher(registry=get_default_registry())
    ctx["fetcher"] = fetcher
    ctx["aggregator"] = Aggregator(create_default_adapters(fetcher))
    ctx["profile_service"] = ProfileService()
    logger.info("Scrape worker started")


async def shutdown(ctx: dict[str, Any]) -> None:
    fetcher: Fetcher | None = ctx.get("fetcher")
    if fetcher is not None:
        await fetcher.aclose()
    logger.info("Scrape worker stopped")


async def scrape_athlete(
    ctx: dict[str, Any],
    athlete_name: str,
    options: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Collect and store one athlete.

    Args:
        ctx: arq context holding the aggregator and profile service
        athlete_name: Athlete to collect
        options: Search options (state, sport, year)

    Returns:
        Result dict with status, timing and the stored profile summary
    """
    job_id = ctx.get("job_id", str(uuid4()))
    started_at = datetime.now(UTC)
    result: dict[str, Any] = {
        "job_id": job_id,
        "athlete_name": athlete_name,
        "status": "running",
        "started_at": started_at.isoformat(),
        "completed_at": None,
        "profile": None,
        "error": None,
    }

    try:
        name = validate_athlete_name(athlete_name)
        candidate = await ctx["aggregator"].collect(name, SearchOptions.from_dict(options))
        profile = await ctx["profile_service"].store(candidate)
        result["profile"] = profile_summary(profile)
        result["status"] = "completed"
    except Exception as e:
        logger.exception(f"Remote scrape failed for {athlete_name}")
        result["status"] = "failed"
        result["error"] = str(e)
    finally:
        result["completed_at"] = datetime.now(UTC).isoformat()

    return result


async def enqueue_remote_scrape(
    athlete_name: str,
    options: dict[str, Any] | None = None,
) -> str:
    """
    Enqueue a scrape on the Redis-backed worker.

    Returns:
        arq job ID
    """
    name = validate_athlete_name(athlete_name)
    redis = await create_pool(get_redis_settings())
    try:
        job = await redis.enqueue_job(TASK_NAME, name, options or {})
    finally:
        await redis.close()
    if job is None:
        raise RuntimeError(f"Remote scrape for {name} was not enqueued")
    return job.job_id


async def get_remote_job_status(job_id: str) -> dict[str, Any] | None:
    """
    Get the status of a remote scrape job.

    Returns:
        Job info dict, or None if not found
    """
    redis = await create_pool(get_redis_settings())
    try:
        job = ArqJob(job_id, redis)
        status = await job.status()
        if status.value == "not_found":
            return None
        info = await job.result_info()
    finally:
        await redis.close()

    return {
        "job_id": job_id,
        "status": status.value,
        "result": info.result if info else None,
    }


class WorkerSettings:
    """arq worker settings."""

    functions = [scrape_athlete]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings()
    max_jobs = 3
    job_timeout = 600  # 10 minutes
    keep_result = 86400  # 24 hours
