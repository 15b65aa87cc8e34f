"""Scouting service for Athlete Scout.

Single entry point for callers outside the pipeline: submits scrape jobs,
reports their progress and serves the stored profile catalog.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from athlete_scout.core.enums import JobPriority, JobType
from athlete_scout.core.schema import AthleteProfile, DataQualityStats
from athlete_scout.ingestion.adapters import create_default_adapters
from athlete_scout.ingestion.adapters.base import SearchOptions
from athlete_scout.ingestion.aggregator import Aggregator
from athlete_scout.ingestion.fetcher import Fetcher
from athlete_scout.ingestion.jobs import Scheduler, coerce_priority, validate_athlete_name
from athlete_scout.ingestion.registry import SourceRegistry, get_default_registry
from athlete_scout.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_scouting_service(
    registry: SourceRegistry | None = None,
    profile_service: ProfileService | None = None,
    max_concurrency: int | None = None,
) -> AsyncIterator[ScoutingService]:
    """
    Wire the full pipeline against the configured sources.

    Expired jobs are purged hourly in the background. The fetcher's HTTP
    client is closed and in-flight jobs are awaited on exit.

    Usage:
        async with open_scouting_service() as service:
            job_id = await service.enqueue_scrape("Test Athlete")
    """
    registry = registry or get_default_registry()
    global_config = registry.global_config
    profile_service = profile_service or ProfileService()

    async with Fetcher(registry=registry) as fetcher:
        scheduler = Scheduler(
            Aggregator(create_default_adapters(fetcher)),
            profile_service,
            max_concurrency=max_concurrency or global_config.max_concurrency,
            retention_hours=global_config.job_retention_hours,
        )
        scheduler.start_maintenance()
        try:
            yield ScoutingService(scheduler, profile_service)
        finally:
            await scheduler.shutdown()


class ScoutingService:
    """Facade over the job scheduler and the profile store."""

    def __init__(self, scheduler: Scheduler, profile_service: ProfileService):
        self.scheduler = scheduler
        self.profile_service = profile_service

    async def enqueue_scrape(
        self,
        athlete_name: str,
        options: dict[str, Any] | None = None,
        priority: JobPriority | str = JobPriority.NORMAL,
    ) -> str:
        """
        Submit a single-athlete scrape.

        Returns:
            Job ID

        Raises:
            ValidationError: If the athlete name is invalid
        """
        return await self.scheduler.enqueue(
            {"athlete_name": athlete_name, "options": options or {}},
            priority=priority,
        )

    async def enqueue_batch(
        self,
        athletes: list[str | dict[str, Any]],
        options: dict[str, Any] | None = None,
        priority: JobPriority | str = JobPriority.NORMAL,
    ) -> list[str]:
        """
        Submit one job per athlete, sharing a batch id.

        Entries are names, or dicts with "name" and optional "state"/"sport"/
        "year" overriding the shared options.

        Returns:
            Job IDs in input order

        Raises:
            ValidationError: If any athlete name or year is invalid; no job is
                created
        """
        requests: list[dict[str, Any]] = []
        for entry in athletes:
            entry_options = dict(options or {})
            if isinstance(entry, dict):
                name = entry.get("name") or entry.get("athlete_name")
                entry_options.update(
                    {k: entry[k] for k in ("state", "sport", "year") if entry.get(k)}
                )
            else:
                name = entry
            requests.append({"athlete_name": name, "options": entry_options})

        # Validate the whole batch before queueing any of it
        coerce_priority(priority)
        for request in requests:
            validate_athlete_name(request["athlete_name"])
            SearchOptions.from_dict(request["options"])

        batch_id = str(uuid4())
        job_ids = [
            await self.scheduler.enqueue(
                request, priority=priority, job_type=JobType.BATCH, batch_id=batch_id
            )
            for request in requests
        ]
        logger.info(f"Queued batch {batch_id} with {len(job_ids)} athletes")
        return job_ids

    def get_job_status(self, job_id: str) -> dict[str, Any]:
        """Status, progress and, when present, result and error of a job."""
        job = self.scheduler.status(job_id)
        if job is None:
            return {"error": "Job not found"}

        status: dict[str, Any] = {
            "id": job.id,
            "status": job.status.value,
            "progress": job.progress,
        }
        if job.result is not None:
            status["result"] = job.result
        if job.error is not None:
            status["error"] = job.error
        return status

    def cancel_job(self, job_id: str) -> dict[str, Any]:
        result = self.scheduler.cancel(job_id)
        if result.ok:
            return {"ok": True, "status": result.status.value if result.status else None}
        return {"ok": False, "error": result.error}

    async def retry_failed_jobs(self) -> dict[str, int]:
        return {"retried": await self.scheduler.retry_failed()}

    def get_queue_stats(self) -> dict[str, int]:
        return self.scheduler.stats()

    def find_athlete(self, name: str, sport: str | None = None) -> AthleteProfile | None:
        return self.profile_service.find(name, sport)

    def search_athletes(
        self,
        query: str | None = None,
        filters: dict[str, str | None] | None = None,
        sort: str = "-confidence",
        limit: int = 50,
    ) -> list[AthleteProfile]:
        return self.profile_service.search(query, filters, sort=sort, limit=limit)

    def get_data_quality_stats(self) -> DataQualityStats:
        return self.profile_service.get_data_quality_stats()

    async def refresh_stale_athletes(
        self,
        hours: int = 24,
        priority: JobPriority | str = JobPriority.LOW,
        limit: int | None = None,
    ) -> list[str]:
        """
        Queue refresh jobs for profiles not updated within ``hours``.

        Returns:
            Job IDs of the queued refreshes
        """
        stale = self.profile_service.list_stale_profiles(hours, limit=limit)
        job_ids = [
            await self.scheduler.enqueue(
                {"athlete_name": p.name, "options": {"sport": p.sport}},
                priority=priority,
            )
            for p in stale
        ]
        logger.info(f"Queued {len(job_ids)} stale athlete refreshes")
        return job_ids
