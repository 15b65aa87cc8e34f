"""
Scrape Jobs Module
==================

In-process job queue that runs one collect-then-store unit of work per
athlete under bounded concurrency and priority ordering.

Job lifecycle:
    queued -> running -> completed | failed | cancelled
    queued -> cancelled
    failed -> queued (retry only)
"""

from __future__ import annotations

import asyncio
import bisect
import itertools
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from athlete_scout.core.enums import JobPriority, JobStatus, JobType
from athlete_scout.core.errors import InvalidTransitionError, JobNotFoundError, ValidationError
from athlete_scout.ingestion.adapters.base import SearchOptions

if TYPE_CHECKING:
    from athlete_scout.core.schema import AthleteProfile, CandidateProfile

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
DEFAULT_MAX_CONCURRENCY = 3
DEFAULT_RETENTION_HOURS = 24

# Progress checkpoints reported while a job runs
PROGRESS_STARTED = 25
PROGRESS_COLLECTED = 75
PROGRESS_DONE = 100

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.RUNNING, JobStatus.CANCELLED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}),
    JobStatus.FAILED: frozenset({JobStatus.QUEUED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


class Collector(Protocol):
    async def collect(
        self, athlete_name: str, options: SearchOptions | None = None
    ) -> CandidateProfile: ...


class ProfileStore(Protocol):
    async def store(self, candidate: CandidateProfile) -> AthleteProfile: ...


def _utc_now() -> datetime:
    return datetime.now(UTC)


def validate_athlete_name(name: Any) -> str:
    """
    Validate an athlete name for a scrape request.

    Returns:
        The trimmed name

    Raises:
        ValidationError: If the name is empty, too long, or has no letters
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("athlete_name", "must be a non-empty string")
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError("athlete_name", f"must be at most {MAX_NAME_LENGTH} characters")
    if not re.search(r"[^\W\d_]", name):
        raise ValidationError("athlete_name", "must contain at least one letter")
    return name


def coerce_priority(priority: JobPriority | str) -> JobPriority:
    try:
        return JobPriority(priority)
    except ValueError as e:
        raise ValidationError("priority", f"unknown priority {priority!r}") from e


@dataclass
class Job:
    """A scrape request and its lifecycle state."""

    payload: dict[str, Any]
    priority: JobPriority = JobPriority.NORMAL
    type: JobType = JobType.SINGLE
    id: str = field(default_factory=lambda: str(uuid4()))
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    retry_count: int = 0
    batch_id: str | None = None
    seq: int = 0

    @property
    def athlete_name(self) -> str:
        return self.payload["athlete_name"]

    @property
    def sort_key(self) -> tuple[int, int]:
        """Dispatch order: priority tier, then enqueue order."""
        return (self.priority.rank, self.seq)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "type": self.type.value,
            "payload": self.payload,
            "priority": self.priority.value,
            "status": self.status.value,
            "progress": self.progress,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result,
            "error": self.error,
            "retry_count": self.retry_count,
            "batch_id": self.batch_id,
        }


@dataclass
class JobActionResult:
    """Outcome of a job control operation."""

    ok: bool
    job_id: str
    status: JobStatus | None = None
    error: str | None = None


def profile_summary(profile: AthleteProfile) -> dict[str, Any]:
    """Job result payload for a stored profile."""
    return {
        "athlete_id": str(profile.id),
        "name": profile.name,
        "sport": profile.sport,
        "version": profile.metadata.version,
        "data_quality": profile.metadata.data_quality,
        "confidence": profile.metadata.confidence,
        "sources_used": list(profile.metadata.sources_used),
    }


class Scheduler:
    """
    Bounded, priority-ordered job queue.

    Dispatches queued jobs while fewer than ``max_concurrency`` workers are
    active; a finishing worker immediately dispatches the next job. Priority
    only affects dispatch order; running jobs complete in any order.

    Example:
        >>> scheduler = Scheduler(aggregator, profile_service)
        >>> job_id = await scheduler.enqueue({"athlete_name": "Test Athlete"})
        >>> job = await scheduler.wait_for(job_id)
    """

    def __init__(
        self,
        aggregator: Collector,
        profile_service: ProfileStore,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        retention_hours: int = DEFAULT_RETENTION_HOURS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.aggregator = aggregator
        self.profile_service = profile_service
        self.max_concurrency = max_concurrency
        self.retention = timedelta(hours=retention_hours)
        self._clock = clock

        self._jobs: dict[str, Job] = {}
        self._queue: list[Job] = []
        self._seq = itertools.count(1)
        self._active_workers = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._done: dict[str, asyncio.Event] = {}
        self._maintenance: asyncio.Task[None] | None = None

    @property
    def active_workers(self) -> int:
        return self._active_workers

    @property
    def maintenance_running(self) -> bool:
        return self._maintenance is not None and not self._maintenance.done()

    # =========================================================================
    # State machine
    # =========================================================================

    def _transition(self, job: Job, target: JobStatus) -> None:
        """
        Move a job to a new status.

        Raises:
            InvalidTransitionError: If the state machine forbids the move
        """
        if target not in ALLOWED_TRANSITIONS[job.status]:
            raise InvalidTransitionError(job.id, job.status.value, target.value)

        job.status = target
        now = self._clock()
        if target is JobStatus.RUNNING:
            job.started_at = now
        elif target.is_terminal:
            job.completed_at = now
            self._done_event(job.id).set()

    def _done_event(self, job_id: str) -> asyncio.Event:
        event = self._done.get(job_id)
        if event is None:
            event = self._done[job_id] = asyncio.Event()
        return event

    def _get(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    # =========================================================================
    # Public operations
    # =========================================================================

    async def enqueue(
        self,
        payload: dict[str, Any],
        priority: JobPriority | str = JobPriority.NORMAL,
        job_type: JobType = JobType.SINGLE,
        batch_id: str | None = None,
    ) -> str:
        """
        Accept a scrape request.

        Args:
            payload: {"athlete_name": ..., "options": {"state", "sport", "year"}}
            priority: high, normal or low
            job_type: single or batch
            batch_id: Shared id of the jobs from one batch request

        Returns:
            The new job id; the job is queued on return

        Raises:
            ValidationError: If the athlete name, priority or year is invalid
        """
        name = validate_athlete_name(payload.get("athlete_name"))
        job = Job(
            payload={
                "athlete_name": name,
                "options": SearchOptions.from_dict(payload.get("options")).to_dict(),
            },
            priority=coerce_priority(priority),
            type=job_type,
            batch_id=batch_id,
            created_at=self._clock(),
            seq=next(self._seq),
        )
        self._jobs[job.id] = job
        self._done_event(job.id)
        bisect.insort(self._queue, job, key=lambda j: j.sort_key)
        logger.info(f"Queued job {job.id} for {name} ({job.priority.value})")

        self._dispatch()
        return job.id

    def status(self, job_id: str) -> Job | None:
        """Get a job by id, or None if unknown or purged."""
        return self._jobs.get(job_id)

    def cancel(self, job_id: str) -> JobActionResult:
        """
        Cancel a queued or running job.

        A queued job is removed from the queue and never dispatched. A running
        job is marked cancelled; its in-flight requests finish and their
        results are discarded.
        """
        try:
            job = self._get(job_id)
            was_queued = job.status is JobStatus.QUEUED
            self._transition(job, JobStatus.CANCELLED)
        except (JobNotFoundError, InvalidTransitionError) as e:
            return JobActionResult(ok=False, job_id=job_id, error=str(e))

        if was_queued and job in self._queue:
            self._queue.remove(job)
        logger.info(f"Cancelled job {job_id}")
        return JobActionResult(ok=True, job_id=job_id, status=job.status)

    async def retry_failed(self) -> int:
        """
        Re-queue every failed job.

        Returns:
            Number of jobs re-queued
        """
        count = 0
        for job in list(self._jobs.values()):
            if job.status is not JobStatus.FAILED:
                continue
            self._transition(job, JobStatus.QUEUED)
            job.retry_count += 1
            job.error = None
            job.result = None
            job.progress = 0
            job.started_at = None
            job.completed_at = None
            job.seq = next(self._seq)
            self._done[job.id] = asyncio.Event()
            bisect.insort(self._queue, job, key=lambda j: j.sort_key)
            count += 1

        if count:
            logger.info(f"Re-queued {count} failed jobs")
            self._dispatch()
        return count

    def list_jobs(
        self,
        status: JobStatus | str | None = None,
        job_type: JobType | str | None = None,
    ) -> list[Job]:
        """List jobs, newest first, optionally filtered by status and type."""
        jobs = list(self._jobs.values())
        if status is not None:
            jobs = [j for j in jobs if j.status is JobStatus(status)]
        if job_type is not None:
            jobs = [j for j in jobs if j.type is JobType(job_type)]
        return sorted(jobs, key=lambda j: (j.created_at, j.seq), reverse=True)

    def stats(self) -> dict[str, int]:
        """Job counts per status plus worker pool figures."""
        counts = {s.value: 0 for s in JobStatus}
        for job in self._jobs.values():
            counts[job.status.value] += 1
        return {
            **counts,
            "active_workers": self._active_workers,
            "max_concurrency": self.max_concurrency,
            "queue_length": len(self._queue),
            "total": len(self._jobs),
        }

    def purge_expired(self, now: datetime | None = None) -> int:
        """
        Remove terminal jobs that finished more than the retention window ago.

        Returns:
            Number of purged jobs
        """
        cutoff = (now or self._clock()) - self.retention
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.status.is_terminal and job.completed_at is not None and job.completed_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
            self._done.pop(job_id, None)
        if expired:
            logger.info(f"Purged {len(expired)} expired jobs")
        return len(expired)

    def start_maintenance(self, interval: float = 3600) -> None:
        """Purge expired jobs every ``interval`` seconds in the background."""
        if self._maintenance is not None and not self._maintenance.done():
            return

        async def sweep() -> None:
            while True:
                await asyncio.sleep(interval)
                self.purge_expired()

        self._maintenance = asyncio.get_running_loop().create_task(sweep())

    async def wait_for(self, job_id: str, timeout: float | None = None) -> Job:
        """
        Wait until a job reaches a terminal state.

        Raises:
            JobNotFoundError: If the job is unknown
            TimeoutError: If the timeout expires first
        """
        job = self._get(job_id)
        if not job.status.is_terminal:
            await asyncio.wait_for(self._done_event(job_id).wait(), timeout)
        return job

    async def join(self) -> None:
        """Wait until the queue is drained and no worker is active."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Stop the maintenance sweep and wait for in-flight workers."""
        if self._maintenance is not None:
            self._maintenance.cancel()
            try:
                await self._maintenance
            except asyncio.CancelledError:
                pass
            self._maintenance = None
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _dispatch(self) -> None:
        """Start workers for queued jobs while slots are free."""
        loop = asyncio.get_running_loop()
        while self._queue and self._active_workers < self.max_concurrency:
            job = self._queue.pop(0)
            self._active_workers += 1
            task = loop.create_task(self._run(job), name=f"scrape-job-{job.id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, job: Job) -> None:
        try:
            await self._execute(job)
        finally:
            self._active_workers -= 1
            self._dispatch()

    async def _execute(self, job: Job) -> None:
        """Run one collect-then-store unit of work."""
        if job.status is not JobStatus.QUEUED:
            return

        self._transition(job, JobStatus.RUNNING)
        job.progress = PROGRESS_STARTED
        logger.info(f"Running job {job.id} for {job.athlete_name}")

        try:
            options = SearchOptions.from_dict(job.payload.get("options"))
            candidate = await self.aggregator.collect(job.athlete_name, options)
            if job.status is JobStatus.CANCELLED:
                logger.info(f"Job {job.id} cancelled during collection, discarding results")
                return
            job.progress = PROGRESS_COLLECTED

            profile = await self.profile_service.store(candidate)
            if job.status is JobStatus.CANCELLED:
                logger.info(f"Job {job.id} cancelled during storage")
                return

            job.result = profile_summary(profile)
            job.progress = PROGRESS_DONE
            self._transition(job, JobStatus.COMPLETED)
            logger.info(f"Completed job {job.id} for {job.athlete_name}")
        except asyncio.CancelledError:
            if job.status is JobStatus.RUNNING:
                self._transition(job, JobStatus.CANCELLED)
            raise
        except Exception as e:
            logger.exception(f"Job {job.id} failed for {job.athlete_name}")
            if job.status is JobStatus.RUNNING:
                job.error = str(e) or e.__class__.__name__
                self._transition(job, JobStatus.FAILED)
