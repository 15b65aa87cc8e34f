"""Exception hierarchy for the scouting pipeline."""

from __future__ import annotations


class ScoutError(Exception):
    """Base class for all pipeline errors."""


class NetworkError(ScoutError):
    """Raised when a fetch exhausts its retries."""

    def __init__(
        self,
        source: str,
        url: str,
        attempts: int,
        last_error: str | None = None,
    ):
        self.source = source
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Fetching {url} from '{source}' failed after {attempts} attempts: "
            f"{last_error or 'unknown error'}"
        )


class ValidationError(ScoutError):
    """Raised when a scrape request is rejected before a job is created."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class StorageError(ScoutError):
    """Raised when persisting an athlete profile fails."""


class StaleProfileError(StorageError):
    """Raised when a profile changed between read and write."""

    def __init__(self, name_lower: str, sport: str, expected_version: int):
        self.name_lower = name_lower
        self.sport = sport
        self.expected_version = expected_version
        super().__init__(
            f"Profile ({name_lower!r}, {sport!r}) is no longer at version {expected_version}"
        )


class JobNotFoundError(ScoutError):
    """Raised when a job id is unknown to the scheduler."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class InvalidTransitionError(ScoutError):
    """Raised when a job status change is not allowed by the state machine."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Cannot move job {job_id} from {current} to {target}")
