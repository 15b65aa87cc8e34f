"""Profile service for Athlete Scout.

Reconciles candidate profiles with stored state and serves queries over
the profile catalog.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from athlete_scout.core.enums import ExportFormat
from athlete_scout.core.errors import StorageError
from athlete_scout.core.schema import (
    MAX_STORED_HIGHLIGHTS,
    AthleteProfile,
    CandidateProfile,
    DataQualityStats,
    ProfileMetadata,
    RecruitingData,
)
from athlete_scout.core.scoring import HIGH_QUALITY_THRESHOLD, calculate_confidence
from athlete_scout.db.engine import get_session_factory
from athlete_scout.db.repositories import AthleteProfileRepository
from athlete_scout.ingestion.aggregator import dedupe_events, dedupe_highlights
from athlete_scout.ingestion.normalizer import ProfileNormalizer

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "name",
    "sport",
    "position",
    "school",
    "data_quality",
    "confidence",
    "sources_used",
    "stats_count",
    "highlights_count",
    "version",
    "last_updated",
]


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _union(first: list[str], second: list[str]) -> list[str]:
    """Order-preserving union."""
    return list(dict.fromkeys([*first, *second]))


def merge_stat_maxima(existing: dict[str, float], new: dict[str, float]) -> dict[str, float]:
    """Element-wise maximum of two stat maps."""
    merged = dict(existing)
    for key, value in new.items():
        merged[key] = max(merged[key], value) if key in merged else value
    return merged


def merge_stored_recruiting(existing: RecruitingData, new: RecruitingData) -> RecruitingData:
    """Newly supplied recruiting fields override stored ones."""
    updates: dict[str, Any] = {
        name: value
        for name in ("rating", "stars", "ranking", "offers")
        if (value := getattr(new, name)) is not None
    }
    updates["sources"] = _union(existing.sources, new.sources)
    return existing.model_copy(update=updates)


def build_profile(candidate: CandidateProfile, now: datetime) -> AthleteProfile:
    """Create a first-version profile from a normalized candidate."""
    profile = AthleteProfile(
        name=candidate.name,
        sport=candidate.sport,
        position=candidate.position,
        school=candidate.school,
        stats=dict(candidate.stats),
        highlights=dedupe_highlights(candidate.highlights, limit=MAX_STORED_HIGHLIGHTS),
        recruiting_data=candidate.recruiting_data,
        track_data=dedupe_events(candidate.track_data),
        metadata=ProfileMetadata(
            sources_used=_union([], candidate.sources_used),
            data_quality=candidate.data_quality,
            version=1,
            last_updated=candidate.collected_at,
        ),
        created_at=now,
        updated_at=now,
    )
    profile.metadata.confidence = calculate_confidence(profile, now=now)
    return profile


def merge_profiles(
    existing: AthleteProfile, candidate: CandidateProfile, now: datetime
) -> AthleteProfile:
    """
    Merge a normalized candidate into a stored profile.

    Returns:
        New AthleteProfile with version incremented and confidence recomputed
    """
    metadata = ProfileMetadata(
        sources_used=_union(existing.metadata.sources_used, candidate.sources_used),
        data_quality=candidate.data_quality,
        version=existing.metadata.version + 1,
        last_updated=candidate.collected_at,
    )
    merged = existing.model_copy(
        update={
            "position": candidate.position or existing.position,
            "school": candidate.school or existing.school,
            "stats": merge_stat_maxima(existing.stats, candidate.stats),
            "highlights": dedupe_highlights(
                [*candidate.highlights, *existing.highlights], limit=MAX_STORED_HIGHLIGHTS
            ),
            "recruiting_data": merge_stored_recruiting(
                existing.recruiting_data, candidate.recruiting_data
            ),
            "track_data": dedupe_events([*existing.track_data, *candidate.track_data]),
            "metadata": metadata,
            "updated_at": now,
        }
    )
    merged.metadata.confidence = calculate_confidence(merged, now=now)
    return merged


class ProfileService:
    """
    Service for storing and querying athlete profiles.

    Writes for one (name_lower, sport) identity are serialized by a
    per-identity lock and guarded by a version check in the repository.
    Database work runs in a worker thread so the event loop keeps serving
    other jobs.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        normalizer: ProfileNormalizer | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the profile service.

        Args:
            session_factory: SQLAlchemy session factory (defaults to the global one)
            normalizer: Normalizer applied before every store
            clock: Source of the current time
        """
        self._session_factory = session_factory
        self.normalizer = normalizer or ProfileNormalizer()
        self._clock = clock
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @property
    def lock_count(self) -> int:
        """Number of identities with a write in progress or waiting."""
        return len(self._locks)

    @asynccontextmanager
    async def _identity_lock(self, key: tuple[str, str]) -> AsyncIterator[None]:
        """Hold the write lock of one identity, dropping it when unused."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    # =========================================================================
    # Writes
    # =========================================================================

    async def store(self, candidate: CandidateProfile) -> AthleteProfile:
        """
        Upsert a candidate profile.

        Args:
            candidate: Fused candidate from one aggregation pass.

        Returns:
            The stored profile, read back after commit.

        Raises:
            StorageError: If the write fails or the profile changed concurrently.
        """
        normalized = self.normalizer.normalize(candidate)
        if not normalized.name:
            raise StorageError(f"Cannot store a profile without a name: {candidate.name!r}")

        key = (normalized.name.lower(), normalized.sport)
        async with self._identity_lock(key):
            try:
                return await asyncio.to_thread(self._store_sync, normalized)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to store profile {normalized.name}: {e}") from e

    def _store_sync(self, candidate: CandidateProfile) -> AthleteProfile:
        now = self._clock()
        name_lower = candidate.name.lower()

        with self.session_factory() as session:
            repo = AthleteProfileRepository(session)
            existing = repo.get_by_identity(name_lower, candidate.sport)
            if existing is None:
                profile = repo.create(build_profile(candidate, now))
                logger.info(f"Stored new athlete profile: {profile.name} ({profile.sport})")
            else:
                merged = merge_profiles(existing, candidate, now)
                profile = repo.update(merged, expected_version=existing.metadata.version)
                logger.info(
                    f"Updated athlete profile: {profile.name} ({profile.sport}) "
                    f"v{profile.metadata.version}"
                )
            session.commit()

        with self.session_factory() as session:
            stored = AthleteProfileRepository(session).get_by_identity(name_lower, candidate.sport)
        if stored is None or stored.metadata.version != profile.metadata.version:
            raise StorageError(f"Profile {profile.name} not visible after write")
        return stored

    def cleanup_stale_profiles(self, days_old: int = 90, max_confidence: int = 50) -> int:
        """
        Delete old low-confidence profiles.

        Args:
            days_old: Only profiles not updated for this many days are considered.
            max_confidence: Only profiles with confidence below this are deleted.

        Returns:
            Number of deleted profiles.
        """
        cutoff = self._clock() - timedelta(days=days_old)
        try:
            with self.session_factory() as session:
                deleted = AthleteProfileRepository(session).delete_stale(cutoff, max_confidence)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to clean up profiles: {e}") from e
        logger.info(f"Cleaned up {deleted} stale athlete profiles")
        return deleted

    # =========================================================================
    # Reads
    # =========================================================================

    def find(self, name: str, sport: str | None = None) -> AthleteProfile | None:
        """
        Find a profile by name, optionally for one sport.

        Returns:
            The profile, or None if not stored.
        """
        name_lower = self.normalizer.normalize_name(name).lower()
        if not name_lower:
            return None
        sport_key = self.normalizer.normalize_sport(sport) if sport else None
        with self.session_factory() as session:
            return AthleteProfileRepository(session).find_by_name(name_lower, sport_key)

    def search(
        self,
        query: str | None = None,
        filters: dict[str, str | None] | None = None,
        sort: str = "-confidence",
        limit: int = 50,
    ) -> list[AthleteProfile]:
        """
        Search stored profiles.

        Args:
            query: Substring of the athlete name or school.
            filters: Optional sport, position and school filters.
            sort: Sort field, "-" prefix for descending (default "-confidence").
            limit: Maximum number of results.

        Returns:
            Matching profiles.
        """
        filters = filters or {}
        sport = self.normalizer.normalize_sport(filters["sport"]) if filters.get("sport") else None
        position = filters.get("position")
        if position:
            position = self.normalizer.normalize_position(position, sport or "football")

        with self.session_factory() as session:
            return AthleteProfileRepository(session).search(
                query=query.strip() if query else None,
                sport=sport,
                position=position,
                school=filters.get("school"),
                sort=sort,
                limit=limit,
            )

    def list_stale_profiles(self, hours: int, limit: int | None = None) -> list[AthleteProfile]:
        """Profiles not updated within the last ``hours`` hours, oldest first."""
        cutoff = self._clock() - timedelta(hours=hours)
        with self.session_factory() as session:
            return AthleteProfileRepository(session).list_updated_before(cutoff, limit=limit)

    def get_data_quality_stats(self) -> DataQualityStats:
        """Catalog-wide quality and confidence summary."""
        with self.session_factory() as session:
            rows = AthleteProfileRepository(session).score_rows()

        if not rows:
            return DataQualityStats()

        distribution: Counter[str] = Counter()
        for _, _, sources in rows:
            distribution.update(sources)

        return DataQualityStats(
            total_athletes=len(rows),
            average_quality=round(sum(r[0] for r in rows) / len(rows), 2),
            average_confidence=round(sum(r[1] for r in rows) / len(rows), 2),
            high_quality_count=sum(1 for r in rows if r[0] >= HIGH_QUALITY_THRESHOLD),
            source_distribution=dict(distribution),
        )

    def export_profiles(
        self,
        format: ExportFormat | str = ExportFormat.JSON,
        sport: str | None = None,
    ) -> str:
        """
        Export stored profiles.

        Args:
            format: "json" (full profiles) or "csv" (flat summary).
            sport: Optional sport filter.

        Returns:
            Exported document as a string.
        """
        export_format = ExportFormat(format)
        sport_key = self.normalizer.normalize_sport(sport) if sport else None
        with self.session_factory() as session:
            profiles = AthleteProfileRepository(session).list_all(sport=sport_key)

        if export_format is ExportFormat.CSV:
            output = io.StringIO()
            writer = csv.writer(output)
            writer.writerow(CSV_HEADERS)
            for p in profiles:
                writer.writerow(
                    [
                        p.name,
                        p.sport,
                        p.position or "",
                        p.school or "",
                        p.metadata.data_quality,
                        p.metadata.confidence,
                        ";".join(p.metadata.sources_used),
                        len(p.stats),
                        len(p.highlights),
                        p.metadata.version,
                        p.metadata.last_updated.isoformat(),
                    ]
                )
            return output.getvalue()

        return json.dumps(
            {
                "export_version": "1.0",
                "export_date": self._clock().isoformat(),
                "count": len(profiles),
                "athletes": [p.model_dump(mode="json") for p in profiles],
            },
            indent=2,
        )
