"""
Aggregator Module
=================

Fans out one athlete search to every source adapter concurrently and fuses
the partial records into a single candidate profile.

A failing adapter contributes nothing; the collection never aborts because
one source is down. All merge helpers are pure and return fresh values.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Protocol

from athlete_scout.core.schema import (
    MAX_CANDIDATE_HIGHLIGHTS,
    CandidateProfile,
    Highlight,
    RecruitingData,
    TrackEvent,
)
from athlete_scout.core.scoring import calculate_data_quality
from athlete_scout.ingestion.adapters.base import RECRUITING_FIELDS, RawSourceRecord, SearchOptions

logger = logging.getLogger(__name__)

# Sources above this priority overwrite recruiting values already collected
RECRUITING_OVERRIDE_PRIORITY = 0.7


class SourceSearcher(Protocol):
    """What the aggregator needs from an adapter."""

    SOURCE_NAME: str

    @property
    def priority(self) -> float: ...

    async def search(
        self, athlete_name: str, options: SearchOptions | None = None
    ) -> list[RawSourceRecord]: ...


# ============================================================================
# Pure merge functions
# ============================================================================


def merge_stats(
    accumulated: dict[str, float], new: dict[str, float], priority: float
) -> dict[str, float]:
    """
    Merge one source's stats into the accumulated stats.

    A key seen for the first time is taken as-is. A key already present is
    updated as ``(acc + new * priority) / (1 + priority)``, a running merge
    that leans toward later sources rather than a true weighted mean.
    Non-numeric and non-positive values are ignored.

    Returns:
        New stats dict
    """
    merged = dict(accumulated)
    for key, value in new.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            continue
        if key in merged:
            merged[key] = (merged[key] + value * priority) / (1 + priority)
        else:
            merged[key] = float(value)
    return merged


def merge_recruiting(
    accumulated: RecruitingData,
    recruiting: dict[str, float],
    source: str,
    priority: float,
    owners: Mapping[str, float] | None = None,
) -> tuple[RecruitingData, dict[str, float]]:
    """
    Merge one source's recruiting metrics.

    Empty fields are filled by anyone. A filled field is overwritten only by
    a source with priority above 0.7 and above the priority of the source
    that set it.

    Args:
        accumulated: Recruiting data collected so far
        recruiting: The source's recruiting metrics
        source: Source name
        priority: Source priority
        owners: Priority of the source that set each filled field

    Returns:
        (new RecruitingData, new field owners)
    """
    owners = dict(owners or {})
    updates: dict[str, float] = {}
    for name in RECRUITING_FIELDS:
        value = recruiting.get(name)
        if value is None:
            continue
        current = getattr(accumulated, name)
        if current is None or (
            priority > RECRUITING_OVERRIDE_PRIORITY and priority > owners.get(name, 0.0)
        ):
            updates[name] = float(value)
            owners[name] = priority

    if not updates:
        return accumulated, owners

    sources = list(accumulated.sources)
    if source not in sources:
        sources.append(source)
    return accumulated.model_copy(update={**updates, "sources": sources}), owners


def dedupe_highlights(
    highlights: Iterable[Highlight], limit: int = MAX_CANDIDATE_HIGHLIGHTS
) -> list[Highlight]:
    """
    Drop duplicate highlights by lowercase (title, url), keeping the first.

    Returns:
        Highlights sorted by views descending, at most ``limit``
    """
    seen: set[tuple[str, str]] = set()
    unique: list[Highlight] = []
    for highlight in highlights:
        key = highlight.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(highlight)
    unique.sort(key=lambda h: h.views, reverse=True)
    return unique[:limit]


def dedupe_events(events: Iterable[TrackEvent]) -> list[TrackEvent]:
    """Drop repeated (event, mark, date) entries, keeping order."""
    seen: set[tuple[str, str, str]] = set()
    unique: list[TrackEvent] = []
    for event in events:
        if event.dedupe_key not in seen:
            seen.add(event.dedupe_key)
            unique.append(event)
    return unique


def fuse_records(
    athlete_name: str,
    results: Sequence[tuple[str, float, list[RawSourceRecord]]],
    options: SearchOptions,
    now: datetime | None = None,
) -> CandidateProfile:
    """
    Fuse per-source records into one candidate profile.

    Args:
        athlete_name: Requested athlete name, used as the candidate's name
        results: (source, priority, records) per adapter that answered
        options: Search options of the collection
        now: Reference time for the recency score

    Returns:
        CandidateProfile with data quality computed
    """
    now = now or datetime.now(UTC)
    ordered = sorted(results, key=lambda r: r[1], reverse=True)

    stats: dict[str, float] = {}
    recruiting = RecruitingData()
    recruiting_owners: dict[str, float] = {}
    highlights: list[Highlight] = []
    events: list[TrackEvent] = []
    position: str | None = None
    school: str | None = None
    sources_used: list[str] = []
    source_timestamps: dict[str, datetime] = {}

    for source, priority, records in ordered:
        if not records:
            continue
        sources_used.append(source)
        source_timestamps[source] = max(r.scraped_at for r in records)

        for record in records:
            stats = merge_stats(stats, record.stats, priority)
            recruiting, recruiting_owners = merge_recruiting(
                recruiting, record.recruiting, source, priority, recruiting_owners
            )
            highlights.extend(record.highlights)
            events.extend(record.events)
            position = position or record.position
            school = school or record.school

    candidate = CandidateProfile(
        name=athlete_name.strip(),
        sport=options.sport,
        position=position,
        school=school,
        stats=stats,
        highlights=dedupe_highlights(highlights),
        recruiting_data=recruiting,
        track_data=dedupe_events(events),
        sources_used=sources_used,
        collected_at=now,
    )
    candidate.data_quality = calculate_data_quality(candidate, source_timestamps, now=now)
    return candidate


class Aggregator:
    """
    Collects and fuses athlete data from every configured source.

    Example:
        >>> async with Fetcher() as fetcher:
        ...     aggregator = Aggregator(create_default_adapters(fetcher))
        ...     candidate = await aggregator.collect("Test Athlete")
    """

    def __init__(self, adapters: Sequence[SourceSearcher]) -> None:
        self.adapters = list(adapters)

    async def _search_one(
        self, adapter: SourceSearcher, athlete_name: str, options: SearchOptions
    ) -> list[RawSourceRecord]:
        records = await adapter.search(athlete_name, options)
        logger.debug(f"{adapter.SOURCE_NAME} returned {len(records)} records for {athlete_name}")
        return records

    async def collect(
        self, athlete_name: str, options: SearchOptions | None = None
    ) -> CandidateProfile:
        """
        Query all adapters concurrently and fuse what comes back.

        Args:
            athlete_name: Athlete to collect
            options: Search hints shared by every adapter

        Returns:
            CandidateProfile (data_quality 0 and no sources when nothing was found)
        """
        options = options or SearchOptions()
        logger.info(f"Collecting {athlete_name} from {len(self.adapters)} sources")

        outcomes = await asyncio.gather(
            *(self._search_one(a, athlete_name, options) for a in self.adapters),
            return_exceptions=True,
        )

        results: list[tuple[str, float, list[RawSourceRecord]]] = []
        for adapter, outcome in zip(self.adapters, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning(f"{adapter.SOURCE_NAME} failed for {athlete_name}: {outcome!r}")
                continue
            results.append((adapter.SOURCE_NAME, adapter.priority, outcome))

        candidate = fuse_records(athlete_name, results, options)
        logger.info(
            f"Collected {athlete_name}: {len(candidate.sources_used)} sources, "
            f"quality {candidate.data_quality}"
        )
        return candidate
