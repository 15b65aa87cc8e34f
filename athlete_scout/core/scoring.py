"""Quality and confidence scoring for athlete profiles."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from athlete_scout.core.schema import clamp_score

if TYPE_CHECKING:
    from athlete_scout.core.schema import AthleteProfile, CandidateProfile

POINTS_PER_SOURCE = 6
MAX_SOURCE_POINTS = 30
MAX_RECENCY_POINTS = 30
HIGH_QUALITY_THRESHOLD = 80


def _hours_since(timestamp: datetime, now: datetime) -> float:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return (now - timestamp).total_seconds() / 3600


def source_points(source_count: int) -> int:
    """Points for source diversity, 6 per source up to 30."""
    return min(source_count * POINTS_PER_SOURCE, MAX_SOURCE_POINTS)


def calculate_data_quality(
    candidate: CandidateProfile,
    source_timestamps: dict[str, datetime],
    now: datetime | None = None,
) -> int:
    """
    Calculate the data quality of one aggregation pass.

    Scoring breakdown:
    - Source diversity: 6 points per contributing source, up to 30
    - Completeness: stats 15, highlights 10, recruiting 10, track events 5
    - Recency: per contributing source, 10 if its freshest record is under
      24h old, 5 if under 7 days, up to 30

    Args:
        candidate: The fused candidate profile.
        source_timestamps: Freshest scrape time per contributing source.
        now: Reference time (defaults to current UTC time).

    Returns:
        Quality score (0-100).
    """
    if not source_timestamps:
        return 0
    now = now or datetime.now(UTC)

    score = source_points(len(source_timestamps))

    if candidate.stats:
        score += 15
    if candidate.highlights:
        score += 10
    if candidate.recruiting_data.has_values():
        score += 10
    if candidate.track_data:
        score += 5

    recency = 0
    for scraped_at in source_timestamps.values():
        hours = _hours_since(scraped_at, now)
        if hours < 24:
            recency += 10
        elif hours < 168:
            recency += 5
    score += min(recency, MAX_RECENCY_POINTS)

    return clamp_score(score)


def calculate_confidence(profile: AthleteProfile, now: datetime | None = None) -> int:
    """
    Calculate the confidence of a stored profile.

    Scoring breakdown:
    - Completeness (40): name 10, sport 5, position 5, school 5, stats 10,
      highlights 5
    - Sources (30): 6 per distinct source
    - Recency of last update (20): 20 under 24h, 15 under 7 days, 10 under 30 days
    - Stored data quality (10): a tenth of the quality score

    Args:
        profile: Profile with merged data and metadata.
        now: Reference time (defaults to current UTC time).

    Returns:
        Confidence score (0-100).
    """
    now = now or datetime.now(UTC)
    confidence = 0.0

    if profile.name:
        confidence += 10
    if profile.sport:
        confidence += 5
    if profile.position:
        confidence += 5
    if profile.school:
        confidence += 5
    if profile.stats:
        confidence += 10
    if profile.highlights:
        confidence += 5

    confidence += source_points(len(set(profile.metadata.sources_used)))

    hours = _hours_since(profile.metadata.last_updated, now)
    if hours < 24:
        confidence += 20
    elif hours < 168:
        confidence += 15
    elif hours < 720:
        confidence += 10

    confidence += min(profile.metadata.data_quality / 10, 10)

    return clamp_score(confidence)
