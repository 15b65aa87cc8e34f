"""Pydantic v2 models for athlete profiles.

These models define the durable and transient shapes of athlete data:
- Highlight, TrackEvent, RecruitingData (profile components)
- CandidateProfile (one aggregation pass, before storage)
- AthleteProfile, ProfileMetadata (stored, fused entity)
- DataQualityStats (catalog-wide quality summary)
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

MAX_STORED_HIGHLIGHTS = 20
MAX_CANDIDATE_HIGHLIGHTS = 10


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def clamp_score(value: float | int | None) -> int:
    """Clamp a score into the 0-100 range."""
    if value is None:
        return 0
    return int(max(0, min(100, round(value))))


class Highlight(BaseModel):
    """A video highlight of an athlete."""

    title: str = "Untitled"
    url: str = ""
    thumbnail: str | None = None
    views: int = 0
    duration: str = "00:00"
    uploaded_at: datetime | None = None
    platform: str = "unknown"
    source: str | None = None

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return (self.title.lower(), self.url.lower())


class TrackEvent(BaseModel):
    """A single track and field performance."""

    event: str
    mark: str | None = None
    date: str | None = None
    meet: str | None = None
    is_pr: bool = False

    @property
    def dedupe_key(self) -> tuple[str, str, str]:
        return (self.event.lower(), (self.mark or "").lower(), (self.date or "").lower())


class RecruitingData(BaseModel):
    """Recruiting metrics of an athlete."""

    rating: float | None = None
    stars: float | None = None
    ranking: float | None = None
    offers: float | None = None
    sources: list[str] = Field(default_factory=list)

    def has_values(self) -> bool:
        """Whether any recruiting metric is set."""
        return any(v is not None for v in (self.rating, self.stars, self.ranking, self.offers))


class CandidateProfile(BaseModel):
    """Fused result of one aggregation pass, not yet reconciled with storage."""

    name: str
    sport: str = "football"
    position: str | None = None
    school: str | None = None
    stats: dict[str, float] = Field(default_factory=dict)
    highlights: list[Highlight] = Field(default_factory=list)
    recruiting_data: RecruitingData = Field(default_factory=RecruitingData)
    track_data: list[TrackEvent] = Field(default_factory=list)
    sources_used: list[str] = Field(default_factory=list)
    data_quality: int = 0
    collected_at: datetime = Field(default_factory=_utc_now)

    @field_validator("data_quality", mode="before")
    @classmethod
    def clamp_quality(cls, v: Any) -> int:
        return clamp_score(v)


class ProfileMetadata(BaseModel):
    """Bookkeeping attached to a stored profile."""

    sources_used: list[str] = Field(default_factory=list)
    data_quality: int = 0
    confidence: int = 0
    version: int = Field(default=1, ge=1)
    last_updated: datetime = Field(default_factory=_utc_now)

    @field_validator("data_quality", "confidence", mode="before")
    @classmethod
    def clamp_scores(cls, v: Any) -> int:
        return clamp_score(v)


class AthleteProfile(BaseModel):
    """
    Durable fused athlete profile.

    Identity is (name_lower, sport).
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    sport: str
    position: str | None = None
    school: str | None = None
    stats: dict[str, float] = Field(default_factory=dict)
    highlights: list[Highlight] = Field(default_factory=list)
    recruiting_data: RecruitingData = Field(default_factory=RecruitingData)
    track_data: list[TrackEvent] = Field(default_factory=list)
    metadata: ProfileMetadata = Field(default_factory=ProfileMetadata)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @property
    def name_lower(self) -> str:
        return self.name.lower()


class DataQualityStats(BaseModel):
    """Catalog-wide data quality summary."""

    total_athletes: int = 0
    average_quality: float = 0.0
    average_confidence: float = 0.0
    high_quality_count: int = 0
    source_distribution: dict[str, int] = Field(default_factory=dict)
