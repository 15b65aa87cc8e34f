"""SQLAlchemy ORM models for the athlete profile store."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AthleteProfileDB(Base):
    """
    Database model for fused athlete profiles.

    Stores identity and sortable scores as columns, and the nested
    profile parts (stats, highlights, recruiting, track events) as JSON.
    """

    __tablename__ = "athlete_profiles"
    __table_args__ = (UniqueConstraint("name_lower", "sport", name="uq_athlete_identity"),)

    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_generate_uuid)

    # Identity
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_lower: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sport: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Searchable fields
    position: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    school: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # Profile payload
    stats_json: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    highlights_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    recruiting_json: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    track_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array

    # Metadata
    sources_json: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    data_quality: Mapped[int] = mapped_column(Integer, default=0, index=True)
    confidence: Mapped[int] = mapped_column(Integer, default=0, index=True)
    version: Mapped[int] = mapped_column(Integer, default=1)
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, index=True)

    def __repr__(self) -> str:
        return f"<AthleteProfileDB(name='{self.name}', sport='{self.sport}', v{self.version})>"
