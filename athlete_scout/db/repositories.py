"""Repository classes for database operations."""

import json
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from athlete_scout.core.errors import StaleProfileError
from athlete_scout.core.schema import (
    AthleteProfile,
    Highlight,
    ProfileMetadata,
    RecruitingData,
    TrackEvent,
)
from athlete_scout.db.models import AthleteProfileDB

# Sortable fields for search, by public name
SORT_COLUMNS = {
    "confidence": AthleteProfileDB.confidence,
    "data_quality": AthleteProfileDB.data_quality,
    "name": AthleteProfileDB.name_lower,
    "updated_at": AthleteProfileDB.updated_at,
    "version": AthleteProfileDB.version,
}


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _naive_utc(value: datetime) -> datetime:
    """Convert to the naive UTC form the database stores."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class AthleteProfileRepository:
    """Repository for AthleteProfile CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, profile: AthleteProfile) -> AthleteProfile:
        """
        Insert a new athlete profile.

        Args:
            profile: The AthleteProfile domain model to create.

        Returns:
            The created AthleteProfile.
        """
        db_profile = AthleteProfileDB(id=str(profile.id))
        self._apply(db_profile, profile)
        db_profile.created_at = _naive_utc(profile.created_at)
        self.session.add(db_profile)
        self.session.flush()
        return self._to_domain(db_profile)

    def get_by_id(self, profile_id: UUID | str) -> AthleteProfile | None:
        stmt = select(AthleteProfileDB).where(AthleteProfileDB.id == str(profile_id))
        db_profile = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_profile) if db_profile else None

    def get_by_identity(self, name_lower: str, sport: str) -> AthleteProfile | None:
        """
        Get a profile by its (name_lower, sport) identity.

        Returns:
            The AthleteProfile if found, None otherwise.
        """
        stmt = select(AthleteProfileDB).where(
            AthleteProfileDB.name_lower == name_lower,
            AthleteProfileDB.sport == sport,
        )
        db_profile = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_profile) if db_profile else None

    def find_by_name(self, name_lower: str, sport: str | None = None) -> AthleteProfile | None:
        """
        Find a profile by lowercase name, optionally restricted to a sport.

        Without a sport the most recently updated match is returned.
        """
        stmt = select(AthleteProfileDB).where(AthleteProfileDB.name_lower == name_lower)
        if sport:
            stmt = stmt.where(AthleteProfileDB.sport == sport)
        stmt = stmt.order_by(AthleteProfileDB.updated_at.desc()).limit(1)
        db_profile = self.session.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_profile) if db_profile else None

    def update(self, profile: AthleteProfile, expected_version: int) -> AthleteProfile:
        """
        Overwrite a stored profile if it is still at the expected version.

        Args:
            profile: Profile carrying the new values and version.
            expected_version: Version the caller read before merging.

        Returns:
            The updated AthleteProfile.

        Raises:
            StaleProfileError: If the stored version moved on.
        """
        stmt = (
            update(AthleteProfileDB)
            .where(
                AthleteProfileDB.id == str(profile.id),
                AthleteProfileDB.version == expected_version,
            )
            .values(**self._column_values(profile))
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount != 1:
            raise StaleProfileError(profile.name_lower, profile.sport, expected_version)

        self.session.expire_all()
        updated = self.get_by_id(profile.id)
        if updated is None:
            raise StaleProfileError(profile.name_lower, profile.sport, expected_version)
        return updated

    def search(
        self,
        query: str | None = None,
        sport: str | None = None,
        position: str | None = None,
        school: str | None = None,
        sort: str = "-confidence",
        limit: int = 50,
    ) -> list[AthleteProfile]:
        """
        Search profiles.

        Args:
            query: Case-insensitive substring of the name or school.
            sport: Exact sport filter.
            position: Exact position filter.
            school: Case-insensitive substring of the school.
            sort: Field from SORT_COLUMNS, prefixed with "-" for descending.
            limit: Maximum number of results.

        Returns:
            List of matching AthleteProfile domain models.
        """
        descending = sort.startswith("-")
        column = SORT_COLUMNS.get(sort.lstrip("-"))
        if column is None:
            raise ValueError(f"Unsupported sort field: {sort}")

        stmt = select(AthleteProfileDB)
        if query:
            pattern = f"%{query.lower()}%"
            stmt = stmt.where(
                or_(
                    AthleteProfileDB.name_lower.like(pattern),
                    func.lower(AthleteProfileDB.school).like(pattern),
                )
            )
        if sport:
            stmt = stmt.where(AthleteProfileDB.sport == sport)
        if position:
            stmt = stmt.where(AthleteProfileDB.position == position)
        if school:
            stmt = stmt.where(func.lower(AthleteProfileDB.school).like(f"%{school.lower()}%"))

        stmt = stmt.order_by(column.desc() if descending else column.asc(), AthleteProfileDB.name_lower)
        stmt = stmt.limit(limit)
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(p) for p in result]

    def list_all(self, sport: str | None = None) -> list[AthleteProfile]:
        stmt = select(AthleteProfileDB).order_by(AthleteProfileDB.name_lower)
        if sport:
            stmt = stmt.where(AthleteProfileDB.sport == sport)
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(p) for p in result]

    def list_updated_before(self, cutoff: datetime, limit: int | None = None) -> list[AthleteProfile]:
        """List profiles not updated since the cutoff, oldest first."""
        stmt = (
            select(AthleteProfileDB)
            .where(AthleteProfileDB.updated_at < _naive_utc(cutoff))
            .order_by(AthleteProfileDB.updated_at.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = self.session.execute(stmt).scalars().all()
        return [self._to_domain(p) for p in result]

    def delete_stale(self, cutoff: datetime, max_confidence: int) -> int:
        """
        Delete profiles not updated since the cutoff whose confidence is below the threshold.

        Returns:
            Number of deleted profiles.
        """
        stmt = delete(AthleteProfileDB).where(
            AthleteProfileDB.updated_at < _naive_utc(cutoff),
            AthleteProfileDB.confidence < max_confidence,
        )
        result = self.session.execute(stmt)
        self.session.flush()
        return result.rowcount or 0

    def score_rows(self) -> list[tuple[int, int, list[str]]]:
        """(data_quality, confidence, sources) for every profile."""
        stmt = select(
            AthleteProfileDB.data_quality,
            AthleteProfileDB.confidence,
            AthleteProfileDB.sources_json,
        )
        return [
            (quality, confidence, json.loads(sources))
            for quality, confidence, sources in self.session.execute(stmt).all()
        ]

    def count(self) -> int:
        stmt = select(func.count()).select_from(AthleteProfileDB)
        return self.session.execute(stmt).scalar_one()

    def _column_values(self, profile: AthleteProfile) -> dict:
        """Column values for a profile, excluding id and created_at."""
        return {
            "name": profile.name,
            "name_lower": profile.name_lower,
            "sport": profile.sport,
            "position": profile.position,
            "school": profile.school,
            "stats_json": json.dumps(profile.stats),
            "highlights_json": json.dumps([h.model_dump(mode="json") for h in profile.highlights]),
            "recruiting_json": json.dumps(profile.recruiting_data.model_dump(mode="json")),
            "track_json": json.dumps([e.model_dump(mode="json") for e in profile.track_data]),
            "sources_json": json.dumps(profile.metadata.sources_used),
            "data_quality": profile.metadata.data_quality,
            "confidence": profile.metadata.confidence,
            "version": profile.metadata.version,
            "last_updated": _naive_utc(profile.metadata.last_updated),
            "updated_at": _naive_utc(profile.updated_at),
        }

    def _apply(self, db_profile: AthleteProfileDB, profile: AthleteProfile) -> None:
        for key, value in self._column_values(profile).items():
            setattr(db_profile, key, value)

    def _to_domain(self, db_profile: AthleteProfileDB) -> AthleteProfile:
        """Convert DB model to domain model."""
        return AthleteProfile(
            id=UUID(db_profile.id),
            name=db_profile.name,
            sport=db_profile.sport,
            position=db_profile.position,
            school=db_profile.school,
            stats=json.loads(db_profile.stats_json),
            highlights=[Highlight.model_validate(h) for h in json.loads(db_profile.highlights_json)],
            recruiting_data=RecruitingData.model_validate(json.loads(db_profile.recruiting_json)),
            track_data=[TrackEvent.model_validate(e) for e in json.loads(db_profile.track_json)],
            metadata=ProfileMetadata(
                sources_used=json.loads(db_profile.sources_json),
                data_quality=db_profile.data_quality,
                confidence=db_profile.confidence,
                version=db_profile.version,
                last_updated=_as_utc(db_profile.last_updated),
            ),
            created_at=_as_utc(db_profile.created_at),
            updated_at=_as_utc(db_profile.updated_at),
        )
