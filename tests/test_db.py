"""Tests for database persistence layer."""

import json
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from athlete_scout.core.errors import StaleProfileError
from athlete_scout.core.schema import (
    AthleteProfile,
    Highlight,
    ProfileMetadata,
    RecruitingData,
    TrackEvent,
)
from athlete_scout.db.engine import get_database_url
from athlete_scout.db.models import AthleteProfileDB, Base
from athlete_scout.db.repositories import AthleteProfileRepository

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def engine(temp_db_path):
    """Create a test database engine."""
    url = f"sqlite:///{temp_db_path}"
    engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a database session for testing."""
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


def make_profile(
    name: str = "John Smith",
    sport: str = "football",
    confidence: int = 60,
    data_quality: int = 50,
    updated_at: datetime = NOW,
    **kwargs,
) -> AthleteProfile:
    return AthleteProfile(
        name=name,
        sport=sport,
        metadata=ProfileMetadata(
            sources_used=kwargs.pop("sources", ["maxpreps"]),
            data_quality=data_quality,
            confidence=confidence,
            last_updated=updated_at,
        ),
        created_at=updated_at,
        updated_at=updated_at,
        **kwargs,
    )


class TestGetDatabaseUrl:
    """Tests for database URL resolution."""

    def test_explicit_path(self, tmp_path: Path) -> None:
        assert get_database_url(tmp_path / "a.db") == f"sqlite:///{tmp_path / 'a.db'}"

    def test_env_full_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://scout@localhost/athletes")
        assert get_database_url() == "postgresql://scout@localhost/athletes"

    def test_env_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", str(tmp_path / "env.db"))
        assert get_database_url() == f"sqlite:///{tmp_path / 'env.db'}"


class TestAthleteProfileRepository:
    """Tests for AthleteProfileRepository."""

    def test_create_and_get(self, session: Session) -> None:
        """Test a full profile survives a round trip."""
        repo = AthleteProfileRepository(session)
        profile = make_profile(
            position="Quarterback",
            school="Austin High School",
            stats={"passing_yards": 2450.0},
            highlights=[Highlight(title="Senior Year", url="https://hudl.com/v/1", views=12)],
            recruiting_data=RecruitingData(stars=4, sources=["247sports"]),
            track_data=[TrackEvent(event="100 Meters", mark="11.92", is_pr=True)],
        )
        repo.create(profile)
        session.commit()

        stored = repo.get_by_id(profile.id)
        assert stored is not None
        assert stored.name == "John Smith"
        assert stored.position == "Quarterback"
        assert stored.stats == {"passing_yards": 2450.0}
        assert stored.highlights[0].views == 12
        assert stored.recruiting_data.stars == 4.0
        assert stored.track_data[0].is_pr is True
        assert stored.metadata.version == 1
        assert stored.metadata.last_updated == NOW
        assert stored.created_at.tzinfo is not None

    def test_get_by_identity(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile())
        repo.create(make_profile(sport="basketball"))
        session.commit()

        assert repo.get_by_identity("john smith", "football").sport == "football"
        assert repo.get_by_identity("john smith", "basketball").sport == "basketball"
        assert repo.get_by_identity("john smith", "soccer") is None

    def test_identity_is_unique(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile())
        with pytest.raises(IntegrityError):
            repo.create(make_profile(name="JOHN SMITH"))

    def test_find_by_name_prefers_recent(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile(sport="football", updated_at=NOW - timedelta(days=2)))
        repo.create(make_profile(sport="track", updated_at=NOW))
        session.commit()

        assert repo.find_by_name("john smith").sport == "track"
        assert repo.find_by_name("john smith", "football").sport == "football"
        assert repo.find_by_name("jane doe") is None

    def test_update_with_expected_version(self, session: Session) -> None:
        """Test a versioned update replaces the stored row."""
        repo = AthleteProfileRepository(session)
        created = repo.create(make_profile())
        session.commit()

        changed = created.model_copy(
            update={
                "stats": {"touchdowns": 30.0},
                "metadata": created.metadata.model_copy(update={"version": 2}),
            }
        )
        updated = repo.update(changed, expected_version=1)
        session.commit()

        assert updated.metadata.version == 2
        assert updated.stats == {"touchdowns": 30.0}
        assert repo.count() == 1

    def test_update_stale_version(self, session: Session) -> None:
        """Test a lost race is reported instead of overwriting."""
        repo = AthleteProfileRepository(session)
        created = repo.create(make_profile())
        session.commit()

        changed = created.model_copy(
            update={"metadata": created.metadata.model_copy(update={"version": 3})}
        )
        with pytest.raises(StaleProfileError):
            repo.update(changed, expected_version=2)

    def test_search_filters(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile("John Smith", school="Austin High School", position="Quarterback"))
        repo.create(make_profile("Jane Doe", sport="track", school="Westlake"))
        repo.create(make_profile("Sam Smithers", school="Dallas High School", position="Linebacker"))
        session.commit()

        assert {p.name for p in repo.search(query="smith")} == {"John Smith", "Sam Smithers"}
        assert [p.name for p in repo.search(query="westlake")] == ["Jane Doe"]
        assert [p.name for p in repo.search(sport="track")] == ["Jane Doe"]
        assert [p.name for p in repo.search(position="Linebacker")] == ["Sam Smithers"]
        assert [p.name for p in repo.search(school="austin")] == ["John Smith"]

    def test_search_sort_and_limit(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile("A One", confidence=40, data_quality=90))
        repo.create(make_profile("B Two", confidence=80, data_quality=10))
        repo.create(make_profile("C Three", confidence=60, data_quality=50))
        session.commit()

        assert [p.name for p in repo.search()] == ["B Two", "C Three", "A One"]
        assert [p.name for p in repo.search(sort="-data_quality")] == ["A One", "C Three", "B Two"]
        assert [p.name for p in repo.search(sort="name", limit=2)] == ["A One", "B Two"]

    def test_search_unknown_sort(self, session: Session) -> None:
        with pytest.raises(ValueError):
            AthleteProfileRepository(session).search(sort="-height")

    def test_list_updated_before(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile("Old One", updated_at=NOW - timedelta(days=5)))
        repo.create(make_profile("Older One", updated_at=NOW - timedelta(days=9)))
        repo.create(make_profile("Fresh One", updated_at=NOW))
        session.commit()

        stale = repo.list_updated_before(NOW - timedelta(days=1))
        assert [p.name for p in stale] == ["Older One", "Old One"]
        assert len(repo.list_updated_before(NOW - timedelta(days=1), limit=1)) == 1

    def test_delete_stale(self, session: Session) -> None:
        """Test only old and low-confidence profiles are deleted."""
        repo = AthleteProfileRepository(session)
        old = NOW - timedelta(days=120)
        repo.create(make_profile("Old Low", confidence=20, updated_at=old))
        repo.create(make_profile("Old High", confidence=80, updated_at=old))
        repo.create(make_profile("New Low", confidence=20, updated_at=NOW))
        session.commit()

        deleted = repo.delete_stale(NOW - timedelta(days=90), max_confidence=50)
        session.commit()

        assert deleted == 1
        assert {p.name for p in repo.list_all()} == {"Old High", "New Low"}

    def test_score_rows(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile(confidence=70, data_quality=85, sources=["maxpreps", "hudl"]))
        session.commit()

        assert repo.score_rows() == [(85, 70, ["maxpreps", "hudl"])]

    def test_list_all_by_sport(self, session: Session) -> None:
        repo = AthleteProfileRepository(session)
        repo.create(make_profile("John Smith"))
        repo.create(make_profile("Jane Doe", sport="track"))
        session.commit()

        assert [p.name for p in repo.list_all()] == ["Jane Doe", "John Smith"]
        assert [p.name for p in repo.list_all(sport="track")] == ["Jane Doe"]

    def test_json_columns(self, session: Session) -> None:
        """Test nested parts are stored as JSON text."""
        repo = AthleteProfileRepository(session)
        repo.create(make_profile(stats={"sacks": 4.5}))
        session.commit()

        row = session.query(AthleteProfileDB).one()
        assert json.loads(row.stats_json) == {"sacks": 4.5}
        assert json.loads(row.sources_json) == ["maxpreps"]
