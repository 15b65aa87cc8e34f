"""Database initialization and persistence layer."""

from athlete_scout.db.engine import (
    create_db_engine,
    get_database_url,
    get_engine,
    get_session_factory,
    init_db,
    reset_engine,
)
from athlete_scout.db.models import AthleteProfileDB, Base
from athlete_scout.db.repositories import AthleteProfileRepository

__all__ = [
    # Engine
    "create_db_engine",
    "get_database_url",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_engine",
    # Models
    "Base",
    "AthleteProfileDB",
    # Repositories
    "AthleteProfileRepository",
]
