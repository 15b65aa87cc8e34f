"""SQLite database engine and session management."""

import os
from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

# Default database path (can be overridden via environment variable)
DEFAULT_DB_PATH = Path.home() / ".athlete_scout" / "athletes.db"


def get_database_url(db_path: Path | str | None = None) -> str:
    """
    Get the database URL.

    Args:
        db_path: Optional path to the database file. If None, uses
                 DATABASE_URL env var or default path.

    Returns:
        SQLAlchemy connection URL.
    """
    if db_path is not None:
        path = Path(db_path)
    elif os.environ.get("DATABASE_URL"):
        # Support full URL or just path
        url = os.environ["DATABASE_URL"]
        if "://" in url:
            return url
        path = Path(url)
    else:
        path = DEFAULT_DB_PATH

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    return f"sqlite:///{path}"


def create_db_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine.

    Args:
        db_path: Optional path to the database file.
        echo: If True, log all SQL statements.

    Returns:
        SQLAlchemy Engine instance.
    """
    url = get_database_url(db_path)
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


# Global engine and session factory (initialized lazily)
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """Get or create the global database engine."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(db_path, echo)
    return _engine


def get_session_factory(db_path: Path | str | None = None) -> sessionmaker[Session]:
    """Get or create the global session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_engine(db_path)
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return _SessionLocal


def reset_engine() -> None:
    """Reset the global engine and session factory (useful for testing)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def init_db(db_path: Path | str | None = None) -> None:
    """
    Initialize the database by creating all tables.

    Args:
        db_path: Optional path to the database file.
    """
    from athlete_scout.db.models import Base

    engine = get_engine(db_path)
    Base.metadata.create_all(bind=engine)
