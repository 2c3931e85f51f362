"""Engine, sessions and table creation for the ATS database.

The engine is created on first use so modules import without DATABASE_URL.
Request handlers get sessions from get_db(); scheduler jobs and the CLI,
which run outside a request, use session_scope().
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ats.config import settings


class Base(DeclarativeBase):
    pass


_engine = None
_SessionLocal = None


def _engine_options(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        # Scheduler worker threads share the file with request threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 300}


def get_engine():
    """Engine for settings.database_url, created once."""
    global _engine
    if _engine is None:
        if not settings.database_url:
            raise ValueError("DATABASE_URL not configured")
        _engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, rolled back if the handler fails."""
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Session for work outside a request (scheduler jobs, CLI).

    Rolls back anything left uncommitted when the block raises.
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create missing tables. Alembic owns schema changes; this covers fresh installs."""
    from ats.db import tables  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
