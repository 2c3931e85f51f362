"""
Pytest configuration and shared fixtures.
"""

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ats.db import Base
from ats.db import base as db_base
from ats.scheduling.scheduler import JobScheduler, set_scheduler
from ats.services.filtering import FilteringService


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def session_factory(database_url, monkeypatch):
    """SQLite database file with all tables; also backs session_scope()."""
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(db_base, "_engine", engine)
    monkeypatch.setattr(db_base, "_SessionLocal", factory)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def scheduler():
    """Running but paused APScheduler: jobs are stored, never executed."""
    engine = BackgroundScheduler(timezone="UTC")
    engine.start(paused=True)
    job_scheduler = JobScheduler(engine)
    set_scheduler(job_scheduler)
    yield job_scheduler
    set_scheduler(None)
    engine.shutdown(wait=False)


@pytest.fixture
def filtering(scheduler) -> FilteringService:
    return FilteringService(scheduler)
