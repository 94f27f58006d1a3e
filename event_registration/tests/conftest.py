import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm.session import Session

from event_registration.core.celery_config import celery_app
from event_registration.core.clock import utcnow
from event_registration.core.config import Settings
from event_registration.database import ledger
from event_registration.database.db import Database
from event_registration.main import create_app
from event_registration.services.events import create_event
from event_registration.services.users import create_user

# SQLite write transactions hold the database write lock (BEGIN IMMEDIATE), so
# tests keep sessions short: open one, do the work, close it.


@pytest.fixture
def settings(tmp_path) -> Settings:
    # File-backed database so worker threads get real, separate connections
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        redis_url="redis://localhost:6399/15",
        log_level="WARNING",
        create_tables_on_startup=True,
    )


@pytest.fixture
def database(settings: Settings):
    """Set up and tear down the database for a single test."""
    db = Database.from_url(settings.database_url)
    db.create_all()
    yield db
    db.drop_all()
    db.dispose()


@pytest.fixture
def db_session(database: Database):
    db: Session = database.session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(settings: Settings, database: Database):
    app = create_app(settings=settings, database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def eager_celery():
    """Run Celery tasks inline; no broker is available in tests."""
    celery_app.conf.task_always_eager = True
    yield
    celery_app.conf.task_always_eager = False


@pytest.fixture
def make_event(database: Database) -> Callable[..., uuid.UUID]:
    def _make(
        capacity: int = 10,
        title: str = "Launch",
        starts_at: Optional[datetime] = None,
        location: Optional[str] = None,
        ends_at: Optional[datetime] = None,
    ) -> uuid.UUID:
        with database.session() as db:
            return create_event(
                db,
                title=title,
                starts_at=starts_at or utcnow() + timedelta(days=7),
                ends_at=ends_at,
                location=location,
                capacity=capacity,
            )

    return _make


@pytest.fixture
def make_user(database: Database) -> Callable[..., uuid.UUID]:
    counter = {"n": 0}

    def _make(name: Optional[str] = None, email: Optional[str] = None) -> uuid.UUID:
        counter["n"] += 1
        n = counter["n"]
        with database.session() as db:
            user = create_user(
                db,
                name=name or f"User {n}",
                email=email or f"user{n}@example.com",
            )
            return user.id

    return _make


@pytest.fixture
def registration_count(database: Database) -> Callable[[uuid.UUID], int]:
    def _count(event_id: uuid.UUID) -> int:
        with database.session() as db:
            return ledger.count_registrations(db, event_id)

    return _count
