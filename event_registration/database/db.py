"""Engine, session handle and transactional scope for the capacity ledger.

The `Database` object is built once at the composition root (`create_app`, the
Celery worker, tests) and handed to whoever needs storage access; there is no
module-level engine.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    pass


# connection execution option marking a transaction that will write
WRITE_INTENT = "write_intent"


def _enable_sqlite_locking(engine: Engine) -> None:
    """Make SQLite write transactions take the write lock up front.

    SQLite has no row locks and ignores FOR UPDATE; BEGIN IMMEDIATE gives the
    same exclusive-access guarantee at database grain. Only connections
    carrying the ``WRITE_INTENT`` option get it; reads start a deferred
    transaction and hold only a shared lock while they read.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # stop pysqlite from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(WRITE_INTENT):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_db_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _enable_sqlite_locking(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


class Database:
    """Owns the engine and hands out sessions."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> "Database":
        return cls(create_db_engine(url, **engine_kwargs))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session; whatever is still open on exit is rolled back."""
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def create_all(self) -> None:
        # Import models so that they register with Base.metadata
        from event_registration.models import events, registrations, users  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    with get_database(request).session() as db:
        yield db
