"""Capacity ledger: point reads and writes on events, users and registrations.

All functions run inside the caller's transaction; none of them commit.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from loguru import logger
from sqlalchemy import delete, exists, func, select, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from event_registration.core.errors import (
    AlreadyRegisteredError,
    DomainError,
    EmailTakenError,
    NotFoundError,
    StorageUnavailableError,
    ValidationFailedError,
)
from event_registration.database.db import WRITE_INTENT
from event_registration.models.events import MAX_CAPACITY, Event
from event_registration.models.registrations import Registration
from event_registration.models.users import User

# PostgreSQL SQLSTATE classes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"
LOCK_NOT_AVAILABLE = "55P03"


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def translate_integrity_error(exc: IntegrityError) -> DomainError:
    """Map a storage constraint violation to the business error it guards."""
    code = _sqlstate(exc)
    message = str(exc.orig).lower()

    if code == UNIQUE_VIOLATION or "unique" in message:
        if "email" in message:
            return EmailTakenError()
        return AlreadyRegisteredError()
    if code == FOREIGN_KEY_VIOLATION or "foreign key" in message:
        return NotFoundError("User or event not found")
    if code == CHECK_VIOLATION or "check constraint" in message:
        if "capacity" in message:
            return ValidationFailedError(f"Capacity must be between 1 and {MAX_CAPACITY}")
        return ValidationFailedError("ends_at must be after starts_at")
    return ValidationFailedError("Constraint violation")


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Turn low-level storage failures into typed errors.

    Domain errors pass through untouched. Constraint violations become the
    business error they guard; anything else is logged and surfaced as
    StorageUnavailableError.
    """
    try:
        yield
    except IntegrityError as exc:
        error = translate_integrity_error(exc)
        logger.warning("{}: storage constraint tripped, reporting {}", operation, error.code.value)
        raise error from exc
    except OperationalError as exc:
        if _sqlstate(exc) == LOCK_NOT_AVAILABLE:
            logger.warning("{}: timed out waiting for the event lock", operation)
            raise StorageUnavailableError("Could not acquire lock, please try again.") from exc
        logger.opt(exception=exc).error("{}: storage failure", operation)
        raise StorageUnavailableError() from exc
    except SQLAlchemyError as exc:
        logger.opt(exception=exc).error("{}: storage failure", operation)
        raise StorageUnavailableError() from exc


@contextmanager
def write_transaction(db: Session) -> Iterator[None]:
    """Begin a transaction that is going to write.

    The connection is tagged with ``WRITE_INTENT`` before BEGIN so that SQLite
    takes its write lock immediately. Other dialects ignore the tag.
    """
    with db.begin():
        db.connection(execution_options={WRITE_INTENT: True})
        yield


def get_event(
    db: Session,
    event_id: uuid.UUID,
    *,
    for_update: bool = False,
    lock_timeout: Optional[float] = None,
) -> Optional[Event]:
    """Point lookup of an event.

    With ``for_update`` the row is locked exclusively until the enclosing
    transaction ends, which serializes every registration and cancellation
    on this event while leaving other events untouched.
    """
    stmt = select(Event).where(Event.id == event_id)
    if for_update:
        if lock_timeout is not None and db.get_bind().dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout * 1000)}ms'"))
        # populate_existing: never trust an identity-map copy read before the lock
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return db.scalars(stmt).first()


def get_user(db: Session, user_id: uuid.UUID) -> Optional[User]:
    return db.get(User, user_id)


def registration_exists(db: Session, *, user_id: uuid.UUID, event_id: uuid.UUID) -> bool:
    stmt = select(
        exists().where(
            Registration.user_id == user_id,
            Registration.event_id == event_id,
        )
    )
    return bool(db.scalar(stmt))


def count_registrations(db: Session, event_id: uuid.UUID) -> int:
    count = db.scalar(
        select(func.count(Registration.id)).where(Registration.event_id == event_id)
    )
    return int(count or 0)


def insert_registration(db: Session, *, user_id: uuid.UUID, event_id: uuid.UUID) -> Registration:
    registration = Registration(user_id=user_id, event_id=event_id)
    db.add(registration)
    db.flush()  # surfaces the unique (user, event) guard and gets registered_at
    db.refresh(registration)
    return registration


def delete_registration(db: Session, *, user_id: uuid.UUID, event_id: uuid.UUID) -> bool:
    stmt = (
        delete(Registration)
        .where(Registration.user_id == user_id, Registration.event_id == event_id)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    return result.rowcount > 0  # type: ignore[attr-defined]


def insert_event(db: Session, **fields) -> Event:
    event = Event(**fields)
    db.add(event)
    db.flush()
    return event


def insert_user(db: Session, *, name: str, email: str) -> User:
    user = User(name=name, email=email)
    db.add(user)
    db.flush()
    return user
