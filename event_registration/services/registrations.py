"""Registration transaction engine.

Register and cancel run as one transaction each, holding the event row lock
from the first read to commit. Because every attempt on the same event is
serialized behind that lock, the capacity count taken inside the transaction
is exact and the event can never be overbooked. Attempts on different events
never wait for each other.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from event_registration.core.clock import as_utc, utcnow
from event_registration.core.errors import (
    AlreadyRegisteredError,
    CapacityExceededError,
    DomainError,
    EventNotFoundError,
    PastEventError,
    RegistrationNotFoundError,
    UserNotFoundError,
)
from event_registration.database import ledger
from event_registration.models.events import Event


@dataclass(frozen=True)
class RegistrationResult:
    registration_id: uuid.UUID
    registered_at: datetime
    remaining_capacity: int
    event_id: uuid.UUID
    event_title: str
    user_id: uuid.UUID
    user_name: str
    user_email: str

    @property
    def message(self) -> str:
        return f"Successfully registered for event: {self.event_title}"


@dataclass(frozen=True)
class CancellationResult:
    event_id: uuid.UUID
    event_title: str
    user_id: uuid.UUID
    user_name: str
    user_email: str

    @property
    def message(self) -> str:
        return "Registration cancelled successfully"


def _lock_upcoming_event(
    db: Session,
    event_id: uuid.UUID,
    now: datetime,
    lock_timeout: Optional[float],
    past_message: str,
) -> Event:
    event = ledger.get_event(db, event_id, for_update=True, lock_timeout=lock_timeout)
    if event is None:
        raise EventNotFoundError(event_id)
    if as_utc(event.starts_at) <= now:
        raise PastEventError(past_message)
    return event


def register(
    db: Session,
    *,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
    lock_timeout: Optional[float] = None,
) -> RegistrationResult:
    """Register a user for an event.

    Any failure rolls the whole transaction back and releases the lock.

    Raises:
        EventNotFoundError, UserNotFoundError: unknown event or user.
        PastEventError: the event has already started.
        AlreadyRegisteredError: the user holds a registration for the event.
        CapacityExceededError: the event is full.
        StorageUnavailableError: the store failed or the lock timed out.
    """
    now = as_utc(now or utcnow())
    try:
        with ledger.storage_errors("register"), ledger.write_transaction(db):
            event = _lock_upcoming_event(
                db, event_id, now, lock_timeout, "Cannot register for past events"
            )

            user = ledger.get_user(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            if ledger.registration_exists(db, user_id=user_id, event_id=event_id):
                raise AlreadyRegisteredError()

            current = ledger.count_registrations(db, event_id)
            if current >= event.capacity:
                raise CapacityExceededError(current=current, capacity=event.capacity)

            registration = ledger.insert_registration(db, user_id=user_id, event_id=event_id)
            result = RegistrationResult(
                registration_id=registration.id,
                registered_at=as_utc(registration.registered_at),
                remaining_capacity=event.capacity - (current + 1),
                event_id=event.id,
                event_title=event.title,
                user_id=user.id,
                user_name=user.name,
                user_email=user.email,
            )
    except DomainError as exc:
        logger.warning(
            "Registration rejected event_id={} user_id={} code={}", event_id, user_id, exc.code.value
        )
        raise

    logger.info(
        "Registered user_id={} for event_id={} remaining_capacity={}",
        user_id,
        event_id,
        result.remaining_capacity,
    )
    return result


def cancel(
    db: Session,
    *,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    now: Optional[datetime] = None,
    lock_timeout: Optional[float] = None,
) -> CancellationResult:
    """Cancel a user's registration.

    Takes the same event lock as `register`. Cancelling attendance of an event
    that has already started is refused.
    """
    now = as_utc(now or utcnow())
    try:
        with ledger.storage_errors("cancel"), ledger.write_transaction(db):
            event = _lock_upcoming_event(
                db, event_id, now, lock_timeout, "Cannot cancel registration for past events"
            )

            if not ledger.delete_registration(db, user_id=user_id, event_id=event_id):
                raise RegistrationNotFoundError(event_id, user_id)

            user = ledger.get_user(db, user_id)
            result = CancellationResult(
                event_id=event.id,
                event_title=event.title,
                user_id=user_id,
                user_name=user.name if user else "",
                user_email=user.email if user else "",
            )
    except DomainError as exc:
        logger.warning(
            "Cancellation rejected event_id={} user_id={} code={}", event_id, user_id, exc.code.value
        )
        raise

    logger.info("Cancelled registration user_id={} event_id={}", user_id, event_id)
    return result
