import uuid
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from event_registration.core.clock import as_utc
from event_registration.core.errors import ValidationFailedError
from event_registration.database import ledger
from event_registration.models.events import MAX_CAPACITY


def create_event(
    db: Session,
    *,
    title: str,
    starts_at: datetime,
    capacity: int,
    ends_at: Optional[datetime] = None,
    location: Optional[str] = None,
    max_capacity: int = MAX_CAPACITY,
) -> uuid.UUID:
    """Persist a new event and return its id.

    Input is expected to be syntax-checked already; the storage check
    constraints on capacity and end time still apply.
    """
    if not 1 <= capacity <= max_capacity:
        raise ValidationFailedError(f"Capacity must be between 1 and {max_capacity}")

    with ledger.storage_errors("create_event"), ledger.write_transaction(db):
        event = ledger.insert_event(
            db,
            title=title,
            starts_at=as_utc(starts_at),
            ends_at=as_utc(ends_at) if ends_at else None,
            location=location,
            capacity=capacity,
        )
        event_id = event.id

    logger.info("Created event_id={} capacity={}", event_id, capacity)
    return event_id
