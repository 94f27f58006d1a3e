"""Read-only occupancy views.

These queries never take the event lock; read-committed visibility is enough
because nothing here gates a write.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from event_registration.core.clock import as_utc, utcnow
from event_registration.core.errors import EventNotFoundError
from event_registration.database import ledger
from event_registration.models.events import Event
from event_registration.models.registrations import Registration
from event_registration.models.users import User


@dataclass(frozen=True)
class RosterEntry:
    user_id: uuid.UUID
    name: str
    email: str


@dataclass(frozen=True)
class EventDetail:
    id: uuid.UUID
    title: str
    starts_at: datetime
    ends_at: Optional[datetime]
    location: Optional[str]
    capacity: int
    registrations: list[RosterEntry] = field(default_factory=list)


@dataclass(frozen=True)
class UpcomingEvent:
    id: uuid.UUID
    title: str
    starts_at: datetime
    location: Optional[str]
    capacity: int
    registered_count: int

    @property
    def remaining_capacity(self) -> int:
        return self.capacity - self.registered_count

    @property
    def is_full(self) -> bool:
        return self.registered_count >= self.capacity


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    @property
    def next_offset(self) -> Optional[int]:
        return self.offset + self.limit if self.has_more else None


@dataclass(frozen=True)
class UpcomingPage:
    events: list[UpcomingEvent]
    pagination: Pagination


@dataclass(frozen=True)
class EventStats:
    total_registrations: int
    remaining_capacity: int
    percentage_used: float


def percentage_used(registrations: int, capacity: int) -> float:
    """registrations / capacity * 100, rounded half-up to 2 places like SQL ROUND."""
    ratio = Decimal(registrations) * 100 / Decimal(capacity)
    return float(ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def get_event_with_roster(db: Session, event_id: uuid.UUID) -> EventDetail:
    event = ledger.get_event(db, event_id)
    if event is None:
        raise EventNotFoundError(event_id)

    rows = db.execute(
        select(User.id, User.name, User.email)
        .join(Registration, Registration.user_id == User.id)
        .where(Registration.event_id == event_id)
        .order_by(Registration.registered_at, User.name)
    ).all()

    return EventDetail(
        id=event.id,
        title=event.title,
        starts_at=as_utc(event.starts_at),
        ends_at=as_utc(event.ends_at) if event.ends_at else None,
        location=event.location,
        capacity=event.capacity,
        registrations=[RosterEntry(user_id=r.id, name=r.name, email=r.email) for r in rows],
    )


def list_upcoming(
    db: Session,
    *,
    limit: int,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> UpcomingPage:
    """Events starting strictly after `now`, soonest first.

    Ties on start time go by location with missing locations last.
    """
    now = as_utc(now or utcnow())
    registered_count = func.count(Registration.id).label("registered_count")

    rows = db.execute(
        select(Event, registered_count)
        .outerjoin(Registration, Registration.event_id == Event.id)
        .where(Event.starts_at > now)
        .group_by(Event.id)
        .order_by(Event.starts_at.asc(), Event.location.asc().nulls_last(), Event.id.asc())
        .limit(limit)
        .offset(offset)
    ).all()

    total = db.scalar(select(func.count(Event.id)).where(Event.starts_at > now))

    events = [
        UpcomingEvent(
            id=event.id,
            title=event.title,
            starts_at=as_utc(event.starts_at),
            location=event.location,
            capacity=event.capacity,
            registered_count=int(count or 0),
        )
        for event, count in rows
    ]
    return UpcomingPage(
        events=events,
        pagination=Pagination(limit=limit, offset=offset, total=int(total or 0)),
    )


def get_event_stats(db: Session, event_id: uuid.UUID) -> EventStats:
    event = ledger.get_event(db, event_id)
    if event is None:
        raise EventNotFoundError(event_id)

    total = ledger.count_registrations(db, event_id)
    return EventStats(
        total_registrations=total,
        remaining_capacity=event.capacity - total,
        percentage_used=percentage_used(total, event.capacity),
    )
