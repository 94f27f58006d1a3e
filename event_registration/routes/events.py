import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from event_registration.core.config import Settings, get_app_settings
from event_registration.core.errors import ValidationFailedError
from event_registration.core.logging import log_operation
from event_registration.database.db import get_db
from event_registration.schemas.events import (
    EventCreate,
    EventCreated,
    EventDetailOut,
    EventStatsOut,
    UpcomingEventsOut,
)
from event_registration.services import availability
from event_registration.services.events import create_event as create_event_record

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post(
    "",
    response_model=EventCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(log_operation("CREATE_EVENT"))],
)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    event_id = create_event_record(
        db,
        title=payload.title,
        starts_at=payload.starts_at,
        ends_at=payload.ends_at,
        location=payload.location,
        capacity=payload.capacity,
        max_capacity=settings.max_event_capacity,
    )
    return EventCreated(event_id=event_id)


# must be declared before /{event_id}
@router.get(
    "/upcoming",
    response_model=UpcomingEventsOut,
    dependencies=[Depends(log_operation("GET_UPCOMING_EVENTS"))],
)
def upcoming_events(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if limit is None:
        limit = settings.default_page_limit
    elif limit > settings.max_page_limit:
        raise ValidationFailedError(f"limit must be at most {settings.max_page_limit}")

    page = availability.list_upcoming(db, limit=limit, offset=offset)
    return UpcomingEventsOut.model_validate(page)


@router.get(
    "/{event_id}",
    response_model=EventDetailOut,
    dependencies=[Depends(log_operation("GET_EVENT_DETAILS"))],
)
def event_detail(event_id: uuid.UUID, db: Session = Depends(get_db)):
    return EventDetailOut.model_validate(availability.get_event_with_roster(db, event_id))


@router.get(
    "/{event_id}/stats",
    response_model=EventStatsOut,
    dependencies=[Depends(log_operation("GET_EVENT_STATS"))],
)
def event_stats(event_id: uuid.UUID, db: Session = Depends(get_db)):
    return EventStatsOut.model_validate(availability.get_event_stats(db, event_id))
