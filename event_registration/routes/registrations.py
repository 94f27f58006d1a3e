import uuid

from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy.orm import Session

from event_registration.core.config import Settings, get_app_settings
from event_registration.core.logging import log_operation
from event_registration.database.db import get_db
from event_registration.schemas.registrations import (
    CancellationOut,
    RegistrationOut,
    RegistrationRequest,
)
from event_registration.services import registrations
from event_registration.tasks import send_cancellation_notice, send_registration_confirmation

router = APIRouter(prefix="/api/events", tags=["registrations"])


def _enqueue(task, payload: dict) -> None:
    # the registration is already committed; a broker outage must not undo the response
    try:
        task.apply_async(args=[payload], retry=False)
    except Exception:
        logger.exception("Could not enqueue {}", task.name)


@router.post(
    "/{event_id}/register",
    response_model=RegistrationOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(log_operation("REGISTER_USER"))],
)
def register_user(
    event_id: uuid.UUID,
    payload: RegistrationRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    result = registrations.register(
        db,
        event_id=event_id,
        user_id=payload.user_id,
        lock_timeout=settings.lock_timeout_seconds,
    )

    # enqueue durable background work to notify the attendee
    _enqueue(
        send_registration_confirmation,
        {
            "registration_id": str(result.registration_id),
            "registered_at": result.registered_at.isoformat(),
            "event_id": str(result.event_id),
            "event_title": result.event_title,
            "user_name": result.user_name,
            "user_email": result.user_email,
        },
    )
    return RegistrationOut.model_validate(result)


@router.delete(
    "/{event_id}/register",
    response_model=CancellationOut,
    dependencies=[Depends(log_operation("CANCEL_REGISTRATION"))],
)
def cancel_registration(
    event_id: uuid.UUID,
    payload: RegistrationRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    result = registrations.cancel(
        db,
        event_id=event_id,
        user_id=payload.user_id,
        lock_timeout=settings.lock_timeout_seconds,
    )

    _enqueue(
        send_cancellation_notice,
        {
            "event_id": str(result.event_id),
            "event_title": result.event_title,
            "user_name": result.user_name,
            "user_email": result.user_email,
        },
    )
    return CancellationOut.model_validate(result)
