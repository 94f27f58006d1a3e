from loguru import logger

from event_registration.core.celery_config import celery_app


@celery_app.task(bind=True)
def send_registration_confirmation(self, registration: dict) -> dict:
    """Notify an attendee that their registration went through.

    Runs after commit with a JSON payload only; it never reads the ledger, so a
    slow or failed notification cannot affect capacity.
    """
    logger.info(
        "Sending registration confirmation to {} for '{}' (registration {})",
        registration["user_email"],
        registration["event_title"],
        registration["registration_id"],
    )
    return {
        "to": registration["user_email"],
        "subject": f"You're registered: {registration['event_title']}",
        "registration_id": registration["registration_id"],
    }


@celery_app.task(bind=True)
def send_cancellation_notice(self, cancellation: dict) -> dict:
    logger.info(
        "Sending cancellation notice to {} for '{}'",
        cancellation["user_email"],
        cancellation["event_title"],
    )
    return {
        "to": cancellation["user_email"],
        "subject": f"Registration cancelled: {cancellation['event_title']}",
        "event_id": cancellation["event_id"],
    }
