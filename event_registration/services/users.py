from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from event_registration.database import ledger
from event_registration.models.users import User


def create_user(db: Session, *, name: str, email: str) -> User:
    with ledger.storage_errors("create_user"), ledger.write_transaction(db):
        user = ledger.insert_user(db, name=name, email=email)

    logger.info("Created user_id={}", user.id)
    return user


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.name, User.email)))
