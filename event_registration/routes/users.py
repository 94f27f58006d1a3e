from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from event_registration.core.logging import log_operation
from event_registration.database.db import get_db
from event_registration.schemas.users import UserCreate, UserOut
from event_registration.services.users import create_user as create_user_record
from event_registration.services.users import list_users as list_user_records

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post(
    "",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(log_operation("CREATE_USER"))],
)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    return create_user_record(db, name=payload.name, email=payload.email)


@router.get(
    "",
    response_model=list[UserOut],
    dependencies=[Depends(log_operation("LIST_USERS"))],
)
def list_users(db: Session = Depends(get_db)):
    return list_user_records(db)
