import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: uuid.UUID = Field(alias="userId")


class RegistrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    registration_id: uuid.UUID = Field(alias="registrationId")
    registered_at: datetime
    message: str
    remaining_capacity: int


class CancellationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    event_title: str
