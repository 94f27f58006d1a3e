import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from event_registration.database.db import Base

if TYPE_CHECKING:
    from event_registration.models.registrations import Registration

MAX_CAPACITY = 1000


class Event(Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)

    registrations: Mapped[list["Registration"]] = relationship(back_populates="event")

    __table_args__ = (
        CheckConstraint(
            f"capacity >= 1 AND capacity <= {MAX_CAPACITY}",
            name="ck_events_capacity_range",
        ),
        CheckConstraint(
            "ends_at IS NULL OR ends_at > starts_at",
            name="ck_events_ends_after_starts",
        ),
        Index("ix_events_starts_at_location", "starts_at", "location"),
    )
