"""User and Event models.

Both mirror entities owned by other systems: users come from the identity
provider and events from the event-management service. Only the columns
needed for ownership checks and lifecycle preconditions are kept here.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from collab.db.custom_types import UTCDateTime
from collab.db.models.base import UUIDModel, TimestampMixin


class UserBase(SQLModel):
    """Base user fields shared across Create/Read."""

    full_name: Optional[str] = Field(default=None, index=True)
    email: str = Field(unique=True, index=True)


class User(UUIDModel, UserBase, TimestampMixin, table=True):
    """User table - global identity resolved from bearer tokens."""

    __tablename__ = "users"

    is_active: bool = Field(default=True)


class UserCreate(UserBase):
    """Schema for creating a new user."""

    pass


class UserRead(UserBase):
    """Schema for reading user data."""

    id: UUID
    is_active: bool = True


class EventStatus(str, Enum):
    """Status of the external event a workspace belongs to."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EventBase(SQLModel):
    """Base event fields shared across Create/Read."""

    name: str = Field(index=True)
    category: Optional[str] = Field(default=None, max_length=50)
    start_date: datetime = Field(sa_type=UTCDateTime)
    end_date: datetime = Field(sa_type=UTCDateTime)
    status: EventStatus = Field(default=EventStatus.PUBLISHED)


class Event(UUIDModel, EventBase, TimestampMixin, table=True):
    """Event table - read-only for the workspace service.

    The organizer is the only user allowed to provision the event's
    workspace.
    """

    __tablename__ = "events"

    organizer_id: UUID = Field(foreign_key="users.id", index=True)

    def has_concluded(self, now: datetime) -> bool:
        """True once the event is completed, cancelled or past its end date."""
        return (
            self.status in (EventStatus.COMPLETED, EventStatus.CANCELLED)
            or self.end_date < now
        )


class EventCreate(EventBase):
    """Schema for creating a new event."""

    organizer_id: UUID


class EventRead(EventBase):
    """Schema for reading event data."""

    id: UUID
    organizer_id: UUID
