from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel, UniqueConstraint

from carebridge.utils.dates import utc_now


class SchedulingSystemId(str, Enum):
    COBALT = "COBALT"
    ACUITY = "ACUITY"


class CalendarPermissionId(str, Enum):
    MANAGER = "MANAGER"
    VIEWER = "VIEWER"


class Provider(SQLModel, table=True):
    __tablename__ = "provider"

    provider_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    name: str
    title: Optional[str] = None
    email_address: Optional[str] = None
    image_url: Optional[str] = None
    bio: Optional[str] = None
    time_zone: str = Field(default="America/New_York")
    locale: str = Field(default="en-US")
    scheduling_system_id: SchedulingSystemId = Field(
        default=SchedulingSystemId.COBALT, sa_column=Column(String, nullable=False)
    )
    acuity_calendar_id: Optional[int] = Field(default=None, index=True)
    intake_assessment_id: Optional[UUID] = Field(default=None, foreign_key="assessment.assessment_id")
    videoconference_url: Optional[str] = None
    active: bool = Field(default=True)
    created: datetime = Field(default_factory=utc_now)


class CalendarPermission(SQLModel, table=True):
    """Grants an account access to a provider's calendar."""

    __tablename__ = "account_calendar_permission"
    __table_args__ = (UniqueConstraint("account_id", "provider_id", name="uq_account_provider_permission"),)

    account_calendar_permission_id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    provider_id: UUID = Field(foreign_key="provider.provider_id", index=True)
    calendar_permission_id: CalendarPermissionId = Field(sa_column=Column(String, nullable=False))
    created: datetime = Field(default_factory=utc_now)
