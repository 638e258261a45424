from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from carebridge.models.provider import SchedulingSystemId
from carebridge.utils.dates import utc_now


class VisitTypeId(str, Enum):
    INITIAL = "INITIAL"
    FOLLOWUP = "FOLLOWUP"
    OTHER = "OTHER"


class AttendanceStatusId(str, Enum):
    UNKNOWN = "UNKNOWN"
    MISSED = "MISSED"
    CANCELED = "CANCELED"
    ATTENDED = "ATTENDED"


class AppointmentType(SQLModel, table=True):
    __tablename__ = "appointment_type"

    appointment_type_id: UUID = Field(default_factory=uuid4, primary_key=True)
    provider_id: UUID = Field(foreign_key="provider.provider_id", index=True)
    name: str
    description: Optional[str] = None
    duration_in_minutes: int
    visit_type_id: VisitTypeId = Field(default=VisitTypeId.INITIAL, sa_column=Column(String, nullable=False))
    scheduling_system_id: SchedulingSystemId = Field(
        default=SchedulingSystemId.COBALT, sa_column=Column(String, nullable=False)
    )
    acuity_appointment_type_id: Optional[int] = None
    deleted: bool = Field(default=False)
    created: datetime = Field(default_factory=utc_now)


class Appointment(SQLModel, table=True):
    """A booked 1:1 appointment.

    ``start_time``/``end_time`` are wall-clock times in ``time_zone``.
    """

    __tablename__ = "appointment"

    appointment_id: UUID = Field(default_factory=uuid4, primary_key=True)
    provider_id: UUID = Field(foreign_key="provider.provider_id", index=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    created_by_account_id: UUID = Field(foreign_key="account.account_id")
    appointment_type_id: UUID = Field(foreign_key="appointment_type.appointment_type_id")
    acuity_appointment_id: Optional[int] = Field(default=None, index=True)
    title: str
    comment: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration_in_minutes: int
    time_zone: str
    videoconference_url: Optional[str] = None
    attendance_status_id: AttendanceStatusId = Field(
        default=AttendanceStatusId.UNKNOWN, sa_column=Column(String, nullable=False)
    )
    canceled: bool = Field(default=False)
    canceled_at: Optional[datetime] = None
    canceled_by_webhook: bool = Field(default=False)
    created: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
