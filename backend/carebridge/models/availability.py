from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

from carebridge.utils.dates import utc_now


class LogicalAvailabilityTypeId(str, Enum):
    OPEN = "OPEN"
    BLOCK = "BLOCK"


class RecurrenceTypeId(str, Enum):
    NONE = "NONE"
    DAILY = "DAILY"


class LogicalAvailability(SQLModel, table=True):
    """An open or blocked range on a provider's calendar.

    For DAILY recurrence the time-of-day window of start/end repeats on every
    flagged weekday from the start date through the end date.
    """

    __tablename__ = "logical_availability"

    logical_availability_id: UUID = Field(default_factory=uuid4, primary_key=True)
    provider_id: UUID = Field(foreign_key="provider.provider_id", index=True)
    logical_availability_type_id: LogicalAvailabilityTypeId = Field(sa_column=Column(String, nullable=False))
    recurrence_type_id: RecurrenceTypeId = Field(
        default=RecurrenceTypeId.NONE, sa_column=Column(String, nullable=False)
    )
    start_date_time: datetime
    end_date_time: datetime
    recur_monday: bool = Field(default=False)
    recur_tuesday: bool = Field(default=False)
    recur_wednesday: bool = Field(default=False)
    recur_thursday: bool = Field(default=False)
    recur_friday: bool = Field(default=False)
    recur_saturday: bool = Field(default=False)
    recur_sunday: bool = Field(default=False)
    # Empty means every appointment type of the provider
    appointment_type_ids: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    created_by_account_id: Optional[UUID] = Field(default=None, foreign_key="account.account_id")
    created: datetime = Field(default_factory=utc_now)

    def recurs_on(self, weekday: int) -> bool:
        """``weekday`` as returned by ``date.weekday()`` (Monday == 0)."""
        flags = (
            self.recur_monday,
            self.recur_tuesday,
            self.recur_wednesday,
            self.recur_thursday,
            self.recur_friday,
            self.recur_saturday,
            self.recur_sunday,
        )
        return bool(flags[weekday])
