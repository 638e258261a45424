from typing import List
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.availability import LogicalAvailability, LogicalAvailabilityTypeId, RecurrenceTypeId
from carebridge.services.availability_service import AvailableSlot, CalendarWindow
from carebridge.utils.dates import format_time_description


class LogicalAvailabilityResponse(BaseModel):
    logical_availability_id: UUID
    provider_id: UUID
    logical_availability_type_id: LogicalAvailabilityTypeId
    recurrence_type_id: RecurrenceTypeId
    start_date_time: str
    end_date_time: str
    recur_monday: bool
    recur_tuesday: bool
    recur_wednesday: bool
    recur_thursday: bool
    recur_friday: bool
    recur_saturday: bool
    recur_sunday: bool
    appointment_type_ids: List[UUID] = []


class CalendarWindowResponse(BaseModel):
    logical_availability_id: UUID
    logical_availability_type_id: LogicalAvailabilityTypeId
    start_time: str
    end_time: str
    appointment_type_ids: List[UUID] = []


class AvailableTimeResponse(BaseModel):
    time: str
    time_description: str
    date_time: str
    appointment_type_ids: List[UUID]


def build_logical_availability_response(logical_availability: LogicalAvailability) -> LogicalAvailabilityResponse:
    return LogicalAvailabilityResponse(
        logical_availability_id=logical_availability.logical_availability_id,
        provider_id=logical_availability.provider_id,
        logical_availability_type_id=logical_availability.logical_availability_type_id,
        recurrence_type_id=logical_availability.recurrence_type_id,
        start_date_time=logical_availability.start_date_time.isoformat(),
        end_date_time=logical_availability.end_date_time.isoformat(),
        recur_monday=logical_availability.recur_monday,
        recur_tuesday=logical_availability.recur_tuesday,
        recur_wednesday=logical_availability.recur_wednesday,
        recur_thursday=logical_availability.recur_thursday,
        recur_friday=logical_availability.recur_friday,
        recur_saturday=logical_availability.recur_saturday,
        recur_sunday=logical_availability.recur_sunday,
        appointment_type_ids=[UUID(str(t)) for t in (logical_availability.appointment_type_ids or [])],
    )


def build_calendar_window_response(window: CalendarWindow) -> CalendarWindowResponse:
    return CalendarWindowResponse(
        logical_availability_id=window.logical_availability_id,
        logical_availability_type_id=window.logical_availability_type_id,
        start_time=window.start_time.isoformat(),
        end_time=window.end_time.isoformat(),
        appointment_type_ids=window.appointment_type_ids,
    )


def build_available_time_response(slot: AvailableSlot) -> AvailableTimeResponse:
    return AvailableTimeResponse(
        time=slot.start_time.strftime("%H:%M"),
        time_description=format_time_description(slot.start_time),
        date_time=slot.start_time.isoformat(),
        appointment_type_ids=slot.appointment_type_ids,
    )
