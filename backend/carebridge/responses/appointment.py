from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.context import CurrentContext
from carebridge.models.appointment import Appointment, AttendanceStatusId
from carebridge.models.provider import Provider
from carebridge.responses.provider import ProviderResponse, build_provider_response
from carebridge.utils.dates import format_date_time_description, format_medium_date, format_time_description, utc_to_local


class AppointmentResponse(BaseModel):
    appointment_id: UUID
    provider_id: UUID
    account_id: UUID
    created_by_account_id: UUID
    appointment_type_id: UUID
    acuity_appointment_id: Optional[int] = None
    title: str
    comment: Optional[str] = None
    start_time: str
    start_time_description: str
    end_time: str
    end_time_description: str
    date_description: str
    duration_in_minutes: int
    time_zone: str
    videoconference_url: Optional[str] = None
    attendance_status_id: AttendanceStatusId
    canceled: bool
    canceled_at: Optional[str] = None
    created: str
    provider: Optional[ProviderResponse] = None


class AppointmentGroupResponse(BaseModel):
    date: str
    date_description: str
    appointments: List[AppointmentResponse]


def build_appointment_response(
    appointment: Appointment, context: CurrentContext, provider: Optional[Provider] = None
) -> AppointmentResponse:
    canceled_at = None
    if appointment.canceled_at is not None:
        canceled_at = utc_to_local(appointment.canceled_at, context.time_zone).isoformat()

    return AppointmentResponse(
        appointment_id=appointment.appointment_id,
        provider_id=appointment.provider_id,
        account_id=appointment.account_id,
        created_by_account_id=appointment.created_by_account_id,
        appointment_type_id=appointment.appointment_type_id,
        acuity_appointment_id=appointment.acuity_appointment_id,
        title=appointment.title,
        comment=appointment.comment,
        start_time=appointment.start_time.isoformat(),
        start_time_description=format_date_time_description(appointment.start_time),
        end_time=appointment.end_time.isoformat(),
        end_time_description=format_time_description(appointment.end_time),
        date_description=format_medium_date(appointment.start_time.date()),
        duration_in_minutes=appointment.duration_in_minutes,
        time_zone=appointment.time_zone,
        videoconference_url=appointment.videoconference_url,
        attendance_status_id=appointment.attendance_status_id,
        canceled=appointment.canceled,
        canceled_at=canceled_at,
        created=utc_to_local(appointment.created, context.time_zone).isoformat(),
        provider=build_provider_response(provider) if provider is not None else None,
    )


def build_appointment_groups(
    appointments: List[AppointmentResponse], context: CurrentContext
) -> List[AppointmentGroupResponse]:
    """Group by start date; the context's today is described as "Today"."""
    by_date = {}
    for appointment in appointments:
        by_date.setdefault(appointment.start_time[:10], []).append(appointment)

    today = context.today()
    groups = []
    for day in sorted(by_date):
        parsed = date.fromisoformat(day)
        groups.append(
            AppointmentGroupResponse(
                date=day,
                date_description="Today" if parsed == today else format_medium_date(parsed),
                appointments=by_date[day],
            )
        )
    return groups
