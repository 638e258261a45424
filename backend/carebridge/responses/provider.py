from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.appointment import AppointmentType, VisitTypeId
from carebridge.models.provider import CalendarPermission, CalendarPermissionId, Provider, SchedulingSystemId


class ProviderResponse(BaseModel):
    provider_id: UUID
    institution_id: str
    name: str
    title: Optional[str] = None
    email_address: Optional[str] = None
    image_url: Optional[str] = None
    bio: Optional[str] = None
    time_zone: str
    locale: str
    scheduling_system_id: SchedulingSystemId
    intake_assessment_id: Optional[UUID] = None
    intake_assessment_required: bool


class AppointmentTypeResponse(BaseModel):
    appointment_type_id: UUID
    provider_id: UUID
    name: str
    description: Optional[str] = None
    duration_in_minutes: int
    duration_in_minutes_description: str
    visit_type_id: VisitTypeId
    scheduling_system_id: SchedulingSystemId


class CalendarPermissionResponse(BaseModel):
    account_id: UUID
    provider_id: UUID
    calendar_permission_id: CalendarPermissionId


def build_provider_response(provider: Provider) -> ProviderResponse:
    return ProviderResponse(
        provider_id=provider.provider_id,
        institution_id=provider.institution_id,
        name=provider.name,
        title=provider.title,
        email_address=provider.email_address,
        image_url=provider.image_url,
        bio=provider.bio,
        time_zone=provider.time_zone,
        locale=provider.locale,
        scheduling_system_id=provider.scheduling_system_id,
        intake_assessment_id=provider.intake_assessment_id,
        intake_assessment_required=provider.intake_assessment_id is not None,
    )


def describe_duration(duration_in_minutes: int) -> str:
    if duration_in_minutes < 60 or duration_in_minutes % 60:
        return f"{duration_in_minutes} minutes"
    hours = duration_in_minutes // 60
    return "1 hour" if hours == 1 else f"{hours} hours"


def build_appointment_type_response(appointment_type: AppointmentType) -> AppointmentTypeResponse:
    return AppointmentTypeResponse(
        appointment_type_id=appointment_type.appointment_type_id,
        provider_id=appointment_type.provider_id,
        name=appointment_type.name,
        description=appointment_type.description,
        duration_in_minutes=appointment_type.duration_in_minutes,
        duration_in_minutes_description=describe_duration(appointment_type.duration_in_minutes),
        visit_type_id=appointment_type.visit_type_id,
        scheduling_system_id=appointment_type.scheduling_system_id,
    )


def build_calendar_permission_response(permission: CalendarPermission) -> CalendarPermissionResponse:
    return CalendarPermissionResponse(
        account_id=permission.account_id,
        provider_id=permission.provider_id,
        calendar_permission_id=permission.calendar_permission_id,
    )


def build_appointment_type_responses(appointment_types: List[AppointmentType]) -> List[AppointmentTypeResponse]:
    return [build_appointment_type_response(t) for t in appointment_types]
