"""Provider directory, availability search and provider calendars."""

import logging
from datetime import date, time, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from carebridge.context import CurrentContext, get_current_context, require_account
from carebridge.errors import AuthorizationException, ValidationException
from carebridge.models.account import Account
from carebridge.models.appointment import VisitTypeId
from carebridge.models.provider import CalendarPermissionId
from carebridge.responses.appointment import build_appointment_response
from carebridge.responses.availability import build_available_time_response, build_calendar_window_response
from carebridge.responses.provider import (
    build_appointment_type_responses,
    build_calendar_permission_response,
    build_provider_response,
)
from carebridge.routes.availability import get_availability_service
from carebridge.services.appointment_service import AppointmentService
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.availability_service import AvailabilityService
from carebridge.services.provider_service import ProviderService, validate_date_range
from carebridge.utils.dates import format_medium_date

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_SEARCH_DAYS = 14


class ProviderFindRequest(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    provider_ids: List[UUID] = []
    visit_type_ids: List[VisitTypeId] = []
    start_time: Optional[time] = None
    end_time: Optional[time] = None


class CalendarPermissionRequest(BaseModel):
    account_id: UUID
    calendar_permission_id: Optional[CalendarPermissionId] = None


@router.get("/providers")
def get_providers(
    search: Optional[str] = None,
    context: CurrentContext = Depends(get_current_context),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    providers = ProviderService(availability_service.session).find_providers(context.institution_id, search)
    return {"providers": [build_provider_response(provider) for provider in providers]}


@router.post("/providers/find")
def find_provider_availability(
    request: ProviderFindRequest,
    context: CurrentContext = Depends(get_current_context),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    """Open appointment times per provider and date"""
    start_date = request.start_date or context.today()
    end_date = request.end_date or start_date + timedelta(days=DEFAULT_SEARCH_DAYS)
    validate_date_range(start_date, end_date)

    providers = ProviderService(availability_service.session).find_providers(
        context.institution_id, provider_ids=request.provider_ids or None
    )

    sections = []
    for provider in providers:
        slots_by_date = availability_service.find_available_slots(
            provider, start_date, end_date, visit_type_ids=request.visit_type_ids or None
        )
        dates = []
        for slot_date in sorted(slots_by_date):
            slots = [
                slot
                for slot in slots_by_date[slot_date]
                if (request.start_time is None or slot.start_time.time() >= request.start_time)
                and (request.end_time is None or slot.start_time.time() <= request.end_time)
            ]
            if not slots:
                continue
            dates.append(
                {
                    "date": slot_date.isoformat(),
                    "date_description": format_medium_date(slot_date),
                    "times": [build_available_time_response(slot) for slot in slots],
                }
            )
        sections.append(
            {
                "provider": build_provider_response(provider),
                "appointment_types": build_appointment_type_responses(
                    availability_service.find_appointment_types(provider.provider_id)
                ),
                "dates": dates,
            }
        )

    return {"start_date": start_date.isoformat(), "end_date": end_date.isoformat(), "providers": sections}


@router.get("/providers/{provider_id}")
def get_provider(
    provider_id: UUID,
    context: CurrentContext = Depends(get_current_context),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    provider = ProviderService(availability_service.session).get_provider(provider_id, context.institution_id)
    return {
        "provider": build_provider_response(provider),
        "appointment_types": build_appointment_type_responses(availability_service.find_appointment_types(provider_id)),
    }


@router.get("/providers/{provider_id}/calendar")
def get_provider_calendar(
    provider_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    context: CurrentContext = Depends(require_account),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    session = availability_service.session
    provider = ProviderService(session).get_provider(provider_id, context.institution_id)
    if not AuthorizationService(session).can_view_provider_calendar(context.account, provider):
        raise AuthorizationException()
    validate_date_range(start_date, end_date)

    windows = availability_service.find_calendar_windows(provider_id, start_date, end_date)
    appointments = AppointmentService(session, availability_service=availability_service).find_appointments_for_provider(
        provider_id, start_date, end_date
    )
    return {
        "provider": build_provider_response(provider),
        "availabilities": [build_calendar_window_response(window) for window in windows],
        "appointments": [build_appointment_response(a, context) for a in appointments],
    }


@router.get("/providers/{provider_id}/calendar-permissions")
def get_calendar_permissions(
    provider_id: UUID,
    context: CurrentContext = Depends(require_account),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    session = availability_service.session
    provider_service = ProviderService(session)
    provider = provider_service.get_provider(provider_id, context.institution_id)
    if not AuthorizationService(session).can_administer_institution(context.account, provider.institution_id):
        raise AuthorizationException()
    permissions = provider_service.find_calendar_permissions(provider_id)
    return {"calendar_permissions": [build_calendar_permission_response(p) for p in permissions]}


@router.put("/providers/{provider_id}/calendar-permissions")
def set_calendar_permission(
    provider_id: UUID,
    request: CalendarPermissionRequest,
    context: CurrentContext = Depends(require_account),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    session = availability_service.session
    provider_service = ProviderService(session)
    provider = provider_service.get_provider(provider_id, context.institution_id)
    if not AuthorizationService(session).can_administer_institution(context.account, provider.institution_id):
        raise AuthorizationException()

    account = session.get(Account, request.account_id)
    if account is None:
        raise ValidationException.for_field("account_id", "Account is invalid.")
    provider_service.set_calendar_permission(provider, account, request.calendar_permission_id)
    permissions = provider_service.find_calendar_permissions(provider_id)
    return {"calendar_permissions": [build_calendar_permission_response(p) for p in permissions]}
