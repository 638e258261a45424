"""
Appointment booking, listing, rescheduling and cancellation, plus calendar
exports for a booked appointment.
"""

import logging
from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse, Response
from pydantic import BaseModel
from sqlmodel import Session

from carebridge.context import CurrentContext, require_account
from carebridge.database import get_session
from carebridge.errors import AuthorizationException, NotFoundException, ValidationException
from carebridge.models.account import Account, RoleId
from carebridge.models.activity_tracking import ActivityActionId, ActivityTypeId
from carebridge.models.appointment import Appointment, AttendanceStatusId
from carebridge.models.audit_log import AuditLogEventId
from carebridge.models.provider import Provider
from carebridge.responses.account import build_account_response
from carebridge.responses.appointment import build_appointment_groups, build_appointment_response
from carebridge.services.activity_tracking_service import ActivityTrackingService
from carebridge.services.acuity_service import AcuitySyncManager, get_acuity_sync_manager
from carebridge.services.appointment_service import (
    AppointmentListType,
    AppointmentService,
    CreateAppointmentRequest,
    RescheduleAppointmentRequest,
)
from carebridge.services.audit_log_service import AuditLogService
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.availability_service import AvailabilityService
from carebridge.services.provider_service import ProviderService, validate_date_range
from carebridge.utils.ical import generate_google_calendar_url, generate_ical_invite

logger = logging.getLogger(__name__)

router = APIRouter()


class AppointmentResponseFormat(str, Enum):
    DEFAULT = "DEFAULT"
    GROUPED_BY_DATE = "GROUPED_BY_DATE"


# ============================================================================
# Request Models
# ============================================================================


class UpdateAttendanceStatusRequest(BaseModel):
    attendance_status_id: AttendanceStatusId


# ============================================================================
# Dependencies
# ============================================================================


def get_appointment_service(
    session: Session = Depends(get_session),
    acuity_sync_manager: AcuitySyncManager = Depends(get_acuity_sync_manager),
) -> AppointmentService:
    return AppointmentService(session, availability_service=AvailabilityService(session, acuity_sync_manager))


def _get_appointment(appointment_service: AppointmentService, appointment_id: UUID) -> Appointment:
    appointment = appointment_service.find_appointment_by_id(appointment_id)
    if appointment is None:
        raise NotFoundException(f"Appointment {appointment_id} not found")
    return appointment


def _appointment_response(session: Session, appointment: Appointment, context: CurrentContext):
    return build_appointment_response(appointment, context, session.get(Provider, appointment.provider_id))


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/appointments")
def get_appointments(
    response_format: AppointmentResponseFormat = AppointmentResponseFormat.DEFAULT,
    list_type: AppointmentListType = Query(AppointmentListType.UPCOMING, alias="type"),
    account_id: Optional[UUID] = None,
    provider_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    authorization_service = AuthorizationService(session)

    if provider_id is not None:
        provider = ProviderService(session).get_provider(provider_id, context.institution_id)
        if not authorization_service.can_view_provider_calendar(context.account, provider):
            raise AuthorizationException()
        validate_date_range(start_date, end_date)
        appointments = appointment_service.find_appointments_for_provider(provider_id, start_date, end_date)
    else:
        target_account = context.account
        # Only staff may look at someone else's appointments
        if account_id is not None and context.has_role(RoleId.MHIC, RoleId.ADMINISTRATOR):
            target_account = session.get(Account, account_id)
            if target_account is None or not authorization_service.can_view_account(context.account, target_account):
                raise AuthorizationException()
        appointments = appointment_service.find_appointments_for_account(target_account.account_id, list_type)

    providers = {}
    responses = []
    for appointment in appointments:
        if appointment.provider_id not in providers:
            providers[appointment.provider_id] = session.get(Provider, appointment.provider_id)
        responses.append(build_appointment_response(appointment, context, providers[appointment.provider_id]))

    ActivityTrackingService(session).track(
        context,
        ActivityTypeId.URL,
        ActivityActionId.VIEW,
        activity_key="/appointments",
        data={"type": list_type.value, "response_format": response_format.value},
    )

    if response_format == AppointmentResponseFormat.GROUPED_BY_DATE:
        return {"appointment_groups": build_appointment_groups(responses, context)}
    return {"appointments": responses}


@router.get("/appointments/{appointment_id}")
def get_appointment(
    appointment_id: UUID,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    appointment = _get_appointment(appointment_service, appointment_id)
    if not AuthorizationService(session).can_view_appointment(context.account, appointment):
        raise AuthorizationException()

    AuditLogService(session).audit(
        AuditLogEventId.APPOINTMENT_LOOKUP,
        account_id=context.account_id,
        message=f"Looked up appointment {appointment_id}",
        payload={"appointment_id": appointment_id},
    )
    return {"appointment": _appointment_response(session, appointment, context)}


@router.post("/appointments", status_code=201)
def create_appointment(
    request: CreateAppointmentRequest,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    if request.account_id is not None and request.account_id != context.account_id:
        target_account = session.get(Account, request.account_id)
        if target_account is None:
            raise ValidationException.for_field("account_id", "Account is invalid.")
        if not AuthorizationService(session).can_book_for_account(context.account, target_account):
            raise AuthorizationException()

    appointment = appointment_service.create_appointment(request, context)
    account = session.get(Account, appointment.account_id)

    AuditLogService(session).audit(
        AuditLogEventId.APPOINTMENT_CREATE,
        account_id=context.account_id,
        message=f"Booked appointment {appointment.appointment_id}",
        payload=request.model_dump(),
    )
    ActivityTrackingService(session).track(
        context,
        ActivityTypeId.APPOINTMENT,
        ActivityActionId.CREATE,
        activity_key=str(appointment.appointment_id),
        data={"appointment_id": appointment.appointment_id},
    )

    return {
        "appointment": _appointment_response(session, appointment, context),
        "account": build_account_response(account, context),
    }


@router.put("/appointments/{appointment_id}/reschedule")
def reschedule_appointment(
    appointment_id: UUID,
    request: RescheduleAppointmentRequest,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    appointment = _get_appointment(appointment_service, appointment_id)
    if not AuthorizationService(session).can_update_appointment(context.account, appointment):
        raise AuthorizationException()

    appointment = appointment_service.reschedule_appointment(appointment, request, context.institution_id)
    AuditLogService(session).audit(
        AuditLogEventId.APPOINTMENT_RESCHEDULE,
        account_id=context.account_id,
        message=f"Rescheduled appointment {appointment_id}",
        payload=request.model_dump(),
    )
    return {"appointment": _appointment_response(session, appointment, context)}


@router.put("/appointments/{appointment_id}/cancel")
def cancel_appointment(
    appointment_id: UUID,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    appointment = _get_appointment(appointment_service, appointment_id)
    if not AuthorizationService(session).can_cancel_appointment(context.account, appointment):
        raise AuthorizationException()

    if appointment_service.cancel_appointment(appointment):
        AuditLogService(session).audit(
            AuditLogEventId.APPOINTMENT_CANCEL,
            account_id=context.account_id,
            message=f"Canceled appointment {appointment_id}",
            payload={"appointment_id": appointment_id},
        )
        ActivityTrackingService(session).track(
            context,
            ActivityTypeId.APPOINTMENT,
            ActivityActionId.CANCEL,
            activity_key=str(appointment_id),
            data={"appointment_id": appointment_id},
        )
    return {"appointment": _appointment_response(session, appointment, context)}


@router.put("/appointments/{appointment_id}/attendance-status")
def update_attendance_status(
    appointment_id: UUID,
    request: UpdateAttendanceStatusRequest,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    appointment = _get_appointment(appointment_service, appointment_id)
    if not AuthorizationService(session).can_update_appointment(context.account, appointment):
        raise AuthorizationException()

    appointment = appointment_service.update_attendance_status(appointment, request.attendance_status_id)
    return {"appointment": _appointment_response(session, appointment, context)}


@router.get("/appointments/{appointment_id}/google-calendar")
def get_google_calendar_link(
    appointment_id: UUID,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    appointment = _get_appointment(appointment_service, appointment_id)
    if not AuthorizationService(appointment_service.session).can_view_appointment(context.account, appointment):
        raise AuthorizationException()

    url = generate_google_calendar_url(
        appointment.title,
        appointment.start_time,
        appointment.end_time,
        appointment.time_zone,
        description=appointment.comment,
        location=appointment.videoconference_url,
    )
    return RedirectResponse(url, status_code=302)


@router.get("/appointments/{appointment_id}/ical")
def get_ical_invite(
    appointment_id: UUID,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    session = appointment_service.session
    appointment = _get_appointment(appointment_service, appointment_id)
    if not AuthorizationService(session).can_view_appointment(context.account, appointment):
        raise AuthorizationException()

    provider = session.get(Provider, appointment.provider_id)
    invite = generate_ical_invite(
        str(appointment.appointment_id),
        appointment.title,
        appointment.start_time,
        appointment.end_time,
        appointment.time_zone,
        description=appointment.comment,
        location=appointment.videoconference_url,
        organizer_email_address=provider.email_address if provider else None,
    )
    return Response(
        content=invite,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="invite.ics"'},
    )
