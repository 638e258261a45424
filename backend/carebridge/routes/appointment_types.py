import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from carebridge.context import CurrentContext, get_current_context, require_account
from carebridge.errors import AuthorizationException
from carebridge.responses.provider import build_appointment_type_response, build_appointment_type_responses
from carebridge.routes.appointments import get_appointment_service
from carebridge.services.appointment_service import (
    AppointmentService,
    CreateAppointmentTypeRequest,
    UpdateAppointmentTypeRequest,
)
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.provider_service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/appointment-types")
def get_appointment_types(
    provider_id: UUID,
    context: CurrentContext = Depends(get_current_context),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    ProviderService(appointment_service.session).get_provider(provider_id, context.institution_id)
    appointment_types = appointment_service.availability_service.find_appointment_types(provider_id)
    return {"appointment_types": build_appointment_type_responses(appointment_types)}


@router.post("/appointment-types", status_code=201)
def create_appointment_type(
    request: CreateAppointmentTypeRequest,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    # Only provider accounts create types, and only for themselves
    if context.account.provider_id is None:
        raise AuthorizationException()
    provider = ProviderService(appointment_service.session).get_provider(
        context.account.provider_id, context.institution_id
    )
    appointment_type = appointment_service.create_appointment_type(provider, request)
    logger.info(f"Provider {provider.provider_id} created appointment type {appointment_type.appointment_type_id}")
    return {"appointment_type": build_appointment_type_response(appointment_type)}


@router.put("/appointment-types/{appointment_type_id}")
def update_appointment_type(
    appointment_type_id: UUID,
    request: UpdateAppointmentTypeRequest,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    appointment_type = appointment_service.get_appointment_type(appointment_type_id)
    if not AuthorizationService(appointment_service.session).can_update_appointment_type(
        context.account, appointment_type
    ):
        raise AuthorizationException()
    appointment_type = appointment_service.update_appointment_type(appointment_type, request)
    return {"appointment_type": build_appointment_type_response(appointment_type)}


@router.delete("/appointment-types/{appointment_type_id}", status_code=204)
def delete_appointment_type(
    appointment_type_id: UUID,
    context: CurrentContext = Depends(require_account),
    appointment_service: AppointmentService = Depends(get_appointment_service),
):
    appointment_type = appointment_service.get_appointment_type(appointment_type_id)
    if not AuthorizationService(appointment_service.session).can_delete_appointment_type(
        context.account, appointment_type
    ):
        raise AuthorizationException()
    appointment_service.delete_appointment_type(appointment_type)
    logger.info(f"Appointment type {appointment_type_id} deleted by {context.account_id}")
    return Response(status_code=204)
