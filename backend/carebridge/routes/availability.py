"""Provider calendar blocks (logical availability)."""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from carebridge.context import CurrentContext, require_account
from carebridge.database import get_session
from carebridge.errors import AuthorizationException, NotFoundException
from carebridge.models.provider import Provider
from carebridge.responses.availability import build_logical_availability_response
from carebridge.services.acuity_service import AcuitySyncManager, get_acuity_sync_manager
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.availability_service import AvailabilityService, CreateLogicalAvailabilityRequest
from carebridge.services.provider_service import ProviderService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_availability_service(
    session: Session = Depends(get_session),
    acuity_sync_manager: AcuitySyncManager = Depends(get_acuity_sync_manager),
) -> AvailabilityService:
    return AvailabilityService(session, acuity_sync_manager)


def _provider_for_calendar(session: Session, provider_id: UUID, context: CurrentContext, edit: bool) -> Provider:
    provider = ProviderService(session).get_provider(provider_id, context.institution_id)
    authorization_service = AuthorizationService(session)
    if edit:
        allowed = authorization_service.can_edit_provider_calendar(context.account, provider)
    else:
        allowed = authorization_service.can_view_provider_calendar(context.account, provider)
    if not allowed:
        raise AuthorizationException()
    return provider


@router.post("/logical-availabilities", status_code=201)
def create_logical_availability(
    request: CreateLogicalAvailabilityRequest,
    context: CurrentContext = Depends(require_account),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    _provider_for_calendar(availability_service.session, request.provider_id, context, edit=True)
    logical_availability = availability_service.create_logical_availability(request, context.account)
    logger.info(
        f"Created {logical_availability.logical_availability_type_id} availability "
        f"{logical_availability.logical_availability_id} for provider {request.provider_id}"
    )
    return {"logical_availability": build_logical_availability_response(logical_availability)}


@router.get("/logical-availabilities")
def get_logical_availabilities(
    provider_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    context: CurrentContext = Depends(require_account),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    _provider_for_calendar(availability_service.session, provider_id, context, edit=False)
    logical_availabilities = availability_service.find_logical_availabilities(provider_id, start_date, end_date)
    return {"logical_availabilities": [build_logical_availability_response(la) for la in logical_availabilities]}


@router.delete("/logical-availabilities/{logical_availability_id}", status_code=204)
def delete_logical_availability(
    logical_availability_id: UUID,
    context: CurrentContext = Depends(require_account),
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    logical_availability = availability_service.find_logical_availability_by_id(logical_availability_id)
    if logical_availability is None:
        raise NotFoundException(f"Logical availability {logical_availability_id} not found")
    _provider_for_calendar(availability_service.session, logical_availability.provider_id, context, edit=True)
    availability_service.delete_logical_availability(logical_availability_id)
    return Response(status_code=204)
