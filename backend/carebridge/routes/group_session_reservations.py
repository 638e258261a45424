import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from carebridge.context import CurrentContext, require_account
from carebridge.errors import AuthorizationException, NotFoundException
from carebridge.models.account import Account
from carebridge.models.group_session import GroupSession
from carebridge.responses.account import build_account_response
from carebridge.responses.group_session import build_reservation_response
from carebridge.routes.group_sessions import get_group_session_service
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.group_session_service import CreateReservationRequest, GroupSessionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/group-sessions/{group_session_id}/reservations")
def get_group_session_reservations(
    group_session_id: UUID,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    session = group_session_service.session
    group_session = group_session_service.get_group_session(group_session_id, context.institution_id)
    if not AuthorizationService(session).can_edit_group_session(context.account, group_session):
        raise AuthorizationException()

    reservations = []
    for reservation in group_session_service.find_reservations(group_session_id):
        response = build_reservation_response(reservation).model_dump()
        attendee = session.get(Account, reservation.account_id)
        response["account"] = build_account_response(attendee, context) if attendee else None
        reservations.append(response)
    return {"group_session_reservations": reservations}


@router.post("/group-session-reservations", status_code=201)
def create_group_session_reservation(
    request: CreateReservationRequest,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    reservation = group_session_service.create_reservation(request, context.account)
    logger.info(f"Account {context.account_id} holds reservation {reservation.group_session_reservation_id}")
    return {
        "group_session_reservation": build_reservation_response(reservation),
        "account": build_account_response(context.account, context),
    }


@router.put("/group-session-reservations/{group_session_reservation_id}/cancel")
def cancel_group_session_reservation(
    group_session_reservation_id: UUID,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    session = group_session_service.session
    reservation = group_session_service.find_reservation_by_id(group_session_reservation_id)
    if reservation is None:
        raise NotFoundException(f"Group session reservation {group_session_reservation_id} not found")

    if reservation.account_id != context.account_id:
        group_session = session.get(GroupSession, reservation.group_session_id)
        if not AuthorizationService(session).can_edit_group_session(context.account, group_session):
            raise AuthorizationException()

    group_session_service.cancel_reservation(reservation)
    return {"group_session_reservation": build_reservation_response(reservation)}
