"""Group session listing, submission, editing and status changes."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from carebridge.context import CurrentContext, get_current_context, require_account
from carebridge.database import get_session
from carebridge.errors import AuthenticationException, AuthorizationException, NotFoundException
from carebridge.models.group_session import GroupSession, GroupSessionStatusId
from carebridge.responses.group_session import (
    build_collection_response,
    build_group_session_response,
    build_reservation_response,
)
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.group_session_service import (
    GroupSessionOrderBy,
    GroupSessionService,
    GroupSessionViewType,
    SaveGroupSessionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class UpdateGroupSessionStatusRequest(BaseModel):
    group_session_status_id: GroupSessionStatusId


def get_group_session_service(session: Session = Depends(get_session)) -> GroupSessionService:
    return GroupSessionService(session)


def _require_editor(group_session_service: GroupSessionService, group_session: GroupSession, context: CurrentContext):
    if not AuthorizationService(group_session_service.session).can_edit_group_session(context.account, group_session):
        raise AuthorizationException()


def _group_session_response(group_session_service: GroupSessionService, group_session: GroupSession):
    return build_group_session_response(
        group_session, group_session_service.seats_reserved(group_session.group_session_id)
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/group-sessions")
def get_group_sessions(
    view_type: GroupSessionViewType = GroupSessionViewType.PATIENT,
    group_session_status_id: Optional[GroupSessionStatusId] = None,
    search_query: Optional[str] = None,
    url_name: Optional[str] = None,
    group_session_collection_id: Optional[UUID] = None,
    order_by: Optional[GroupSessionOrderBy] = None,
    page_number: Optional[int] = None,
    page_size: Optional[int] = None,
    context: CurrentContext = Depends(get_current_context),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    if view_type == GroupSessionViewType.ADMINISTRATOR and context.account is None:
        raise AuthenticationException()

    group_sessions, total_count = group_session_service.find_group_sessions(
        context.institution_id,
        account=context.account,
        view_type=view_type,
        group_session_status_id=group_session_status_id,
        search_query=search_query,
        url_name=url_name,
        group_session_collection_id=group_session_collection_id,
        order_by=order_by,
        page_number=page_number,
        page_size=page_size,
    )
    seats_reserved = group_session_service.seats_reserved_by_group_session(
        [gs.group_session_id for gs in group_sessions]
    )
    return {
        "group_sessions": [
            build_group_session_response(gs, seats_reserved.get(gs.group_session_id, 0)) for gs in group_sessions
        ],
        "total_count": total_count,
        "total_count_description": f"{total_count:,}",
    }


@router.get("/group-sessions/counts")
def get_group_session_counts(
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    counts = group_session_service.find_status_counts(context.institution_id, context.account)
    return {
        "group_session_counts": [
            {
                "group_session_status_id": status.value,
                "total_count": count,
                "total_count_description": f"{count:,}",
            }
            for status, count in counts.items()
        ]
    }


@router.get("/group-sessions/validate-url-name")
def validate_url_name(
    url_name: str,
    group_session_id: Optional[UUID] = None,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    available, recommendation = group_session_service.validate_url_name(
        url_name, context.institution_id, group_session_id
    )
    return {"available": available, "recommendation": recommendation}


@router.get("/group-sessions/{group_session_id_or_url_name}")
def get_group_session(
    group_session_id_or_url_name: str,
    context: CurrentContext = Depends(get_current_context),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    group_session = group_session_service.get_group_session(group_session_id_or_url_name, context.institution_id)

    reservation = None
    if context.account is not None:
        reservation = group_session_service.find_reservation_for_account(
            group_session.group_session_id, context.account_id
        )

    return {
        "group_session": _group_session_response(group_session_service, group_session),
        "group_session_reservation": build_reservation_response(reservation) if reservation else None,
    }


@router.post("/group-sessions", status_code=201)
def create_group_session(
    request: SaveGroupSessionRequest,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    group_session = group_session_service.create_group_session(request, context.account, context.time_zone)
    return {"group_session": _group_session_response(group_session_service, group_session)}


@router.put("/group-sessions/{group_session_id}")
def update_group_session(
    group_session_id: UUID,
    request: SaveGroupSessionRequest,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    group_session = group_session_service.get_group_session(group_session_id, context.institution_id)
    _require_editor(group_session_service, group_session, context)

    group_session = group_session_service.update_group_session(group_session, request)
    logger.info(f"Group session {group_session_id} updated by {context.account_id}")
    return {"group_session": _group_session_response(group_session_service, group_session)}


@router.post("/group-sessions/{group_session_id}/duplicate", status_code=201)
def duplicate_group_session(
    group_session_id: UUID,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    group_session = group_session_service.session.get(GroupSession, group_session_id)
    if group_session is None or group_session.group_session_status_id == GroupSessionStatusId.DELETED:
        raise NotFoundException(f"Group session {group_session_id} not found")
    # Sessions of other institutions are rejected by the duplicate itself
    if group_session.institution_id == context.institution_id:
        _require_editor(group_session_service, group_session, context)

    duplicate = group_session_service.duplicate_group_session(group_session, context.account)
    logger.info(f"Group session {group_session_id} duplicated as {duplicate.group_session_id}")
    return {"group_session": _group_session_response(group_session_service, duplicate)}


@router.put("/group-sessions/{group_session_id}/status")
def update_group_session_status(
    group_session_id: UUID,
    request: UpdateGroupSessionStatusRequest,
    context: CurrentContext = Depends(require_account),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    group_session = group_session_service.get_group_session(group_session_id, context.institution_id)
    if not AuthorizationService(group_session_service.session).can_edit_group_session_status(
        context.account, group_session
    ):
        raise AuthorizationException()

    group_session_service.update_group_session_status(group_session, request.group_session_status_id, context.account)
    return {"group_session": _group_session_response(group_session_service, group_session)}


@router.get("/group-session-collections")
def get_group_session_collections(
    context: CurrentContext = Depends(get_current_context),
    group_session_service: GroupSessionService = Depends(get_group_session_service),
):
    collections = group_session_service.find_collections(context.institution_id)
    return {"group_session_collections": [build_collection_response(c) for c in collections]}
