"""Group session requests: sessions attendees can ask a facilitator to run."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlmodel import Session

from carebridge.context import CurrentContext, require_account
from carebridge.database import get_session
from carebridge.errors import AuthorizationException
from carebridge.models.group_session import GroupSessionRequest, GroupSessionRequestStatusId
from carebridge.responses.group_session import build_group_session_request_response
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.group_session_request_service import (
    GroupSessionRequestService,
    SaveGroupSessionRequestRequest,
)
from carebridge.services.group_session_service import GroupSessionViewType

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class UpdateGroupSessionRequestStatusRequest(BaseModel):
    group_session_request_status_id: GroupSessionRequestStatusId


def get_group_session_request_service(session: Session = Depends(get_session)) -> GroupSessionRequestService:
    return GroupSessionRequestService(session)


def _require_editor(
    group_session_request_service: GroupSessionRequestService,
    group_session_request: GroupSessionRequest,
    context: CurrentContext,
):
    if not AuthorizationService(group_session_request_service.session).can_edit_group_session_request(
        context.account, group_session_request
    ):
        raise AuthorizationException()


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/group-session-requests")
def get_group_session_requests(
    view_type: GroupSessionViewType = GroupSessionViewType.PATIENT,
    search_query: Optional[str] = None,
    url_name: Optional[str] = None,
    page_number: Optional[int] = None,
    page_size: Optional[int] = None,
    context: CurrentContext = Depends(require_account),
    group_session_request_service: GroupSessionRequestService = Depends(get_group_session_request_service),
):
    group_session_requests, total_count = group_session_request_service.find_group_session_requests(
        context.institution_id,
        context.account,
        view_type=view_type,
        search_query=search_query,
        url_name=url_name,
        page_number=page_number,
        page_size=page_size,
    )
    return {
        "group_session_requests": [build_group_session_request_response(gsr) for gsr in group_session_requests],
        "total_count": total_count,
        "total_count_description": f"{total_count:,}",
    }


@router.get("/group-session-requests/{group_session_request_id}")
def get_group_session_request(
    group_session_request_id: UUID,
    context: CurrentContext = Depends(require_account),
    group_session_request_service: GroupSessionRequestService = Depends(get_group_session_request_service),
):
    group_session_request = group_session_request_service.get_group_session_request(
        group_session_request_id, context.institution_id
    )
    return {"group_session_request": build_group_session_request_response(group_session_request)}


@router.post("/group-session-requests", status_code=201)
def create_group_session_request(
    request: SaveGroupSessionRequestRequest,
    context: CurrentContext = Depends(require_account),
    group_session_request_service: GroupSessionRequestService = Depends(get_group_session_request_service),
):
    group_session_request = group_session_request_service.create_group_session_request(request, context.account)
    return {"group_session_request": build_group_session_request_response(group_session_request)}


@router.put("/group-session-requests/{group_session_request_id}")
def update_group_session_request(
    group_session_request_id: UUID,
    request: SaveGroupSessionRequestRequest,
    context: CurrentContext = Depends(require_account),
    group_session_request_service: GroupSessionRequestService = Depends(get_group_session_request_service),
):
    group_session_request = group_session_request_service.get_group_session_request(
        group_session_request_id, context.institution_id
    )
    _require_editor(group_session_request_service, group_session_request, context)

    group_session_request = group_session_request_service.update_group_session_request(group_session_request, request)
    logger.info(f"Group session request {group_session_request_id} updated by {context.account_id}")
    return {"group_session_request": build_group_session_request_response(group_session_request)}


@router.put("/group-session-requests/{group_session_request_id}/status")
def update_group_session_request_status(
    group_session_request_id: UUID,
    request: UpdateGroupSessionRequestStatusRequest,
    context: CurrentContext = Depends(require_account),
    group_session_request_service: GroupSessionRequestService = Depends(get_group_session_request_service),
):
    group_session_request = group_session_request_service.get_group_session_request(
        group_session_request_id, context.institution_id
    )
    if not AuthorizationService(group_session_request_service.session).can_edit_group_session_request_status(
        context.account, group_session_request
    ):
        raise AuthorizationException()

    group_session_request_service.update_group_session_request_status(
        group_session_request, request.group_session_request_status_id, context.account
    )
    if request.group_session_request_status_id == GroupSessionRequestStatusId.DELETED:
        return Response(status_code=204)
    return {"group_session_request": build_group_session_request_response(group_session_request)}
