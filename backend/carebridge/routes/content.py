"""Resource library content for patients and content administration."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlmodel import Session

from carebridge.context import CurrentContext, get_current_context, require_account
from carebridge.database import get_session
from carebridge.errors import AuthorizationException, NotFoundException
from carebridge.models.account import RoleId
from carebridge.models.activity_tracking import ActivityActionId, ActivityTypeId
from carebridge.models.content import ApprovalStatusId, ContentTypeId
from carebridge.responses.content import build_content_response
from carebridge.services.activity_tracking_service import ActivityTrackingService
from carebridge.services.content_service import ContentRequest, ContentService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class UpdateApprovalStatusRequest(BaseModel):
    approval_status_id: ApprovalStatusId


class UpdateArchivedRequest(BaseModel):
    archived: bool = True


def get_content_service(session: Session = Depends(get_session)) -> ContentService:
    return ContentService(session)


def require_administrator(context: CurrentContext = Depends(require_account)) -> CurrentContext:
    if not context.has_role(RoleId.ADMINISTRATOR):
        raise AuthorizationException()
    return context


def _page_response(contents, total_count: int) -> dict:
    return {
        "contents": [build_content_response(content) for content in contents],
        "total_count": total_count,
        "total_count_description": f"{total_count:,}",
    }


# ============================================================================
# Patient Endpoints
# ============================================================================


@router.get("/content/{content_id}")
def get_content(
    content_id: UUID,
    context: CurrentContext = Depends(get_current_context),
    content_service: ContentService = Depends(get_content_service),
):
    content = content_service.find_content(content_id, context.institution_id)
    if content is None:
        raise NotFoundException(f"Content {content_id} not found")

    ActivityTrackingService(content_service.session).track(
        context,
        ActivityTypeId.CONTENT,
        ActivityActionId.VIEW,
        activity_key=str(content_id),
        data={"content_id": content_id},
    )
    return {"content": build_content_response(content)}


@router.get("/resource-library")
def get_resource_library(
    search_query: Optional[str] = None,
    content_type_id: Optional[ContentTypeId] = None,
    page_number: Optional[int] = None,
    page_size: Optional[int] = None,
    context: CurrentContext = Depends(get_current_context),
    content_service: ContentService = Depends(get_content_service),
):
    contents, total_count = content_service.find_resource_library(
        context.institution_id,
        search_query=search_query,
        content_type_id=content_type_id,
        page_number=page_number,
        page_size=page_size,
    )
    return _page_response(contents, total_count)


@router.get("/resource-library/content-types")
def get_content_types(content_service: ContentService = Depends(get_content_service)):
    return {
        "content_types": [
            {"content_type_id": content_type_id.value, "description": description}
            for content_type_id, description in content_service.find_content_types()
        ]
    }


# ============================================================================
# Admin Endpoints
# ============================================================================


@router.get("/admin/content")
def get_admin_content(
    approval_status_id: Optional[ApprovalStatusId] = None,
    archived: Optional[bool] = None,
    search_query: Optional[str] = None,
    page_number: Optional[int] = None,
    page_size: Optional[int] = None,
    context: CurrentContext = Depends(require_administrator),
    content_service: ContentService = Depends(get_content_service),
):
    contents, total_count = content_service.find_admin_content(
        context.institution_id,
        approval_status_id=approval_status_id,
        archived=archived,
        search_query=search_query,
        page_number=page_number,
        page_size=page_size,
    )
    return _page_response(contents, total_count)


@router.post("/admin/content", status_code=201)
def create_content(
    request: ContentRequest,
    context: CurrentContext = Depends(require_administrator),
    content_service: ContentService = Depends(get_content_service),
):
    content = content_service.create_content(request, context.account)
    return {"content": build_content_response(content)}


@router.put("/admin/content/{content_id}")
def update_content(
    content_id: UUID,
    request: ContentRequest,
    context: CurrentContext = Depends(require_administrator),
    content_service: ContentService = Depends(get_content_service),
):
    content = content_service.get_admin_content(content_id, context.institution_id)
    content = content_service.update_content(content, request)
    return {"content": build_content_response(content)}


@router.put("/admin/content/{content_id}/approval-status")
def update_content_approval_status(
    content_id: UUID,
    request: UpdateApprovalStatusRequest,
    context: CurrentContext = Depends(require_administrator),
    content_service: ContentService = Depends(get_content_service),
):
    content = content_service.get_admin_content(content_id, context.institution_id)
    content = content_service.update_approval_status(content, request.approval_status_id)
    logger.info(f"Content {content_id} is now {request.approval_status_id.value}")
    return {"content": build_content_response(content)}


@router.put("/admin/content/{content_id}/archive")
def update_content_archived(
    content_id: UUID,
    request: UpdateArchivedRequest,
    context: CurrentContext = Depends(require_administrator),
    content_service: ContentService = Depends(get_content_service),
):
    content = content_service.get_admin_content(content_id, context.institution_id)
    content = content_service.update_archived(content, request.archived)
    return {"content": build_content_response(content)}


@router.delete("/admin/content/{content_id}", status_code=204)
def delete_content(
    content_id: UUID,
    context: CurrentContext = Depends(require_administrator),
    content_service: ContentService = Depends(get_content_service),
):
    content = content_service.get_admin_content(content_id, context.institution_id)
    content_service.delete_content(content)
    logger.info(f"Content {content_id} deleted by {context.account_id}")
    return Response(status_code=204)
