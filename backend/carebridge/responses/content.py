from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.content import ApprovalStatusId, Content, ContentTypeId
from carebridge.services.content_service import content_type_description
from carebridge.utils.dates import format_medium_date


class ContentResponse(BaseModel):
    content_id: UUID
    content_type_id: ContentTypeId
    content_type_description: str
    approval_status_id: ApprovalStatusId
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    duration_in_minutes: Optional[int] = None
    duration_in_minutes_description: Optional[str] = None
    tags: List[str] = []
    archived: bool
    created: str
    created_description: str


def build_content_response(content: Content) -> ContentResponse:
    duration_description = None
    if content.duration_in_minutes:
        duration_description = f"{content.duration_in_minutes} min"

    return ContentResponse(
        content_id=content.content_id,
        content_type_id=content.content_type_id,
        content_type_description=content_type_description(content.content_type_id),
        approval_status_id=content.approval_status_id,
        title=content.title,
        author=content.author,
        description=content.description,
        url=content.url,
        image_url=content.image_url,
        duration_in_minutes=content.duration_in_minutes,
        duration_in_minutes_description=duration_description,
        tags=content.tags or [],
        archived=content.archived,
        created=content.created.isoformat(),
        created_description=format_medium_date(content.created.date()),
    )
