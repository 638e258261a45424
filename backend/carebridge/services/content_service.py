import logging
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, func, or_, select

from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account
from carebridge.models.content import CONTENT_TYPE_DESCRIPTIONS, ApprovalStatusId, Content, ContentTypeId

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15
MAXIMUM_PAGE_SIZE = 100


class ContentRequest(BaseModel):
    content_type_id: Optional[ContentTypeId] = None
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    duration_in_minutes: Optional[int] = None
    tags: Optional[List[str]] = None


def content_type_description(content_type_id: ContentTypeId) -> str:
    return CONTENT_TYPE_DESCRIPTIONS.get(ContentTypeId(content_type_id), str(content_type_id))


def _page(page_number: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
    page_number = max(page_number or 0, 0)
    if page_size is None or page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    return page_number, min(page_size, MAXIMUM_PAGE_SIZE)


class ContentService:
    def __init__(self, session: Session):
        self.session = session

    def _visible_conditions(self, institution_id: str) -> list:
        return [
            Content.institution_id == institution_id,
            Content.approval_status_id == ApprovalStatusId.APPROVED,
            Content.archived == False,  # noqa: E712
        ]

    def find_content(self, content_id: UUID, institution_id: str) -> Optional[Content]:
        """Approved, non-archived content visible to patients."""
        content = self.session.get(Content, content_id)
        if content is None or content.institution_id != institution_id:
            return None
        if content.approval_status_id != ApprovalStatusId.APPROVED or content.archived:
            return None
        return content

    def find_resource_library(
        self,
        institution_id: str,
        search_query: Optional[str] = None,
        content_type_id: Optional[ContentTypeId] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Tuple[List[Content], int]:
        page_number, page_size = _page(page_number, page_size)
        conditions = self._visible_conditions(institution_id)
        if content_type_id is not None:
            conditions.append(Content.content_type_id == content_type_id)
        if search_query and search_query.strip():
            pattern = f"%{search_query.strip()}%"
            conditions.append(
                or_(Content.title.ilike(pattern), Content.description.ilike(pattern), Content.author.ilike(pattern))
            )

        total_count = self.session.exec(select(func.count()).select_from(Content).where(*conditions)).one()
        contents = self.session.exec(
            select(Content)
            .where(*conditions)
            .order_by(Content.created.desc(), Content.content_id)
            .offset(page_number * page_size)
            .limit(page_size)
        ).all()
        return list(contents), total_count

    def find_content_types(self) -> List[Tuple[ContentTypeId, str]]:
        return [(content_type_id, content_type_description(content_type_id)) for content_type_id in ContentTypeId]

    # Administration

    def find_admin_content(
        self,
        institution_id: str,
        approval_status_id: Optional[ApprovalStatusId] = None,
        archived: Optional[bool] = None,
        search_query: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Tuple[List[Content], int]:
        page_number, page_size = _page(page_number, page_size)
        conditions = [Content.institution_id == institution_id]
        if approval_status_id is not None:
            conditions.append(Content.approval_status_id == approval_status_id)
        if archived is not None:
            conditions.append(Content.archived == archived)
        if search_query and search_query.strip():
            conditions.append(Content.title.ilike(f"%{search_query.strip()}%"))

        total_count = self.session.exec(select(func.count()).select_from(Content).where(*conditions)).one()
        contents = self.session.exec(
            select(Content)
            .where(*conditions)
            .order_by(Content.last_updated.desc(), Content.content_id)
            .offset(page_number * page_size)
            .limit(page_size)
        ).all()
        return list(contents), total_count

    def get_admin_content(self, content_id: UUID, institution_id: str) -> Content:
        content = self.session.get(Content, content_id)
        if content is None or content.institution_id != institution_id:
            raise NotFoundException(f"Content {content_id} not found")
        return content

    def _validate(self, request: ContentRequest) -> None:
        field_errors = {}
        if request.content_type_id is None:
            field_errors["content_type_id"] = "Content type is required."
        if not request.title or not request.title.strip():
            field_errors["title"] = "Title is required."
        if request.content_type_id != ContentTypeId.INTERNAL_BLOG and not request.url:
            field_errors["url"] = "URL is required."
        if request.duration_in_minutes is not None and request.duration_in_minutes < 0:
            field_errors["duration_in_minutes"] = "Duration cannot be negative."
        if field_errors:
            raise ValidationException(field_errors=field_errors)

    def create_content(self, request: ContentRequest, account: Account) -> Content:
        self._validate(request)
        content = Content(
            **request.model_dump(exclude={"title"}),
            title=request.title.strip(),
            institution_id=account.institution_id,
            created_by_account_id=account.account_id,
            approval_status_id=ApprovalStatusId.PENDING,
        )
        self.session.add(content)
        self.session.commit()
        self.session.refresh(content)
        logger.info(f"Content {content.content_id} created by {account.account_id}")
        return content

    def update_content(self, content: Content, request: ContentRequest) -> Content:
        self._validate(request)
        for key, value in request.model_dump().items():
            setattr(content, key, value)
        content.title = request.title.strip()
        self.session.add(content)
        self.session.commit()
        self.session.refresh(content)
        return content

    def update_approval_status(self, content: Content, approval_status_id: ApprovalStatusId) -> Content:
        content.approval_status_id = approval_status_id
        self.session.add(content)
        self.session.commit()
        self.session.refresh(content)
        logger.info(f"Content {content.content_id} is now {approval_status_id.value}")
        return content

    def update_archived(self, content: Content, archived: bool) -> Content:
        content.archived = archived
        self.session.add(content)
        self.session.commit()
        self.session.refresh(content)
        return content

    def delete_content(self, content: Content) -> None:
        self.session.delete(content)
        self.session.commit()
        logger.info(f"Content {content.content_id} deleted")
