from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

from carebridge.utils.dates import utc_now


class ContentTypeId(str, Enum):
    VIDEO = "VIDEO"
    AUDIO = "AUDIO"
    ARTICLE = "ARTICLE"
    WORKSHEET = "WORKSHEET"
    PODCAST = "PODCAST"
    EXTERNAL_BLOG = "EXT_BLOG"
    INTERNAL_BLOG = "INT_BLOG"


CONTENT_TYPE_DESCRIPTIONS = {
    ContentTypeId.VIDEO: "Video",
    ContentTypeId.AUDIO: "Audio",
    ContentTypeId.ARTICLE: "Article",
    ContentTypeId.WORKSHEET: "Worksheet",
    ContentTypeId.PODCAST: "Podcast",
    ContentTypeId.EXTERNAL_BLOG: "Blog",
    ContentTypeId.INTERNAL_BLOG: "Blog",
}


class ApprovalStatusId(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Content(SQLModel, table=True):
    __tablename__ = "content"

    content_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    content_type_id: ContentTypeId = Field(sa_column=Column(String, nullable=False))
    approval_status_id: ApprovalStatusId = Field(
        default=ApprovalStatusId.PENDING, sa_column=Column(String, nullable=False)
    )
    title: str
    author: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    duration_in_minutes: Optional[int] = None
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    archived: bool = Field(default=False)
    created_by_account_id: Optional[UUID] = Field(default=None, foreign_key="account.account_id")
    created: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
