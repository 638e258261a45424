from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel, UniqueConstraint


class FaqTopic(SQLModel, table=True):
    __tablename__ = "faq_topic"
    __table_args__ = (UniqueConstraint("institution_id", "url_name", name="uq_faq_topic_url_name"),)

    faq_topic_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    url_name: str
    description: str
    display_order: int = Field(default=0)


class Faq(SQLModel, table=True):
    __tablename__ = "faq"
    __table_args__ = (UniqueConstraint("institution_id", "url_name", name="uq_faq_url_name"),)

    faq_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    faq_topic_id: UUID = Field(foreign_key="faq_topic.faq_topic_id", index=True)
    url_name: str
    question: str
    answer: str
    short_answer: Optional[str] = None
    permanently_visible: bool = Field(default=False)
    display_order: int = Field(default=0)
