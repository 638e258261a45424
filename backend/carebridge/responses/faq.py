from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.faq import Faq, FaqTopic


class FaqTopicResponse(BaseModel):
    faq_topic_id: UUID
    institution_id: str
    url_name: str
    description: str
    display_order: int


class FaqResponse(BaseModel):
    faq_id: UUID
    faq_topic_id: UUID
    institution_id: str
    url_name: str
    question: str
    answer: str
    short_answer: Optional[str] = None
    permanently_visible: bool
    display_order: int


def build_faq_topic_response(faq_topic: FaqTopic) -> FaqTopicResponse:
    return FaqTopicResponse(
        faq_topic_id=faq_topic.faq_topic_id,
        institution_id=faq_topic.institution_id,
        url_name=faq_topic.url_name,
        description=faq_topic.description,
        display_order=faq_topic.display_order,
    )


def build_faq_response(faq: Faq) -> FaqResponse:
    return FaqResponse(
        faq_id=faq.faq_id,
        faq_topic_id=faq.faq_topic_id,
        institution_id=faq.institution_id,
        url_name=faq.url_name,
        question=faq.question,
        answer=faq.answer,
        short_answer=faq.short_answer,
        permanently_visible=faq.permanently_visible,
        display_order=faq.display_order,
    )
