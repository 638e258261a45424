"""Frequently asked questions, grouped into topics per institution."""

from collections import defaultdict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from carebridge.context import CurrentContext, require_account
from carebridge.database import get_session
from carebridge.errors import AuthorizationException, NotFoundException
from carebridge.models.faq import FaqTopic
from carebridge.responses.faq import build_faq_response, build_faq_topic_response
from carebridge.services.faq_service import FaqService

router = APIRouter()


def get_faq_service(session: Session = Depends(get_session)) -> FaqService:
    return FaqService(session)


@router.get("/faq-topics")
def get_faq_topics(
    context: CurrentContext = Depends(require_account),
    faq_service: FaqService = Depends(get_faq_service),
):
    faqs_by_faq_topic_id = defaultdict(list)
    for faq in faq_service.find_faqs(context.institution_id):
        faqs_by_faq_topic_id[str(faq.faq_topic_id)].append(build_faq_response(faq))

    return {
        "faq_topics": [build_faq_topic_response(t) for t in faq_service.find_faq_topics(context.institution_id)],
        "faqs_by_faq_topic_id": faqs_by_faq_topic_id,
    }


@router.get("/faqs")
def get_faqs(
    faq_topic_id: str,
    context: CurrentContext = Depends(require_account),
    faq_service: FaqService = Depends(get_faq_service),
):
    faq_topic = faq_service.find_faq_topic(faq_topic_id, context.institution_id)
    if faq_topic is None:
        raise NotFoundException(f"FAQ topic {faq_topic_id} not found")
    if faq_topic.institution_id != context.institution_id:
        raise AuthorizationException()

    return {"faqs": [build_faq_response(faq) for faq in faq_service.find_faqs_by_topic(faq_topic.faq_topic_id)]}


@router.get("/faqs/{faq_id_or_url_name}")
def get_faq(
    faq_id_or_url_name: str,
    context: CurrentContext = Depends(require_account),
    faq_service: FaqService = Depends(get_faq_service),
):
    faq = faq_service.find_faq(faq_id_or_url_name, context.institution_id)
    if faq is None:
        raise NotFoundException(f"FAQ {faq_id_or_url_name} not found")
    if faq.institution_id != context.institution_id:
        raise AuthorizationException()

    faq_topic = faq_service.session.get(FaqTopic, faq.faq_topic_id)
    return {"faq": build_faq_response(faq), "faq_topic": build_faq_topic_response(faq_topic)}
