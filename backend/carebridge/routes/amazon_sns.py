import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from carebridge.database import get_session
from carebridge.services.amazon_sns_service import AmazonSnsService
from carebridge.services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_amazon_sns_service(session: Session = Depends(get_session)) -> AmazonSnsService:
    return AmazonSnsService(MessageService(session))


@router.post("/amazon/sns/email-callback", response_class=PlainTextResponse)
async def email_callback(
    request: Request,
    amazon_sns_service: AmazonSnsService = Depends(get_amazon_sns_service),
):
    """SES bounce, delivery and complaint notifications relayed through SNS"""
    raw_body = await request.body()
    await run_in_threadpool(amazon_sns_service.handle_callback, raw_body, dict(request.headers))
    return "OK"
