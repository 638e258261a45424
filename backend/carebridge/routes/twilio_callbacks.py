import logging
from typing import Dict, Optional
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from carebridge.config import TWILIO_STATUS_CALLBACK_BASE_URL
from carebridge.database import get_session
from carebridge.errors import AuthorizationException, NotFoundException
from carebridge.models.institution import Institution
from carebridge.services.message_service import MessageService
from carebridge.services.twilio_service import TwilioService, get_twilio_service

logger = logging.getLogger(__name__)

router = APIRouter()

TWILIO_SIGNATURE_HEADER = "X-Twilio-Signature"


def _callback_url(request: Request) -> str:
    # Twilio signs the public URL, which differs from ours behind a proxy
    if TWILIO_STATUS_CALLBACK_BASE_URL:
        return f"{TWILIO_STATUS_CALLBACK_BASE_URL.rstrip('/')}{request.url.path}"
    return str(request.url)


def _process_status_callback(
    session: Session,
    twilio_service: TwilioService,
    institution_id: str,
    url: str,
    params: Dict[str, str],
    signature: Optional[str],
) -> None:
    if session.get(Institution, institution_id) is None:
        raise NotFoundException(f"Unknown institution {institution_id}")

    logger.info(f"Twilio status callback for {institution_id}: {params}")

    if not twilio_service.validate_request(url, params, signature):
        logger.error("Twilio status callback failed signature validation")
        raise AuthorizationException()

    MessageService(session, twilio_service=twilio_service).process_twilio_status_callback(params)


@router.post("/twilio/{institution_id}/message-status-callback", response_class=PlainTextResponse)
async def message_status_callback(
    institution_id: str,
    request: Request,
    session: Session = Depends(get_session),
    twilio_service: TwilioService = Depends(get_twilio_service),
):
    raw_body = await request.body()
    params = dict(parse_qsl(raw_body.decode("utf-8", errors="replace"), keep_blank_values=True))
    await run_in_threadpool(
        _process_status_callback,
        session,
        twilio_service,
        institution_id,
        _callback_url(request),
        params,
        request.headers.get(TWILIO_SIGNATURE_HEADER),
    )
    return "OK"
