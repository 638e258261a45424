"""Acuity Scheduling webhooks for appointments booked, moved or canceled in Acuity."""

import logging
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from carebridge.database import get_session
from carebridge.services.acuity_service import (
    AcuitySchedulingClient,
    AcuitySyncManager,
    get_acuity_client,
    get_acuity_sync_manager,
)
from carebridge.services.acuity_webhook_service import AcuityWebhookAction, AcuityWebhookService
from carebridge.services.appointment_service import AppointmentService
from carebridge.services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter()

ACUITY_SIGNATURE_HEADER = "X-Acuity-Signature"


def get_acuity_webhook_service(
    session: Session = Depends(get_session),
    client: AcuitySchedulingClient = Depends(get_acuity_client),
    sync_manager: AcuitySyncManager = Depends(get_acuity_sync_manager),
) -> AcuityWebhookService:
    appointment_service = AppointmentService(session, availability_service=AvailabilityService(session, sync_manager))
    return AcuityWebhookService(session, client, sync_manager, appointment_service)


async def _handle(request: Request, action: AcuityWebhookAction, webhook_service: AcuityWebhookService) -> dict:
    raw_body = await request.body()
    form = dict(parse_qsl(raw_body.decode("utf-8", errors="replace"), keep_blank_values=True))
    # Acuity lookups and commits block, so keep them off the event loop
    result = await run_in_threadpool(
        webhook_service.handle, action, raw_body, form, request.headers.get(ACUITY_SIGNATURE_HEADER)
    )
    return {
        "acuity_appointment_id": result.acuity_appointment_id,
        "appointment_id": result.appointment_id,
        "ignored": result.ignored,
    }


@router.post("/acuity/webhook/appointments/scheduled")
async def appointment_scheduled(
    request: Request,
    webhook_service: AcuityWebhookService = Depends(get_acuity_webhook_service),
):
    return await _handle(request, AcuityWebhookAction.SCHEDULED, webhook_service)


@router.post("/acuity/webhook/appointments/rescheduled")
async def appointment_rescheduled(
    request: Request,
    webhook_service: AcuityWebhookService = Depends(get_acuity_webhook_service),
):
    return await _handle(request, AcuityWebhookAction.RESCHEDULED, webhook_service)


@router.post("/acuity/webhook/appointments/canceled")
async def appointment_canceled(
    request: Request,
    webhook_service: AcuityWebhookService = Depends(get_acuity_webhook_service),
):
    return await _handle(request, AcuityWebhookAction.CANCELED, webhook_service)
