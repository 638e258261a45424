"""Handles Acuity appointment webhooks (scheduled, rescheduled, canceled)."""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlmodel import Session, select

from carebridge.errors import AuthenticationException, ValidationException
from carebridge.models.audit_log import AuditLogEventId
from carebridge.models.provider import Provider
from carebridge.services.acuity_service import AcuitySchedulingClient, AcuitySyncManager, parse_acuity_date_time
from carebridge.services.appointment_service import AppointmentService
from carebridge.services.audit_log_service import AuditLogService
from carebridge.utils.background import run_in_background

logger = logging.getLogger(__name__)


class AcuityWebhookAction(str, Enum):
    SCHEDULED = "scheduled"
    RESCHEDULED = "rescheduled"
    CANCELED = "canceled"


@dataclass
class AcuityWebhookResult:
    acuity_appointment_id: int
    appointment_date: Optional[date] = None
    provider_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    ignored: bool = False


def _parse_int(form: dict, key: str) -> int:
    try:
        return int(form.get(key))
    except (TypeError, ValueError):
        raise ValidationException.for_field(key, f"Acuity webhook field '{key}' is missing or invalid.")


class AcuityWebhookService:
    def __init__(
        self,
        session: Session,
        client: AcuitySchedulingClient,
        sync_manager: AcuitySyncManager,
        appointment_service: Optional[AppointmentService] = None,
    ):
        self.session = session
        self.client = client
        self.sync_manager = sync_manager
        self.appointment_service = appointment_service or AppointmentService(session)

    def _find_provider_by_calendar_id(self, calendar_id: int) -> Optional[Provider]:
        return self.session.exec(select(Provider).where(Provider.acuity_calendar_id == calendar_id)).first()

    def _invalidate_and_resync(self, provider_id: UUID, for_date: date) -> None:
        self.sync_manager.cache.invalidate(provider_id, for_date)
        run_in_background(
            self.sync_manager.sync_provider_availability,
            provider_id,
            for_date,
            description=f"Acuity availability sync for provider {provider_id} on {for_date}",
        )

    def handle(self, action: AcuityWebhookAction, raw_body: bytes, form: dict, signature: Optional[str]) -> AcuityWebhookResult:
        logger.info(f"Received Webhook from Acuity. Signature is '{signature}' request body is '{raw_body!r}'")

        if not self.client.verify_webhook(raw_body, signature):
            logger.warning("Acuity signature doesn't match request body signature - rejecting webhook!")
            raise AuthenticationException()

        acuity_appointment_id = _parse_int(form, "id")
        calendar_id = _parse_int(form, "calendarID")

        AuditLogService(self.session).audit(
            AuditLogEventId.ACUITY_WEBHOOK,
            message=f"Acuity {action.value} webhook for appointment {acuity_appointment_id}",
            payload=dict(form),
        )

        local_appointment = self.appointment_service.find_appointment_by_acuity_id(acuity_appointment_id)
        provider = None
        if local_appointment is not None:
            provider = self.session.get(Provider, local_appointment.provider_id)
        if provider is None:
            provider = self._find_provider_by_calendar_id(calendar_id)
        if provider is None:
            logger.warning(f"No provider found for Acuity calendar {calendar_id}, ignoring webhook")
            return AcuityWebhookResult(acuity_appointment_id=acuity_appointment_id, ignored=True)

        acuity_appointment = self.client.get_appointment(acuity_appointment_id)
        time_zone = acuity_appointment.get("timezone") or provider.time_zone
        start_time = parse_acuity_date_time(acuity_appointment["datetime"], time_zone)
        appointment_date = start_time.date()

        if action == AcuityWebhookAction.RESCHEDULED and local_appointment is not None:
            previous_date = local_appointment.start_time.date()
            duration = int(acuity_appointment.get("duration") or local_appointment.duration_in_minutes)
            self.appointment_service.reschedule_from_webhook(local_appointment, start_time, duration)
            if previous_date != appointment_date:
                self._invalidate_and_resync(provider.provider_id, previous_date)
        elif action == AcuityWebhookAction.CANCELED:
            if local_appointment is not None:
                logger.debug("There is a local appointment, canceling it...")
                self.appointment_service.cancel_appointment(local_appointment, canceled_by_webhook=True)
            else:
                logger.debug("No appointment to cancel in local database.")

        self._invalidate_and_resync(provider.provider_id, appointment_date)

        return AcuityWebhookResult(
            acuity_appointment_id=acuity_appointment_id,
            appointment_date=appointment_date,
            provider_id=provider.provider_id,
            appointment_id=local_appointment.appointment_id if local_appointment else None,
        )
