"""Message logging and delivery bookkeeping.

Every outbound email/SMS gets a MessageLog row; vendor callbacks (Twilio
status callbacks, Amazon SES notifications via SNS) are recorded as
MessageLogEvents and update the log's delivery status.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlmodel import Session, select

from carebridge.config import TWILIO_STATUS_CALLBACK_BASE_URL
from carebridge.errors import NotFoundException
from carebridge.models.message import (
    MessageLog,
    MessageLogEvent,
    MessageStatusId,
    MessageTypeId,
    MessageVendorId,
)
from carebridge.services.email_sender import LoggingEmailSender, get_email_sender
from carebridge.services.twilio_service import TwilioService, describe_twilio_error, get_twilio_service
from carebridge.utils.dates import utc_now

logger = logging.getLogger(__name__)

TWILIO_DELIVERED_STATUSES = {"delivered"}
TWILIO_FAILED_STATUSES = {"canceled", "failed", "undelivered"}


class MessageService:
    def __init__(
        self,
        session: Session,
        email_sender: Optional[LoggingEmailSender] = None,
        twilio_service: Optional[TwilioService] = None,
    ):
        self.session = session
        self.email_sender = email_sender or get_email_sender()
        self._twilio_service = twilio_service

    @property
    def twilio_service(self) -> TwilioService:
        if self._twilio_service is None:
            self._twilio_service = get_twilio_service()
        return self._twilio_service

    def enqueue_email(
        self,
        institution_id: str,
        to: str,
        subject: str,
        body: str,
        template: Optional[str] = None,
    ) -> MessageLog:
        message_log = MessageLog(
            institution_id=institution_id,
            message_type_id=MessageTypeId.EMAIL,
            message_vendor_id=self.email_sender.vendor_id,
            recipient=to,
            subject=subject,
            body=body,
            template=template,
        )
        try:
            message_log.vendor_assigned_id = self.email_sender.send(to, subject, body)
            message_log.message_status_id = MessageStatusId.SENT
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            message_log.message_status_id = MessageStatusId.ERROR
            message_log.error_message = str(e)
        message_log.processed = utc_now()

        self.session.add(message_log)
        self.session.commit()
        self.session.refresh(message_log)
        return message_log

    def enqueue_sms(self, institution_id: str, to: str, body: str, template: Optional[str] = None) -> MessageLog:
        status_callback = None
        if TWILIO_STATUS_CALLBACK_BASE_URL:
            status_callback = (
                f"{TWILIO_STATUS_CALLBACK_BASE_URL.rstrip('/')}/api/twilio/{institution_id}/message-status-callback"
            )

        result = self.twilio_service.send_sms(to, body, status_callback=status_callback)

        message_log = MessageLog(
            institution_id=institution_id,
            message_type_id=MessageTypeId.SMS,
            message_vendor_id=MessageVendorId.TWILIO,
            recipient=to,
            body=body,
            template=template,
            vendor_assigned_id=result.get("sid"),
            processed=utc_now(),
        )
        if result.get("status") == "failed":
            message_log.message_status_id = MessageStatusId.ERROR
            message_log.error_message = result.get("error")
        else:
            message_log.message_status_id = MessageStatusId.SENT

        self.session.add(message_log)
        self.session.commit()
        self.session.refresh(message_log)
        return message_log

    def find_message_log_by_vendor_assigned_id(
        self, vendor_assigned_id: Optional[str], message_vendor_id: MessageVendorId
    ) -> Optional[MessageLog]:
        if not vendor_assigned_id:
            return None
        return self.session.exec(
            select(MessageLog).where(
                MessageLog.vendor_assigned_id == vendor_assigned_id,
                MessageLog.message_vendor_id == message_vendor_id,
            )
        ).first()

    def create_message_log_event(
        self, message_id: UUID, event_type: str, payload: Optional[Dict[str, Any]] = None
    ) -> MessageLogEvent:
        event = MessageLogEvent(message_id=message_id, event_type=event_type, payload=payload)
        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        return event

    def _get_message_log(self, message_id: UUID) -> MessageLog:
        message_log = self.session.get(MessageLog, message_id)
        if message_log is None:
            raise NotFoundException(f"Message {message_id} not found")
        return message_log

    def record_message_delivery(self, message_id: UUID) -> MessageLog:
        message_log = self._get_message_log(message_id)
        message_log.message_status_id = MessageStatusId.DELIVERED
        message_log.delivered = utc_now()
        self.session.add(message_log)
        self.session.commit()
        return message_log

    def record_message_delivery_failed(self, message_id: UUID, reason: str) -> MessageLog:
        message_log = self._get_message_log(message_id)
        message_log.message_status_id = MessageStatusId.DELIVERY_FAILED
        message_log.delivery_failed = utc_now()
        message_log.delivery_failed_reason = reason
        self.session.add(message_log)
        self.session.commit()
        return message_log

    def record_message_complaint(self, message_id: UUID) -> MessageLog:
        message_log = self._get_message_log(message_id)
        message_log.complaint_registered = utc_now()
        self.session.add(message_log)
        self.session.commit()
        return message_log

    def process_twilio_status_callback(self, params: Dict[str, str]) -> Optional[MessageLog]:
        """
        Apply a Twilio message status callback.

        Unknown message SIDs are logged and ignored.
        """
        vendor_assigned_id = params.get("MessageSid")
        message_log = self.find_message_log_by_vendor_assigned_id(vendor_assigned_id, MessageVendorId.TWILIO)
        if message_log is None:
            logger.info(f"No record of TWILIO message with vendor-assigned ID {vendor_assigned_id}, ignoring callback")
            return None

        status = (params.get("MessageStatus") or "").lower()
        self.create_message_log_event(message_log.message_id, f"twilio_{status or 'unknown'}", dict(params))

        if status in TWILIO_DELIVERED_STATUSES:
            return self.record_message_delivery(message_log.message_id)
        if status in TWILIO_FAILED_STATUSES:
            reason = describe_twilio_error(params.get("ErrorCode"))
            return self.record_message_delivery_failed(message_log.message_id, reason)

        logger.info(f"Nothing to do for Twilio message status '{status}', ignoring")
        return message_log
