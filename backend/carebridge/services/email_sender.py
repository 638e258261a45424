"""Outbound email transport.

Delivery itself is handled outside this service; the default sender writes
the message to the application log and hands back a locally generated id.
"""

import logging
from typing import Optional
from uuid import uuid4

from carebridge.config import EMAIL_DEFAULT_FROM_ADDRESS
from carebridge.models.message import MessageVendorId

logger = logging.getLogger(__name__)


class LoggingEmailSender:
    vendor_id = MessageVendorId.LOG

    def __init__(self, from_address: str = EMAIL_DEFAULT_FROM_ADDRESS):
        self.from_address = from_address

    def send(self, to: str, subject: str, body: str) -> str:
        """Send an email and return the vendor-assigned message id."""
        vendor_assigned_id = str(uuid4())
        logger.info(f"[EMAIL] from={self.from_address} to={to} subject={subject!r} id={vendor_assigned_id}")
        logger.debug(f"[EMAIL] body for {vendor_assigned_id}:\n{body}")
        return vendor_assigned_id


_email_sender: Optional[LoggingEmailSender] = None


def get_email_sender() -> LoggingEmailSender:
    global _email_sender
    if _email_sender is None:
        _email_sender = LoggingEmailSender()
    return _email_sender
