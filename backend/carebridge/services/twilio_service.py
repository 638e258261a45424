"""Twilio SMS service wrapper.

Thin wrapper around the Twilio REST API for sending SMS messages and
validating status callbacks. Also owns phone number formatting.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Dict, Optional

from twilio.request_validator import RequestValidator
from twilio.rest import Client

from carebridge.config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER

logger = logging.getLogger(__name__)

# Twilio error code -> (message, secondary message)
TWILIO_ERRORS: Dict[str, tuple] = {
    "21211": ("Invalid 'To' phone number", None),
    "21408": ("Permission to send an SMS has not been enabled for the region indicated by the 'To' number", None),
    "21610": ("Attempt to send to unsubscribed recipient", "The recipient replied STOP"),
    "21614": ("'To' number is not a valid mobile number", None),
    "30001": ("Queue overflow", None),
    "30002": ("Account suspended", None),
    "30003": ("Unreachable destination handset", "The handset may be off or out of coverage"),
    "30004": ("Message blocked", "The recipient may have blocked messages from this number"),
    "30005": ("Unknown destination handset", None),
    "30006": ("Landline or unreachable carrier", None),
    "30007": ("Message filtered", "The carrier flagged the message"),
    "30008": ("Unknown error", None),
}


def format_e164(phone: str, default_country: str = "1") -> str:
    """Normalise account and reservation phone numbers to E.164.

    Ten digit numbers get the default country code; punctuation is ignored.
    Raises ValueError when nothing usable remains.
    """
    if not phone or not phone.strip():
        raise ValueError("Phone number is empty")

    digits = re.sub(r"[^\d]", "", phone)

    if len(digits) == 10:
        return f"+{default_country}{digits}"
    elif len(digits) == 11 and digits.startswith(default_country):
        return f"+{digits}"
    elif len(digits) >= 10 and phone.strip().startswith("+"):
        return f"+{digits}"
    else:
        raise ValueError(f"Cannot parse phone number: '{phone}'.")


def validate_e164(phone: str) -> bool:
    """Check if a phone number is valid E.164 format."""
    return bool(re.match(r"^\+[1-9]\d{6,14}$", phone))


def describe_twilio_error(error_code: Optional[str]) -> str:
    """Human readable delivery failure reason for a Twilio ErrorCode."""
    error = TWILIO_ERRORS.get((error_code or "").strip())
    if error is None:
        return "Unknown error"
    message, secondary_message = error
    if secondary_message:
        return f"{message}. {secondary_message}"
    return message


class TwilioService:
    """Sends patient SMS and validates Twilio status callbacks.

    Without a full set of credentials every send is a dry run that only logs.
    """

    def __init__(
        self,
        account_sid: str = TWILIO_ACCOUNT_SID,
        auth_token: str = TWILIO_AUTH_TOKEN,
        from_number: str = TWILIO_FROM_NUMBER,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.client: Optional[Client] = None
        self.dry_run = False

        if self.account_sid and self.auth_token and self.from_number:
            self.client = Client(self.account_sid, self.auth_token)
            logger.info("Twilio client initialized successfully.")
        else:
            logger.warning(
                "Twilio credentials not configured. Running in dry-run mode. "
                "Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER."
            )
            self.dry_run = True

        self.validator = RequestValidator(self.auth_token) if self.auth_token else None

    def send_sms(self, to: str, body: str, status_callback: Optional[str] = None) -> dict:
        """
        Send a single SMS message.

        Returns:
            dict with keys: sid, status, error
        """
        if not validate_e164(to):
            return {"sid": None, "status": "failed", "error": f"Invalid phone number format: {to}"}

        # Twilio max is 1600 chars
        if len(body) > 1600:
            body = body[:1597] + "..."

        if self.dry_run:
            logger.info(f"[DRY RUN] SMS to {to}: {body[:80]}...")
            return {
                "sid": f"DRY_RUN_{datetime.now(timezone.utc).isoformat()}",
                "status": "dry_run",
                "error": None,
            }

        try:
            kwargs = {"body": body, "from_": self.from_number, "to": to}
            if status_callback:
                kwargs["status_callback"] = status_callback
            message = self.client.messages.create(**kwargs)
            logger.info(f"SMS sent to {to}: SID={message.sid}, status={message.status}")
            return {"sid": message.sid, "status": message.status, "error": None}
        except Exception as e:
            logger.error(f"Failed to send SMS to {to}: {e}")
            return {"sid": None, "status": "failed", "error": str(e)}

    def validate_request(self, url: str, params: Dict[str, str], signature: Optional[str]) -> bool:
        """Check the X-Twilio-Signature of a callback request."""
        if self.validator is None:
            logger.error("Twilio auth token not configured; cannot validate callback")
            return False
        if not signature:
            return False
        return self.validator.validate(url, params, signature)

    @property
    def is_configured(self) -> bool:
        """Check if Twilio is properly configured (not in dry-run mode)."""
        return not self.dry_run


# Singleton instance
_twilio_service: Optional[TwilioService] = None


def get_twilio_service() -> TwilioService:
    """Get or create the singleton TwilioService instance."""
    global _twilio_service
    if _twilio_service is None:
        _twilio_service = TwilioService()
    return _twilio_service
