"""Tests for outbound messaging: phone formatting, the Twilio wrapper and message logs."""

import pytest
from sqlmodel import Session, select

from carebridge.models.message import MessageLog, MessageStatusId, MessageTypeId, MessageVendorId
from carebridge.services.message_service import MessageService
from carebridge.services.twilio_service import TwilioService, describe_twilio_error, format_e164, validate_e164


# ---------------------------------------------------------------------------
# Phone number formatting tests
# ---------------------------------------------------------------------------


class TestFormatE164:
    """Test phone number formatting to E.164."""

    def test_ten_digit_us(self):
        assert format_e164("2155551234") == "+12155551234"

    def test_eleven_digit_us(self):
        assert format_e164("12155551234") == "+12155551234"

    def test_already_e164(self):
        assert format_e164("+12155551234") == "+12155551234"

    def test_dashes(self):
        assert format_e164("215-555-1234") == "+12155551234"

    def test_dots(self):
        assert format_e164("215.555.1234") == "+12155551234"

    def test_parens(self):
        assert format_e164("(215) 555-1234") == "+12155551234"

    def test_international(self):
        assert format_e164("+44 7911 123456") == "+447911123456"

    def test_invalid_short(self):
        with pytest.raises(ValueError, match="Cannot parse"):
            format_e164("12345")

    def test_invalid_empty(self):
        with pytest.raises(ValueError, match="empty"):
            format_e164("   ")


class TestValidateE164:
    def test_valid_us(self):
        assert validate_e164("+12155551234") is True

    def test_valid_uk(self):
        assert validate_e164("+447911123456") is True

    def test_missing_plus(self):
        assert validate_e164("12155551234") is False

    def test_too_short(self):
        assert validate_e164("+1234") is False


def test_describe_twilio_error():
    assert describe_twilio_error("21211") == "Invalid 'To' phone number"
    assert describe_twilio_error("21610") == "Attempt to send to unsubscribed recipient. The recipient replied STOP"
    assert describe_twilio_error(None) == "Unknown error"
    assert describe_twilio_error("99999") == "Unknown error"


# ---------------------------------------------------------------------------
# Twilio service tests (always dry-run in test env)
# ---------------------------------------------------------------------------


def _dry_run_twilio() -> TwilioService:
    return TwilioService(account_sid="", auth_token="", from_number="")


def test_twilio_service_dry_run():
    service = _dry_run_twilio()
    assert service.dry_run is True
    assert service.is_configured is False

    result = service.send_sms("+12155551234", "Test message")
    assert result["status"] == "dry_run"
    assert result["sid"].startswith("DRY_RUN_")
    assert result["error"] is None


def test_twilio_service_invalid_phone():
    result = _dry_run_twilio().send_sms("not-a-phone", "Test")
    assert result["status"] == "failed"
    assert "Invalid phone number" in result["error"]


def test_twilio_validation_needs_auth_token():
    assert _dry_run_twilio().validate_request("https://example.com/callback", {}, "signature") is False


# ---------------------------------------------------------------------------
# Message logs
# ---------------------------------------------------------------------------


def test_enqueue_email(session: Session, institution):
    message_log = MessageService(session).enqueue_email(
        "COBALT", "patient@example.com", "Hello", "Body text", template="WELCOME"
    )
    assert message_log.message_type_id == MessageTypeId.EMAIL
    assert message_log.message_vendor_id == MessageVendorId.LOG
    assert message_log.message_status_id == MessageStatusId.SENT
    assert message_log.vendor_assigned_id


def test_enqueue_sms(session: Session, institution):
    service = MessageService(session, twilio_service=_dry_run_twilio())
    message_log = service.enqueue_sms("COBALT", "+12155551234", "Reminder", template="REMINDER")
    assert message_log.message_type_id == MessageTypeId.SMS
    assert message_log.message_vendor_id == MessageVendorId.TWILIO
    assert message_log.message_status_id == MessageStatusId.SENT
    assert message_log.vendor_assigned_id.startswith("DRY_RUN_")


def test_enqueue_sms_invalid_number_is_an_error(session: Session, institution):
    service = MessageService(session, twilio_service=_dry_run_twilio())
    message_log = service.enqueue_sms("COBALT", "bad-number", "Reminder")
    assert message_log.message_status_id == MessageStatusId.ERROR
    assert "Invalid phone number" in message_log.error_message
    assert session.exec(select(MessageLog)).one().message_id == message_log.message_id
