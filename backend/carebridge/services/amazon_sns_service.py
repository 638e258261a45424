"""
Amazon SNS callbacks for outbound email (SES) delivery notifications.

Each request body is verified against the certificate Amazon publishes at
``SigningCertURL`` before anything is acted on.
"""

import base64
import json
import logging
import re
import threading
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from carebridge.config import AMAZON_SNS_VERIFY_SIGNATURES
from carebridge.errors import AuthorizationException, ValidationException
from carebridge.models.message import MessageLog, MessageVendorId
from carebridge.services.message_service import MessageService

logger = logging.getLogger(__name__)

SNS_HOST_PATTERN = re.compile(r"^sns\.[a-z0-9-]+\.amazonaws\.com(\.cn)?$")

NOTIFICATION_SIGNING_KEYS = ["Message", "MessageId", "Subject", "Timestamp", "TopicArn", "Type"]
SUBSCRIPTION_SIGNING_KEYS = ["Message", "MessageId", "SubscribeURL", "Timestamp", "Token", "TopicArn", "Type"]

FAILED_BOUNCE_TYPES = {"Undetermined", "Permanent"}


class AmazonSnsMessageType:
    SUBSCRIPTION_CONFIRMATION = "SubscriptionConfirmation"
    UNSUBSCRIBE_CONFIRMATION = "UnsubscribeConfirmation"
    NOTIFICATION = "Notification"


def is_valid_signing_cert_url(url: Optional[str]) -> bool:
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme == "https" and bool(SNS_HOST_PATTERN.match(parsed.hostname or ""))


def build_string_to_sign(body: Dict[str, Any]) -> str:
    if body.get("Type") == AmazonSnsMessageType.NOTIFICATION:
        keys = NOTIFICATION_SIGNING_KEYS
    else:
        keys = SUBSCRIPTION_SIGNING_KEYS
    return "".join(f"{key}\n{body[key]}\n" for key in keys if body.get(key) is not None)


class AmazonSnsRequestValidator:
    """Verifies SNS message signatures (SignatureVersion 1 = SHA1, 2 = SHA256)."""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self.http_client = http_client or httpx.Client(timeout=10.0)
        self._certificates: Dict[str, x509.Certificate] = {}
        self._lock = threading.Lock()

    def _certificate(self, url: str) -> x509.Certificate:
        with self._lock:
            certificate = self._certificates.get(url)
        if certificate is not None:
            return certificate

        response = self.http_client.get(url)
        response.raise_for_status()
        certificate = x509.load_pem_x509_certificate(response.content)
        with self._lock:
            self._certificates[url] = certificate
        return certificate

    def validate_request(self, body: Dict[str, Any]) -> bool:
        signing_cert_url = body.get("SigningCertURL")
        if not is_valid_signing_cert_url(signing_cert_url):
            logger.warning(f"Rejecting SNS request with signing certificate URL {signing_cert_url}")
            return False

        signature_version = str(body.get("SignatureVersion") or "1")
        if signature_version == "1":
            algorithm = hashes.SHA1()
        elif signature_version == "2":
            algorithm = hashes.SHA256()
        else:
            logger.warning(f"Unsupported SNS signature version {signature_version}")
            return False

        try:
            signature = base64.b64decode(body.get("Signature") or "")
            certificate = self._certificate(signing_cert_url)
            certificate.public_key().verify(
                signature, build_string_to_sign(body).encode("utf-8"), padding.PKCS1v15(), algorithm
            )
        except InvalidSignature:
            logger.warning(f"Invalid SNS signature for message {body.get('MessageId')}")
            return False
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Unable to verify SNS message {body.get('MessageId')}: {e}")
            return False
        return True


class AmazonSnsService:
    def __init__(
        self,
        message_service: MessageService,
        validator: Optional[AmazonSnsRequestValidator] = None,
        http_client: Optional[httpx.Client] = None,
        verify_signatures: bool = AMAZON_SNS_VERIFY_SIGNATURES,
    ):
        self.message_service = message_service
        self.validator = validator
        self.http_client = http_client
        self.verify_signatures = verify_signatures

    def handle_callback(self, raw_body: bytes, headers: Optional[Dict[str, str]] = None) -> Optional[MessageLog]:
        try:
            body = json.loads(raw_body)
        except ValueError:
            raise ValidationException("Amazon SNS request body is not valid JSON.")
        if not isinstance(body, dict):
            raise ValidationException("Amazon SNS request body is not valid JSON.")

        if self.verify_signatures:
            validator = self.validator or get_amazon_sns_request_validator()
            if not validator.validate_request(body):
                logger.error(f"Unable to validate Amazon SNS webhook with request body: {raw_body!r}")
                raise AuthorizationException()

        logger.info(f"This Amazon SNS callback is for message ID {body.get('MessageId')}")
        message_type = body.get("Type")

        if message_type == AmazonSnsMessageType.SUBSCRIPTION_CONFIRMATION:
            self.confirm_subscription(body.get("SubscribeURL"))
            return None
        if message_type == AmazonSnsMessageType.UNSUBSCRIBE_CONFIRMATION:
            logger.info("Amazon SNS unsubscribe confirmation received, nothing to do")
            return None
        if message_type == AmazonSnsMessageType.NOTIFICATION:
            return self.handle_notification(body, headers or {})

        raise ValidationException(f"Not sure how to handle Amazon SNS message type '{message_type}'.")

    def confirm_subscription(self, subscribe_url: Optional[str]) -> None:
        if not subscribe_url:
            raise ValidationException("Amazon SNS subscription confirmation is missing SubscribeURL.")

        logger.info("This is an Amazon SNS subscription confirmation request - attempting to confirm...")
        if self.http_client is not None:
            response = self.http_client.get(subscribe_url)
        else:
            with httpx.Client(timeout=10.0) as client:
                response = client.get(subscribe_url)
        if response.status_code >= 400:
            raise IOError(
                f"Failed to confirm Amazon SNS subscription because subscribe URL HTTP status was {response.status_code}"
            )
        logger.info("Successfully confirmed Amazon SNS subscription.")

    def handle_notification(self, body: Dict[str, Any], headers: Dict[str, str]) -> Optional[MessageLog]:
        try:
            message = json.loads(body.get("Message") or "{}")
        except ValueError:
            raise ValidationException("Amazon SNS notification message is not valid JSON.")

        vendor_assigned_id = (message.get("mail") or {}).get("messageId")
        message_log = self.message_service.find_message_log_by_vendor_assigned_id(
            vendor_assigned_id, MessageVendorId.AMAZON_SES
        )
        if message_log is None:
            logger.info(f"We have no record of AMAZON_SES message with vendor-assigned ID {vendor_assigned_id}, ignoring")
            return None

        event_type = message.get("eventType") or message.get("notificationType")
        self.message_service.create_message_log_event(
            message_log.message_id,
            f"ses_{(event_type or 'unknown').lower()}",
            {"headers": headers, "body": body},
        )

        if event_type == "Bounce":
            bounce = message.get("bounce") or {}
            bounce_type = bounce.get("bounceType")
            if bounce_type in FAILED_BOUNCE_TYPES:
                reason = f"Bounced ({bounce_type}/{bounce.get('bounceSubType') or 'Unspecified'})"
                return self.message_service.record_message_delivery_failed(message_log.message_id, reason)
            logger.info(f"This bounce is of type {bounce_type} and does not indicate delivery failure")
        elif event_type == "Delivery":
            return self.message_service.record_message_delivery(message_log.message_id)
        elif event_type == "Complaint":
            return self.message_service.record_message_complaint(message_log.message_id)
        else:
            logger.info(f"Not sure what to do with event type '{event_type}', ignoring...")
        return message_log


_validator: Optional[AmazonSnsRequestValidator] = None


def get_amazon_sns_request_validator() -> AmazonSnsRequestValidator:
    global _validator
    if _validator is None:
        _validator = AmazonSnsRequestValidator()
    return _validator
