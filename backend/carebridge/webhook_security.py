"""
Signature helpers for inbound vendor webhooks.

Acuity signs the raw request body with the account API key
(base64 HMAC-SHA256). Twilio and Amazon SNS use their own schemes and are
verified in their service modules.
"""

import base64
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def compute_hmac_sha256_base64(secret: str, payload: bytes) -> str:
    signature = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(signature).decode("utf-8")


def verify_acuity_signature(api_key: str, payload: bytes, signature: str) -> bool:
    if not api_key:
        logger.error("Acuity API key not configured; rejecting webhook")
        return False
    expected = compute_hmac_sha256_base64(api_key, payload)
    return constant_time_compare(expected, signature or "")
