"""Runtime configuration read from the environment (and an optional .env file)."""

import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./carebridge.db")
SQL_ECHO = _flag("SQL_ECHO")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DEFAULT_INSTITUTION_ID = os.getenv("DEFAULT_INSTITUTION_ID", "COBALT")
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "en-US")
DEFAULT_TIME_ZONE = os.getenv("DEFAULT_TIME_ZONE", "America/New_York")

ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "change-me-access-token-secret")
ACCESS_TOKEN_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRATION_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRATION_MINUTES", str(60 * 24 * 30)))

# Requests from the integrated care system carry a short-lived token signed with this secret
SIGNING_TOKEN_SECRET = os.getenv("SIGNING_TOKEN_SECRET", "change-me-signing-token-secret")
SIGNING_TOKEN_SUBJECT = "INTEGRATED_CARE_SYSTEM"
SIGNING_TOKEN_MAX_AGE_SECONDS = int(os.getenv("SIGNING_TOKEN_MAX_AGE_SECONDS", "600"))

ACUITY_USER_ID = os.getenv("ACUITY_USER_ID", "")
ACUITY_API_KEY = os.getenv("ACUITY_API_KEY", "")
ACUITY_BASE_URL = os.getenv("ACUITY_BASE_URL", "https://acuityscheduling.com/api/v1")
ACUITY_AVAILABILITY_CACHE_SECONDS = int(os.getenv("ACUITY_AVAILABILITY_CACHE_SECONDS", "300"))

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER", "")
TWILIO_STATUS_CALLBACK_BASE_URL = os.getenv("TWILIO_STATUS_CALLBACK_BASE_URL", "")

AMAZON_SNS_VERIFY_SIGNATURES = _flag("AMAZON_SNS_VERIFY_SIGNATURES", "true")

EMAIL_DEFAULT_FROM_ADDRESS = os.getenv("EMAIL_DEFAULT_FROM_ADDRESS", "noreply@carebridge.local")
WEB_BASE_URL = os.getenv("WEB_BASE_URL", "http://localhost:3000")

BACKGROUND_WORKER_COUNT = int(os.getenv("BACKGROUND_WORKER_COUNT", "4"))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
