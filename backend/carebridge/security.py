"""
Password hashing and token handling.

- Account access tokens: HS256 JWTs whose subject is the account id
- Signing tokens: JWTs presented by the integrated care system on
  server-to-server calls
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from carebridge.config import (
    ACCESS_TOKEN_ALGORITHM,
    ACCESS_TOKEN_EXPIRATION_MINUTES,
    ACCESS_TOKEN_SECRET,
    SIGNING_TOKEN_MAX_AGE_SECONDS,
    SIGNING_TOKEN_SECRET,
    SIGNING_TOKEN_SUBJECT,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_secure_token(length: int = 32) -> str:
    return secrets.token_urlsafe(length)


def generate_numeric_code(digits: int = 4) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(digits))


def create_access_token(account_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for ``account_id``"""
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRATION_MINUTES))
    claims = {"sub": str(account_id), "iat": issued_at, "exp": expire}
    return jose_jwt.encode(claims, ACCESS_TOKEN_SECRET, algorithm=ACCESS_TOKEN_ALGORITHM)


def decode_access_token(token: str) -> Optional[UUID]:
    """
    Verify an access token and return its account id.

    Returns None if the token is malformed, expired or signed with another key.
    """
    try:
        claims = jose_jwt.decode(token, ACCESS_TOKEN_SECRET, algorithms=[ACCESS_TOKEN_ALGORITHM])
        return UUID(claims["sub"])
    except (JWTError, KeyError, ValueError) as e:
        logger.warning(f"Access token verification failed: {e}")
        return None


def create_signing_token(subject: str = SIGNING_TOKEN_SUBJECT) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=SIGNING_TOKEN_MAX_AGE_SECONDS),
    }
    return jose_jwt.encode(claims, SIGNING_TOKEN_SECRET, algorithm=ACCESS_TOKEN_ALGORITHM)


def verify_signing_token(token: Optional[str]) -> bool:
    if not token:
        return False
    try:
        claims: Dict[str, Any] = jose_jwt.decode(token, SIGNING_TOKEN_SECRET, algorithms=[ACCESS_TOKEN_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Signing token verification failed: {e}")
        return False

    if claims.get("sub") != SIGNING_TOKEN_SUBJECT:
        logger.warning(f"Signing token has unexpected subject {claims.get('sub')}")
        return False

    issued_at = claims.get("iat")
    if issued_at is not None:
        age = datetime.now(timezone.utc).timestamp() - float(issued_at)
        if age > SIGNING_TOKEN_MAX_AGE_SECONDS:
            logger.warning(f"Signing token too old: {int(age)}s")
            return False

    return True
