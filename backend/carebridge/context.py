"""Per-request ambient state and the dependencies that build it."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from carebridge.config import DEFAULT_INSTITUTION_ID
from carebridge.database import get_session
from carebridge.errors import AuthenticationException, NotFoundException
from carebridge.models.account import Account, RoleId
from carebridge.models.institution import Institution
from carebridge.security import decode_access_token, verify_signing_token
from carebridge.utils.dates import local_now, parse_time_zone

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ACCESS_TOKEN_HEADER = "X-Access-Token"
SIGNING_TOKEN_HEADER = "X-Signing-Token"
LOCALE_HEADER = "X-Locale"
TIME_ZONE_HEADER = "X-Time-Zone"
SESSION_TRACKING_HEADER = "X-Session-Tracking-Id"
INSTITUTION_HEADER = "X-Institution-Id"


@dataclass
class CurrentContext:
    institution: Institution
    locale: str
    time_zone: str
    account: Optional[Account] = None
    session_tracking_id: Optional[UUID] = None
    signed_by_integrated_care: bool = False

    @property
    def institution_id(self) -> str:
        return self.institution.institution_id

    @property
    def account_id(self) -> Optional[UUID]:
        return self.account.account_id if self.account else None

    def now(self) -> datetime:
        return local_now(self.time_zone)

    def today(self) -> date:
        return self.now().date()

    def has_role(self, *role_ids: RoleId) -> bool:
        return self.account is not None and self.account.role_id in role_ids


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(value)
    except ValueError:
        logger.debug(f"Ignoring malformed UUID header value {value!r}")
        return None


def get_current_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> CurrentContext:
    token = credentials.credentials if credentials else request.headers.get(ACCESS_TOKEN_HEADER)

    account = None
    if token:
        account_id = decode_access_token(token)
        if account_id:
            account = session.get(Account, account_id)
            if account is None:
                logger.warning(f"Access token refers to unknown account {account_id}")

    institution_id = account.institution_id if account else request.headers.get(INSTITUTION_HEADER)
    institution_id = institution_id or DEFAULT_INSTITUTION_ID
    institution = session.get(Institution, institution_id)
    if institution is None:
        raise NotFoundException(f"Unknown institution {institution_id}")

    time_zone = institution.time_zone
    for candidate in (request.headers.get(TIME_ZONE_HEADER), account.time_zone if account else None):
        if parse_time_zone(candidate) is not None:
            time_zone = candidate
            break

    locale = request.headers.get(LOCALE_HEADER) or (account.locale if account else None) or institution.locale

    return CurrentContext(
        institution=institution,
        locale=locale,
        time_zone=time_zone,
        account=account,
        session_tracking_id=_parse_uuid(request.headers.get(SESSION_TRACKING_HEADER)),
        signed_by_integrated_care=verify_signing_token(request.headers.get(SIGNING_TOKEN_HEADER)),
    )


def require_account(context: CurrentContext = Depends(get_current_context)) -> CurrentContext:
    """Context for endpoints that need a signed-in account"""
    if context.account is None:
        raise AuthenticationException()
    return context


def require_signed_request(context: CurrentContext = Depends(get_current_context)) -> CurrentContext:
    """Context for endpoints only the integrated care system may call"""
    if not context.signed_by_integrated_care:
        raise AuthenticationException("Authentication failed. This request must be signed.")
    return context
