"""Account creation, sign-in, profile updates, password resets and email verification."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlmodel import Session

from carebridge.context import CurrentContext, get_current_context, require_account
from carebridge.database import get_session
from carebridge.errors import AuthorizationException
from carebridge.models.account import Account, AccountSourceId, RoleId
from carebridge.models.audit_log import AuditLogEventId
from carebridge.responses.account import build_account_response
from carebridge.security import create_access_token
from carebridge.services.account_service import AccountService, CreateAccountRequest
from carebridge.services.audit_log_service import AuditLogService
from carebridge.services.authorization_service import AuthorizationService
from carebridge.services.message_service import MessageService

logger = logging.getLogger(__name__)

router = APIRouter()

SUPPORTED_TIME_ZONES = [
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Phoenix",
    "America/Los_Angeles",
    "America/Anchorage",
    "Pacific/Honolulu",
    "UTC",
]
SUPPORTED_LOCALES = ["en-US", "es-US"]


# ============================================================================
# Request Models
# ============================================================================


class AccessTokenRequest(BaseModel):
    email_address: Optional[str] = None
    password: Optional[str] = None


class UpdateEmailAddressRequest(BaseModel):
    email_address: Optional[str] = None


class UpdatePhoneNumberRequest(BaseModel):
    phone_number: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email_address: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password_reset_token: str
    password: str
    confirm_password: str


class EmailVerificationCodeRequest(BaseModel):
    email_address: Optional[str] = None


class EmailVerificationRequest(BaseModel):
    email_address: Optional[str] = None
    code: str


def get_account_service(session: Session = Depends(get_session)) -> AccountService:
    return AccountService(session, MessageService(session))


def _require_self(context: CurrentContext, account_id: UUID) -> Account:
    if context.account_id != account_id:
        raise AuthorizationException()
    return context.account


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/accounts/reference-data")
def get_reference_data():
    """Time zones, locales and roles the web client offers"""
    return {
        "time_zones": SUPPORTED_TIME_ZONES,
        "locales": SUPPORTED_LOCALES,
        "roles": [role.value for role in RoleId],
    }


@router.post("/accounts", status_code=201)
def create_account(
    request: CreateAccountRequest,
    context: CurrentContext = Depends(get_current_context),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.create_account(context.institution_id, request)
    AuditLogService(account_service.session).audit(
        AuditLogEventId.ACCOUNT_CREATE,
        account_id=account.account_id,
        message=f"Created {AccountSourceId(account.account_source_id).value} account",
    )
    return {
        "account": build_account_response(account, context),
        "access_token": create_access_token(account.account_id),
    }


@router.post("/accounts/access-token")
def create_access_token_for_credentials(
    request: AccessTokenRequest,
    context: CurrentContext = Depends(get_current_context),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.authenticate(context.institution_id, request.email_address, request.password)
    return {
        "account": build_account_response(account, context),
        "access_token": create_access_token(account.account_id),
    }


@router.post("/accounts/forgot-password", status_code=204)
def forgot_password(
    request: ForgotPasswordRequest,
    context: CurrentContext = Depends(get_current_context),
    account_service: AccountService = Depends(get_account_service),
):
    account_service.forgot_password(context.institution_id, request.email_address)
    return Response(status_code=204)


@router.post("/accounts/reset-password")
def reset_password(
    request: ResetPasswordRequest,
    context: CurrentContext = Depends(get_current_context),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.reset_password(request.password_reset_token, request.password, request.confirm_password)
    return {
        "account": build_account_response(account, context),
        "access_token": create_access_token(account.account_id),
    }


@router.get("/accounts/{account_id}")
def get_account(
    account_id: UUID,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.get_account(account_id)
    if not AuthorizationService(account_service.session).can_view_account(context.account, account):
        raise AuthorizationException()

    AuditLogService(account_service.session).audit(
        AuditLogEventId.ACCOUNT_LOOKUP,
        account_id=context.account_id,
        message=f"Looked up account {account_id}",
    )
    return {"account": build_account_response(account, context)}


@router.put("/accounts/{account_id}/email-address")
def update_email_address(
    account_id: UUID,
    request: UpdateEmailAddressRequest,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.update_email_address(_require_self(context, account_id), request.email_address)
    return {"account": build_account_response(account, context)}


@router.put("/accounts/{account_id}/phone-number")
def update_phone_number(
    account_id: UUID,
    request: UpdatePhoneNumberRequest,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.update_phone_number(_require_self(context, account_id), request.phone_number)
    return {"account": build_account_response(account, context)}


@router.put("/accounts/{account_id}/consent-form-accepted")
def accept_consent_form(
    account_id: UUID,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.accept_consent_form(_require_self(context, account_id))
    return {"account": build_account_response(account, context)}


@router.post("/accounts/{account_id}/email-verification-code", status_code=204)
def create_email_verification_code(
    account_id: UUID,
    request: EmailVerificationCodeRequest,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account_service.create_email_verification_code(_require_self(context, account_id), request.email_address)
    return Response(status_code=204)


@router.post("/accounts/{account_id}/email-verification")
def apply_email_verification_code(
    account_id: UUID,
    request: EmailVerificationRequest,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.apply_email_verification_code(
        _require_self(context, account_id), request.email_address, request.code
    )
    return {"account": build_account_response(account, context)}


@router.get("/accounts/{account_id}/email-verified")
def get_email_verified(
    account_id: UUID,
    email_address: Optional[str] = None,
    context: CurrentContext = Depends(require_account),
    account_service: AccountService = Depends(get_account_service),
):
    account = account_service.get_account(account_id)
    if not AuthorizationService(account_service.session).can_view_account(context.account, account):
        raise AuthorizationException()
    return {"verified": account_service.is_email_address_verified(account, email_address)}
