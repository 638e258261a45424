"""Accounts, credentials, password resets and email verification."""

import logging
import re
from datetime import timedelta
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, func, select

from carebridge.config import WEB_BASE_URL
from carebridge.errors import AuthenticationException, NotFoundException, ValidationException
from carebridge.models.account import (
    Account,
    AccountEmailVerification,
    AccountSourceId,
    PasswordResetRequest,
    RoleId,
)
from carebridge.security import generate_numeric_code, generate_secure_token, hash_password, verify_password
from carebridge.services.message_service import MessageService
from carebridge.services.twilio_service import format_e164
from carebridge.utils.dates import parse_time_zone, utc_now

logger = logging.getLogger(__name__)

EMAIL_ADDRESS_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MINIMUM_PASSWORD_LENGTH = 8
PASSWORD_RESET_EXPIRATION = timedelta(hours=24)
EMAIL_VERIFICATION_EXPIRATION = timedelta(minutes=15)


def normalize_email_address(email_address: Optional[str]) -> Optional[str]:
    if email_address is None:
        return None
    email_address = email_address.strip().lower()
    return email_address or None


def is_valid_email_address(email_address: Optional[str]) -> bool:
    return bool(email_address and EMAIL_ADDRESS_PATTERN.match(email_address))


class CreateAccountRequest(BaseModel):
    account_source_id: AccountSourceId = AccountSourceId.ANONYMOUS
    email_address: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    time_zone: Optional[str] = None
    locale: Optional[str] = None


class AccountService:
    def __init__(self, session: Session, message_service: Optional[MessageService] = None):
        self.session = session
        self.message_service = message_service or MessageService(session)

    def find_account_by_id(self, account_id: Optional[UUID]) -> Optional[Account]:
        if account_id is None:
            return None
        return self.session.get(Account, account_id)

    def find_account_by_email_address(self, institution_id: str, email_address: Optional[str]) -> Optional[Account]:
        email_address = normalize_email_address(email_address)
        if email_address is None:
            return None
        return self.session.exec(
            select(Account).where(
                Account.institution_id == institution_id,
                func.lower(Account.email_address) == email_address,
                Account.account_source_id == AccountSourceId.EMAIL_PASSWORD,
            )
        ).first()

    def create_account(
        self, institution_id: str, request: CreateAccountRequest, role_id: RoleId = RoleId.PATIENT
    ) -> Account:
        field_errors = {}
        email_address = normalize_email_address(request.email_address)

        if request.account_source_id == AccountSourceId.EMAIL_PASSWORD:
            if email_address is None:
                field_errors["email_address"] = "Email address is required."
            elif not is_valid_email_address(email_address):
                field_errors["email_address"] = "Email address is invalid."
            elif self.find_account_by_email_address(institution_id, email_address):
                field_errors["email_address"] = "An account with that email address already exists."

            if not request.password:
                field_errors["password"] = "Password is required."
            elif len(request.password) < MINIMUM_PASSWORD_LENGTH:
                field_errors["password"] = f"Password must be at least {MINIMUM_PASSWORD_LENGTH} characters."
        elif email_address is not None and not is_valid_email_address(email_address):
            field_errors["email_address"] = "Email address is invalid."

        phone_number = None
        if request.phone_number:
            try:
                phone_number = format_e164(request.phone_number)
            except ValueError:
                field_errors["phone_number"] = "Phone number is invalid."

        if request.time_zone and parse_time_zone(request.time_zone) is None:
            field_errors["time_zone"] = "Time zone is invalid."

        if field_errors:
            raise ValidationException(field_errors=field_errors)

        account = Account(
            institution_id=institution_id,
            role_id=role_id,
            account_source_id=request.account_source_id,
            email_address=email_address,
            password=hash_password(request.password) if request.password else None,
            first_name=request.first_name,
            last_name=request.last_name,
            display_name=request.display_name,
            phone_number=phone_number,
            time_zone=request.time_zone,
            locale=request.locale,
        )
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        logger.info(f"Created {account.account_source_id} account {account.account_id} for {institution_id}")
        return account

    def authenticate(self, institution_id: str, email_address: Optional[str], password: Optional[str]) -> Account:
        account = self.find_account_by_email_address(institution_id, email_address)
        if account is None or not password or not verify_password(password, account.password):
            raise AuthenticationException("Sorry, we were unable to authenticate you.")
        return account

    def update_email_address(self, account: Account, email_address: Optional[str]) -> Account:
        email_address = normalize_email_address(email_address)
        if not is_valid_email_address(email_address):
            raise ValidationException.for_field("email_address", "Email address is invalid.")
        if email_address != normalize_email_address(account.email_address):
            account.email_address = email_address
            account.email_verified = False
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def update_phone_number(self, account: Account, phone_number: Optional[str]) -> Account:
        try:
            account.phone_number = format_e164(phone_number or "")
        except ValueError:
            raise ValidationException.for_field("phone_number", "Phone number is invalid.")
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def accept_consent_form(self, account: Account) -> Account:
        if not account.consent_form_accepted:
            account.consent_form_accepted = True
            account.consent_form_accepted_date = utc_now()
            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
        return account

    def forgot_password(self, institution_id: str, email_address: Optional[str]) -> None:
        """Issue a reset token if the account exists. Never reveals whether it does."""
        account = self.find_account_by_email_address(institution_id, email_address)
        if account is None:
            logger.info(f"Password reset requested for unknown email address in {institution_id}")
            return

        reset_request = PasswordResetRequest(
            account_id=account.account_id,
            password_reset_token=generate_secure_token(),
            expiration=utc_now() + PASSWORD_RESET_EXPIRATION,
        )
        self.session.add(reset_request)
        self.session.commit()

        reset_url = f"{WEB_BASE_URL}/accounts/reset-password/{reset_request.password_reset_token}"
        self.message_service.enqueue_email(
            institution_id,
            account.email_address,
            "Reset your password",
            f"Use this link to choose a new password: {reset_url}\nThe link expires in 24 hours.",
            template="PASSWORD_RESET",
        )

    def reset_password(self, password_reset_token: str, password: str, confirm_password: str) -> Account:
        reset_request = self.session.exec(
            select(PasswordResetRequest).where(PasswordResetRequest.password_reset_token == password_reset_token)
        ).first()
        if reset_request is None or reset_request.used or reset_request.expiration < utc_now():
            raise ValidationException("Your password reset link is invalid or has expired.")

        field_errors = {}
        if not password or len(password) < MINIMUM_PASSWORD_LENGTH:
            field_errors["password"] = f"Password must be at least {MINIMUM_PASSWORD_LENGTH} characters."
        elif password != confirm_password:
            field_errors["confirm_password"] = "Passwords do not match."
        if field_errors:
            raise ValidationException(field_errors=field_errors)

        account = self.session.get(Account, reset_request.account_id)
        account.password = hash_password(password)
        reset_request.used = True
        self.session.add(account)
        self.session.add(reset_request)
        self.session.commit()
        self.session.refresh(account)
        return account

    def create_email_verification_code(self, account: Account, email_address: Optional[str]) -> AccountEmailVerification:
        email_address = normalize_email_address(email_address or account.email_address)
        if not is_valid_email_address(email_address):
            raise ValidationException.for_field("email_address", "Email address is invalid.")

        verification = AccountEmailVerification(
            account_id=account.account_id,
            email_address=email_address,
            code=generate_numeric_code(4),
            expiration=utc_now() + EMAIL_VERIFICATION_EXPIRATION,
        )
        self.session.add(verification)
        self.session.commit()
        self.session.refresh(verification)

        self.message_service.enqueue_email(
            account.institution_id,
            email_address,
            "Your verification code",
            f"Your verification code is {verification.code}. It expires in 15 minutes.",
            template="EMAIL_VERIFICATION",
        )
        return verification

    def apply_email_verification_code(self, account: Account, email_address: Optional[str], code: str) -> Account:
        email_address = normalize_email_address(email_address or account.email_address)
        verification = self.session.exec(
            select(AccountEmailVerification)
            .where(
                AccountEmailVerification.account_id == account.account_id,
                AccountEmailVerification.email_address == email_address,
                AccountEmailVerification.code == (code or "").strip(),
                AccountEmailVerification.verified == False,  # noqa: E712
            )
            .order_by(AccountEmailVerification.created.desc())
        ).first()

        if verification is None or verification.expiration < utc_now():
            raise ValidationException.for_field("code", "The verification code is invalid or has expired.")

        verification.verified = True
        self.session.add(verification)
        if normalize_email_address(account.email_address) == email_address:
            account.email_verified = True
            self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def is_email_address_verified(self, account: Account, email_address: Optional[str]) -> bool:
        email_address = normalize_email_address(email_address or account.email_address)
        if email_address is None:
            return False
        if account.email_verified and normalize_email_address(account.email_address) == email_address:
            return True
        verified_count = self.session.exec(
            select(func.count())
            .select_from(AccountEmailVerification)
            .where(
                AccountEmailVerification.account_id == account.account_id,
                AccountEmailVerification.email_address == email_address,
                AccountEmailVerification.verified == True,  # noqa: E712
            )
        ).one()
        return verified_count > 0

    def get_account(self, account_id: UUID) -> Account:
        account = self.find_account_by_id(account_id)
        if account is None:
            raise NotFoundException(f"Account {account_id} not found")
        return account
