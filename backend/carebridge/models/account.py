from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel

from carebridge.utils.dates import utc_now


class RoleId(str, Enum):
    PATIENT = "PATIENT"
    PROVIDER = "PROVIDER"
    MHIC = "MHIC"
    ADMINISTRATOR = "ADMINISTRATOR"


class AccountSourceId(str, Enum):
    ANONYMOUS = "ANONYMOUS"
    EMAIL_PASSWORD = "EMAIL_PASSWORD"


class Account(SQLModel, table=True):
    __tablename__ = "account"

    account_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    role_id: RoleId = Field(default=RoleId.PATIENT, sa_column=Column(String, nullable=False))
    account_source_id: AccountSourceId = Field(
        default=AccountSourceId.ANONYMOUS, sa_column=Column(String, nullable=False)
    )
    provider_id: Optional[UUID] = Field(default=None, foreign_key="provider.provider_id")
    email_address: Optional[str] = Field(default=None, index=True)
    email_verified: bool = Field(default=False)
    password: Optional[str] = None  # bcrypt hash
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    phone_number: Optional[str] = None  # E.164
    time_zone: Optional[str] = None
    locale: Optional[str] = None
    consent_form_accepted: bool = Field(default=False)
    consent_form_accepted_date: Optional[datetime] = None
    created: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    @property
    def full_name(self) -> Optional[str]:
        if self.display_name:
            return self.display_name
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None


class AccountEmailVerification(SQLModel, table=True):
    __tablename__ = "account_email_verification"

    account_email_verification_id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    email_address: str
    code: str
    verified: bool = Field(default=False)
    expiration: datetime
    created: datetime = Field(default_factory=utc_now)


class PasswordResetRequest(SQLModel, table=True):
    __tablename__ = "password_reset_request"

    password_reset_request_id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    password_reset_token: str = Field(index=True, unique=True)
    expiration: datetime
    used: bool = Field(default=False)
    created: datetime = Field(default_factory=utc_now)
