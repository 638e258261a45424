from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.context import CurrentContext
from carebridge.models.account import Account, AccountSourceId, RoleId
from carebridge.utils.dates import format_date_time_description, utc_to_local


class AccountResponse(BaseModel):
    account_id: UUID
    institution_id: str
    role_id: RoleId
    account_source_id: AccountSourceId
    provider_id: Optional[UUID] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    email_address: Optional[str] = None
    email_verified: bool
    phone_number: Optional[str] = None
    time_zone: Optional[str] = None
    locale: Optional[str] = None
    consent_form_accepted: bool
    consent_form_accepted_date: Optional[str] = None
    created: str
    created_description: str


def build_account_response(account: Account, context: CurrentContext) -> AccountResponse:
    created_local = utc_to_local(account.created, context.time_zone)
    consent_date = None
    if account.consent_form_accepted_date is not None:
        consent_date = utc_to_local(account.consent_form_accepted_date, context.time_zone).isoformat()

    return AccountResponse(
        account_id=account.account_id,
        institution_id=account.institution_id,
        role_id=account.role_id,
        account_source_id=account.account_source_id,
        provider_id=account.provider_id,
        first_name=account.first_name,
        last_name=account.last_name,
        display_name=account.full_name,
        email_address=account.email_address,
        email_verified=account.email_verified,
        phone_number=account.phone_number,
        time_zone=account.time_zone or context.time_zone,
        locale=account.locale or context.locale,
        consent_form_accepted=account.consent_form_accepted,
        consent_form_accepted_date=consent_date,
        created=created_local.isoformat(),
        created_description=format_date_time_description(created_local),
    )
