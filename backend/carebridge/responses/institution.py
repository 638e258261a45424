from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.institution import Institution, InstitutionLocation


class InstitutionResponse(BaseModel):
    institution_id: str
    name: str
    time_zone: str
    locale: str
    support_email_address: Optional[str] = None
    email_verification_required: bool
    group_sessions_enabled: bool
    anonymous_enabled: bool
    email_enabled: bool


class InstitutionLocationResponse(BaseModel):
    institution_location_id: UUID
    name: str
    display_order: int


def build_institution_response(institution: Institution) -> InstitutionResponse:
    return InstitutionResponse(
        institution_id=institution.institution_id,
        name=institution.name,
        time_zone=institution.time_zone,
        locale=institution.locale,
        support_email_address=institution.support_email_address,
        email_verification_required=institution.email_verification_required,
        group_sessions_enabled=institution.group_sessions_enabled,
        anonymous_enabled=institution.anonymous_enabled,
        email_enabled=institution.email_enabled,
    )


def build_location_response(location: InstitutionLocation) -> InstitutionLocationResponse:
    return InstitutionLocationResponse(
        institution_location_id=location.institution_location_id,
        name=location.name,
        display_order=location.display_order,
    )
