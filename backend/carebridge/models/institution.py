from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from carebridge.utils.dates import utc_now


class Institution(SQLModel, table=True):
    __tablename__ = "institution"

    institution_id: str = Field(primary_key=True)
    name: str
    time_zone: str = Field(default="America/New_York")
    locale: str = Field(default="en-US")
    support_email_address: Optional[str] = None
    email_verification_required: bool = Field(default=False)
    group_sessions_enabled: bool = Field(default=True)
    anonymous_enabled: bool = Field(default=True)
    email_enabled: bool = Field(default=True)
    created: datetime = Field(default_factory=utc_now)


class InstitutionLocation(SQLModel, table=True):
    __tablename__ = "institution_location"

    institution_location_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    name: str
    display_order: int = Field(default=0)


class CrisisContact(SQLModel, table=True):
    """Staff member emailed when a screening indicates crisis."""

    __tablename__ = "crisis_contact"

    crisis_contact_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    email_address: str
    locale: str = Field(default="en-US")
    active: bool = Field(default=True)
