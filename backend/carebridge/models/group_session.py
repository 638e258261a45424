from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel, UniqueConstraint

from carebridge.utils.dates import utc_now


class GroupSessionStatusId(str, Enum):
    NEW = "NEW"
    ADDED = "ADDED"
    ARCHIVED = "ARCHIVED"
    CANCELED = "CANCELED"
    DELETED = "DELETED"


class GroupSessionSchedulingSystemId(str, Enum):
    COBALT = "COBALT"
    EXTERNAL = "EXTERNAL"


class GroupSessionCollection(SQLModel, table=True):
    __tablename__ = "group_session_collection"

    group_session_collection_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    description: str
    display_order: int = Field(default=0)


class GroupSession(SQLModel, table=True):
    __tablename__ = "group_session"
    __table_args__ = (UniqueConstraint("institution_id", "url_name", name="uq_group_session_url_name"),)

    group_session_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    group_session_status_id: GroupSessionStatusId = Field(
        default=GroupSessionStatusId.NEW, sa_column=Column(String, nullable=False)
    )
    group_session_scheduling_system_id: GroupSessionSchedulingSystemId = Field(
        default=GroupSessionSchedulingSystemId.COBALT, sa_column=Column(String, nullable=False)
    )
    group_session_collection_id: Optional[UUID] = Field(
        default=None, foreign_key="group_session_collection.group_session_collection_id"
    )
    assessment_id: Optional[UUID] = Field(default=None, foreign_key="assessment.assessment_id")
    title: str
    description: str
    url_name: str
    facilitator_account_id: Optional[UUID] = Field(default=None, foreign_key="account.account_id")
    facilitator_name: str
    facilitator_email_address: str
    submitter_account_id: UUID = Field(foreign_key="account.account_id")
    # Wall-clock times in time_zone
    start_date_time: datetime
    end_date_time: datetime
    time_zone: str
    seats: Optional[int] = None  # None means unlimited
    schedule_url: Optional[str] = None  # EXTERNAL sessions only
    videoconference_url: Optional[str] = None
    image_url: Optional[str] = None
    visible_flag: bool = Field(default=True)
    created: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class GroupSessionReservation(SQLModel, table=True):
    __tablename__ = "group_session_reservation"

    group_session_reservation_id: UUID = Field(default_factory=uuid4, primary_key=True)
    group_session_id: UUID = Field(foreign_key="group_session.group_session_id", index=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    canceled: bool = Field(default=False)
    created: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class GroupSessionRequestStatusId(str, Enum):
    NEW = "NEW"
    ADDED = "ADDED"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"


class GroupSessionRequest(SQLModel, table=True):
    """A group session that attendees ask a facilitator to hold, rather than a scheduled one."""

    __tablename__ = "group_session_request"

    group_session_request_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    group_session_request_status_id: GroupSessionRequestStatusId = Field(
        default=GroupSessionRequestStatusId.NEW, sa_column=Column(String, nullable=False)
    )
    submitter_account_id: UUID = Field(foreign_key="account.account_id")
    title: str
    description: str
    url_name: str
    facilitator_account_id: Optional[UUID] = Field(default=None, foreign_key="account.account_id")
    facilitator_name: str
    facilitator_email_address: str
    image_url: Optional[str] = None
    custom_question1: Optional[str] = None
    custom_question2: Optional[str] = None
    data_collection_enabled: bool = Field(default=True)
    created: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
