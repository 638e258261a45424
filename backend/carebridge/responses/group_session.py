from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.group_session import (
    GroupSession,
    GroupSessionCollection,
    GroupSessionRequest,
    GroupSessionRequestStatusId,
    GroupSessionReservation,
    GroupSessionSchedulingSystemId,
    GroupSessionStatusId,
)
from carebridge.utils.dates import format_date_time_description, format_time_description


class GroupSessionResponse(BaseModel):
    group_session_id: UUID
    institution_id: str
    group_session_status_id: GroupSessionStatusId
    group_session_scheduling_system_id: GroupSessionSchedulingSystemId
    group_session_collection_id: Optional[UUID] = None
    assessment_id: Optional[UUID] = None
    title: str
    description: str
    url_name: str
    facilitator_account_id: Optional[UUID] = None
    facilitator_name: str
    facilitator_email_address: str
    submitter_account_id: UUID
    start_date_time: str
    start_date_time_description: str
    end_date_time: str
    end_date_time_description: str
    time_zone: str
    seats: Optional[int] = None
    seats_reserved: int
    seats_available: Optional[int] = None
    seats_description: str
    schedule_url: Optional[str] = None
    videoconference_url: Optional[str] = None
    image_url: Optional[str] = None
    visible_flag: bool


class GroupSessionReservationResponse(BaseModel):
    group_session_reservation_id: UUID
    group_session_id: UUID
    account_id: UUID
    canceled: bool
    created: str


class GroupSessionCollectionResponse(BaseModel):
    group_session_collection_id: UUID
    description: str
    display_order: int


def build_group_session_response(group_session: GroupSession, seats_reserved: int = 0) -> GroupSessionResponse:
    seats_available = None
    if group_session.seats is not None:
        seats_available = max(group_session.seats - seats_reserved, 0)
        seats_description = f"{seats_available} of {group_session.seats} seats left"
    elif group_session.group_session_scheduling_system_id == GroupSessionSchedulingSystemId.EXTERNAL:
        seats_description = "Registration is handled externally"
    else:
        seats_description = "Unlimited seats"

    return GroupSessionResponse(
        group_session_id=group_session.group_session_id,
        institution_id=group_session.institution_id,
        group_session_status_id=group_session.group_session_status_id,
        group_session_scheduling_system_id=group_session.group_session_scheduling_system_id,
        group_session_collection_id=group_session.group_session_collection_id,
        assessment_id=group_session.assessment_id,
        title=group_session.title,
        description=group_session.description,
        url_name=group_session.url_name,
        facilitator_account_id=group_session.facilitator_account_id,
        facilitator_name=group_session.facilitator_name,
        facilitator_email_address=group_session.facilitator_email_address,
        submitter_account_id=group_session.submitter_account_id,
        start_date_time=group_session.start_date_time.isoformat(),
        start_date_time_description=format_date_time_description(group_session.start_date_time),
        end_date_time=group_session.end_date_time.isoformat(),
        end_date_time_description=format_time_description(group_session.end_date_time),
        time_zone=group_session.time_zone,
        seats=group_session.seats,
        seats_reserved=seats_reserved,
        seats_available=seats_available,
        seats_description=seats_description,
        schedule_url=group_session.schedule_url,
        videoconference_url=group_session.videoconference_url,
        image_url=group_session.image_url,
        visible_flag=group_session.visible_flag,
    )


def build_reservation_response(reservation: GroupSessionReservation) -> GroupSessionReservationResponse:
    return GroupSessionReservationResponse(
        group_session_reservation_id=reservation.group_session_reservation_id,
        group_session_id=reservation.group_session_id,
        account_id=reservation.account_id,
        canceled=reservation.canceled,
        created=reservation.created.isoformat(),
    )


def build_collection_response(collection: GroupSessionCollection) -> GroupSessionCollectionResponse:
    return GroupSessionCollectionResponse(
        group_session_collection_id=collection.group_session_collection_id,
        description=collection.description,
        display_order=collection.display_order,
    )


class GroupSessionRequestResponse(BaseModel):
    group_session_request_id: UUID
    institution_id: str
    group_session_request_status_id: GroupSessionRequestStatusId
    title: str
    description: str
    url_name: str
    submitter_account_id: UUID
    facilitator_account_id: Optional[UUID] = None
    facilitator_name: str
    facilitator_email_address: str
    image_url: Optional[str] = None
    custom_question1: Optional[str] = None
    custom_question2: Optional[str] = None
    data_collection_enabled: bool
    created: str
    last_updated: str


def build_group_session_request_response(group_session_request: GroupSessionRequest) -> GroupSessionRequestResponse:
    return GroupSessionRequestResponse(
        group_session_request_id=group_session_request.group_session_request_id,
        institution_id=group_session_request.institution_id,
        group_session_request_status_id=group_session_request.group_session_request_status_id,
        title=group_session_request.title,
        description=group_session_request.description,
        url_name=group_session_request.url_name,
        submitter_account_id=group_session_request.submitter_account_id,
        facilitator_account_id=group_session_request.facilitator_account_id,
        facilitator_name=group_session_request.facilitator_name,
        facilitator_email_address=group_session_request.facilitator_email_address,
        image_url=group_session_request.image_url,
        custom_question1=group_session_request.custom_question1,
        custom_question2=group_session_request.custom_question2,
        data_collection_enabled=group_session_request.data_collection_enabled,
        created=group_session_request.created.isoformat(),
        last_updated=group_session_request.last_updated.isoformat(),
    )
