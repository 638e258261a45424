"""Requests for group sessions that a facilitator runs on demand."""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, func, or_, select

from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account, RoleId
from carebridge.models.group_session import GroupSessionRequest, GroupSessionRequestStatusId
from carebridge.services.account_service import is_valid_email_address, normalize_email_address
from carebridge.services.group_session_service import DEFAULT_PAGE_SIZE, MAXIMUM_PAGE_SIZE, GroupSessionViewType
from carebridge.services.message_service import MessageService

logger = logging.getLogger(__name__)


class SaveGroupSessionRequestRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    url_name: Optional[str] = None
    facilitator_account_id: Optional[UUID] = None
    facilitator_name: Optional[str] = None
    facilitator_email_address: Optional[str] = None
    image_url: Optional[str] = None
    custom_question1: Optional[str] = None
    custom_question2: Optional[str] = None
    data_collection_enabled: Optional[bool] = None


def _trim(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class GroupSessionRequestService:
    def __init__(self, session: Session, message_service: Optional[MessageService] = None):
        self.session = session
        self.message_service = message_service or MessageService(session)

    def find_group_session_requests(
        self,
        institution_id: str,
        account: Account,
        view_type: GroupSessionViewType = GroupSessionViewType.PATIENT,
        search_query: Optional[str] = None,
        url_name: Optional[str] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Tuple[List[GroupSessionRequest], int]:
        """
        Page through group session requests, most recently changed first.

        Patient views only ever see ADDED requests. Administrator views show
        everything to administrators, and only the caller's own NEW requests
        to everyone else.
        """
        page_number = max(page_number or 0, 0)
        if page_size is None or page_size <= 0:
            page_size = DEFAULT_PAGE_SIZE
        page_size = min(page_size, MAXIMUM_PAGE_SIZE)

        conditions = [
            GroupSessionRequest.institution_id == institution_id,
            GroupSessionRequest.group_session_request_status_id != GroupSessionRequestStatusId.DELETED,
        ]
        if view_type == GroupSessionViewType.PATIENT:
            conditions.append(GroupSessionRequest.group_session_request_status_id == GroupSessionRequestStatusId.ADDED)
        elif account.role_id != RoleId.ADMINISTRATOR:
            owner_conditions = [
                GroupSessionRequest.submitter_account_id == account.account_id,
                GroupSessionRequest.facilitator_account_id == account.account_id,
            ]
            email_address = normalize_email_address(account.email_address)
            if email_address:
                owner_conditions.append(func.lower(GroupSessionRequest.facilitator_email_address) == email_address)
            conditions.append(GroupSessionRequest.group_session_request_status_id == GroupSessionRequestStatusId.NEW)
            conditions.append(or_(*owner_conditions))

        if url_name and url_name.strip():
            conditions.append(GroupSessionRequest.url_name == url_name.strip())
        if search_query and search_query.strip():
            pattern = f"%{search_query.strip()}%"
            conditions.append(
                or_(GroupSessionRequest.title.ilike(pattern), GroupSessionRequest.description.ilike(pattern))
            )

        total_count = self.session.exec(
            select(func.count()).select_from(GroupSessionRequest).where(*conditions)
        ).one()
        query = (
            select(GroupSessionRequest)
            .where(*conditions)
            .order_by(GroupSessionRequest.last_updated.desc(), GroupSessionRequest.group_session_request_id)
            .offset(page_number * page_size)
            .limit(page_size)
        )
        return list(self.session.exec(query).all()), total_count

    def find_group_session_request(
        self, group_session_request_id: UUID, institution_id: str
    ) -> Optional[GroupSessionRequest]:
        group_session_request = self.session.get(GroupSessionRequest, group_session_request_id)
        if group_session_request is None or group_session_request.institution_id != institution_id:
            return None
        if group_session_request.group_session_request_status_id == GroupSessionRequestStatusId.DELETED:
            return None
        return group_session_request

    def get_group_session_request(self, group_session_request_id: UUID, institution_id: str) -> GroupSessionRequest:
        group_session_request = self.find_group_session_request(group_session_request_id, institution_id)
        if group_session_request is None:
            raise NotFoundException(f"Group session request {group_session_request_id} not found")
        return group_session_request

    def _validate(self, request: SaveGroupSessionRequestRequest) -> dict:
        title = _trim(request.title)
        description = _trim(request.description)
        url_name = _trim(request.url_name)
        facilitator_name = _trim(request.facilitator_name)
        facilitator_email_address = _trim(request.facilitator_email_address)

        field_errors = {}
        if title is None:
            field_errors["title"] = "Title is required."
        if description is None:
            field_errors["description"] = "Description is required."
        if url_name is None:
            field_errors["url_name"] = "URL name is required."
        if facilitator_name is None:
            field_errors["facilitator_name"] = "Facilitator name is required."
        if facilitator_email_address is None:
            field_errors["facilitator_email_address"] = "Facilitator email address is required."
        elif not is_valid_email_address(normalize_email_address(facilitator_email_address)):
            field_errors["facilitator_email_address"] = "Facilitator email address is invalid."
        if field_errors:
            raise ValidationException(field_errors=field_errors)

        data_collection_enabled = True if request.data_collection_enabled is None else request.data_collection_enabled
        custom_question1 = _trim(request.custom_question1) if data_collection_enabled else None
        custom_question2 = _trim(request.custom_question2) if data_collection_enabled else None

        return {
            "title": title,
            "description": description,
            "url_name": url_name,
            "facilitator_account_id": request.facilitator_account_id,
            "facilitator_name": facilitator_name,
            "facilitator_email_address": normalize_email_address(facilitator_email_address),
            "image_url": _trim(request.image_url),
            "custom_question1": custom_question1,
            "custom_question2": custom_question2,
            "data_collection_enabled": data_collection_enabled,
        }

    def create_group_session_request(
        self, request: SaveGroupSessionRequestRequest, submitter: Account
    ) -> GroupSessionRequest:
        group_session_request = GroupSessionRequest(
            **self._validate(request),
            institution_id=submitter.institution_id,
            submitter_account_id=submitter.account_id,
            group_session_request_status_id=GroupSessionRequestStatusId.NEW,
        )
        self.session.add(group_session_request)
        self.session.commit()
        self.session.refresh(group_session_request)
        logger.info(
            f"Group session request {group_session_request.group_session_request_id} submitted by {submitter.account_id}"
        )
        return group_session_request

    def update_group_session_request(
        self, group_session_request: GroupSessionRequest, request: SaveGroupSessionRequestRequest
    ) -> GroupSessionRequest:
        for key, value in self._validate(request).items():
            setattr(group_session_request, key, value)
        self.session.add(group_session_request)
        self.session.commit()
        self.session.refresh(group_session_request)
        return group_session_request

    def update_group_session_request_status(
        self,
        group_session_request: GroupSessionRequest,
        group_session_request_status_id: GroupSessionRequestStatusId,
        account: Account,
    ) -> bool:
        """Change status. Returns False when the status is unchanged."""
        if group_session_request.group_session_request_status_id == group_session_request_status_id:
            return False

        group_session_request.group_session_request_status_id = group_session_request_status_id
        self.session.add(group_session_request)
        self.session.commit()
        self.session.refresh(group_session_request)
        logger.info(
            f"Group session request {group_session_request.group_session_request_id} "
            f"is now {group_session_request_status_id.value}"
        )

        if (
            group_session_request_status_id == GroupSessionRequestStatusId.ADDED
            and group_session_request.submitter_account_id != account.account_id
        ):
            submitter = self.session.get(Account, group_session_request.submitter_account_id)
            if submitter is not None and submitter.email_address:
                self.message_service.enqueue_email(
                    group_session_request.institution_id,
                    submitter.email_address,
                    f"{group_session_request.title} is now live",
                    f"Your group session request \"{group_session_request.title}\" has been approved and is now listed.",
                    template="GROUP_SESSION_REQUEST_LIVE",
                )
        return True
