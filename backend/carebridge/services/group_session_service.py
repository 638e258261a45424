"""Group sessions (classes/workshops) and seat reservations."""

import logging
import re
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, func, or_, select

from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account, RoleId
from carebridge.models.group_session import (
    GroupSession,
    GroupSessionCollection,
    GroupSessionReservation,
    GroupSessionSchedulingSystemId,
    GroupSessionStatusId,
)
from carebridge.services.account_service import is_valid_email_address, normalize_email_address
from carebridge.services.message_service import MessageService
from carebridge.services.twilio_service import format_e164
from carebridge.utils.dates import format_date_time_description

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAXIMUM_PAGE_SIZE = 100
DUPLICATE_DATE_OFFSET_DAYS = 7

URL_NAME_ILLEGAL_CHARACTERS = re.compile(r"[^a-z0-9-]")


class GroupSessionViewType(str, Enum):
    PATIENT = "PATIENT"
    ADMINISTRATOR = "ADMINISTRATOR"


class GroupSessionOrderBy(str, Enum):
    START_TIME_ASC = "START_TIME_ASC"
    START_TIME_DESC = "START_TIME_DESC"
    CAPACITY_ASC = "CAPACITY_ASC"
    CAPACITY_DESC = "CAPACITY_DESC"
    DATE_ADDED_ASC = "DATE_ADDED_ASC"
    DATE_ADDED_DESC = "DATE_ADDED_DESC"
    REGISTERED_ASC = "REGISTERED_ASC"
    REGISTERED_DESC = "REGISTERED_DESC"


class SaveGroupSessionRequest(BaseModel):
    group_session_scheduling_system_id: GroupSessionSchedulingSystemId = GroupSessionSchedulingSystemId.COBALT
    group_session_collection_id: Optional[UUID] = None
    assessment_id: Optional[UUID] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url_name: Optional[str] = None
    facilitator_account_id: Optional[UUID] = None
    facilitator_name: Optional[str] = None
    facilitator_email_address: Optional[str] = None
    start_date_time: Optional[datetime] = None
    end_date_time: Optional[datetime] = None
    seats: Optional[int] = None
    schedule_url: Optional[str] = None
    videoconference_url: Optional[str] = None
    image_url: Optional[str] = None
    visible_flag: bool = True


class CreateReservationRequest(BaseModel):
    group_session_id: Optional[UUID] = None
    email_address: Optional[str] = None
    phone_number: Optional[str] = None


def normalize_url_name(url_name: Optional[str]) -> Optional[str]:
    if url_name is None:
        return None
    url_name = url_name.strip().lower()
    url_name = re.sub(r"\s+", "-", url_name)
    url_name = URL_NAME_ILLEGAL_CHARACTERS.sub("", url_name)
    url_name = re.sub(r"-{2,}", "-", url_name).strip("-")
    return url_name or None


class GroupSessionService:
    def __init__(self, session: Session, message_service: Optional[MessageService] = None):
        self.session = session
        self.message_service = message_service or MessageService(session)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _reserved_counts_subquery(self):
        return (
            select(
                GroupSessionReservation.group_session_id.label("group_session_id"),
                func.count().label("seats_reserved"),
            )
            .where(GroupSessionReservation.canceled == False)  # noqa: E712
            .group_by(GroupSessionReservation.group_session_id)
            .subquery()
        )

    def find_group_sessions(
        self,
        institution_id: str,
        account: Optional[Account] = None,
        view_type: GroupSessionViewType = GroupSessionViewType.PATIENT,
        group_session_status_id: Optional[GroupSessionStatusId] = None,
        search_query: Optional[str] = None,
        url_name: Optional[str] = None,
        group_session_collection_id: Optional[UUID] = None,
        order_by: Optional[GroupSessionOrderBy] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Tuple[List[GroupSession], int]:
        """
        Page through group sessions.

        Returns (sessions on the requested page, total matching count).
        """
        page_number = max(page_number or 0, 0)
        if page_size is None or page_size <= 0:
            page_size = DEFAULT_PAGE_SIZE
        page_size = min(page_size, MAXIMUM_PAGE_SIZE)

        only_my_sessions = False
        visible_only = False
        if view_type == GroupSessionViewType.PATIENT:
            group_session_status_id = GroupSessionStatusId.ADDED
            visible_only = group_session_collection_id is None
        elif account is None or account.role_id != RoleId.ADMINISTRATOR:
            only_my_sessions = True
            group_session_status_id = GroupSessionStatusId.NEW

        counts = self._reserved_counts_subquery()
        reserved = func.coalesce(counts.c.seats_reserved, 0)

        conditions = [GroupSession.institution_id == institution_id]
        if group_session_status_id is not None:
            conditions.append(GroupSession.group_session_status_id == group_session_status_id)
        else:
            conditions.append(GroupSession.group_session_status_id != GroupSessionStatusId.DELETED)
        if visible_only:
            conditions.append(GroupSession.visible_flag == True)  # noqa: E712
        if group_session_collection_id is not None:
            conditions.append(GroupSession.group_session_collection_id == group_session_collection_id)
        if url_name:
            conditions.append(GroupSession.url_name == url_name.strip())
        if search_query and search_query.strip():
            pattern = f"%{search_query.strip()}%"
            conditions.append(or_(GroupSession.title.ilike(pattern), GroupSession.description.ilike(pattern)))
        if only_my_sessions:
            email_address = normalize_email_address(account.email_address) if account else None
            owner_conditions = []
            if account is not None:
                owner_conditions.append(GroupSession.submitter_account_id == account.account_id)
                owner_conditions.append(GroupSession.facilitator_account_id == account.account_id)
            if email_address:
                owner_conditions.append(func.lower(GroupSession.facilitator_email_address) == email_address)
            if not owner_conditions:
                return [], 0
            conditions.append(or_(*owner_conditions))

        total_count = self.session.exec(
            select(func.count()).select_from(GroupSession).where(*conditions)
        ).one()

        order_by = order_by or GroupSessionOrderBy.START_TIME_DESC
        order_columns = {
            GroupSessionOrderBy.START_TIME_ASC: GroupSession.start_date_time.asc(),
            GroupSessionOrderBy.START_TIME_DESC: GroupSession.start_date_time.desc(),
            GroupSessionOrderBy.CAPACITY_ASC: GroupSession.seats.asc(),
            GroupSessionOrderBy.CAPACITY_DESC: GroupSession.seats.desc(),
            GroupSessionOrderBy.DATE_ADDED_ASC: GroupSession.created.asc(),
            GroupSessionOrderBy.DATE_ADDED_DESC: GroupSession.created.desc(),
            GroupSessionOrderBy.REGISTERED_ASC: reserved.asc(),
            GroupSessionOrderBy.REGISTERED_DESC: reserved.desc(),
        }

        query = (
            select(GroupSession)
            .outerjoin(counts, counts.c.group_session_id == GroupSession.group_session_id)
            .where(*conditions)
            .order_by(order_columns[order_by], GroupSession.group_session_id)
            .offset(page_number * page_size)
            .limit(page_size)
        )
        return list(self.session.exec(query).all()), total_count

    def find_status_counts(self, institution_id: str, account: Account) -> Dict[GroupSessionStatusId, int]:
        query = (
            select(GroupSession.group_session_status_id, func.count())
            .where(GroupSession.institution_id == institution_id)
            .group_by(GroupSession.group_session_status_id)
        )
        if account.role_id != RoleId.ADMINISTRATOR:
            query = query.where(
                or_(
                    GroupSession.submitter_account_id == account.account_id,
                    GroupSession.facilitator_account_id == account.account_id,
                )
            )
        counts = {status: 0 for status in GroupSessionStatusId}
        for status, count in self.session.exec(query).all():
            counts[GroupSessionStatusId(status)] = count
        return counts

    def find_group_session(
        self, identifier: Union[str, UUID], institution_id: str, include_deleted: bool = False
    ) -> Optional[GroupSession]:
        """Look up by id or by url name within the institution."""
        group_session = None
        try:
            group_session = self.session.get(GroupSession, UUID(str(identifier)))
        except ValueError:
            group_session = self.session.exec(
                select(GroupSession).where(
                    GroupSession.institution_id == institution_id,
                    GroupSession.url_name == str(identifier),
                )
            ).first()

        if group_session is None or group_session.institution_id != institution_id:
            return None
        if group_session.group_session_status_id == GroupSessionStatusId.DELETED and not include_deleted:
            return None
        return group_session

    def get_group_session(self, identifier: Union[str, UUID], institution_id: str) -> GroupSession:
        group_session = self.find_group_session(identifier, institution_id)
        if group_session is None:
            raise NotFoundException(f"Group session {identifier} not found")
        return group_session

    def seats_reserved(self, group_session_id: UUID) -> int:
        return self.session.exec(
            select(func.count())
            .select_from(GroupSessionReservation)
            .where(
                GroupSessionReservation.group_session_id == group_session_id,
                GroupSessionReservation.canceled == False,  # noqa: E712
            )
        ).one()

    def seats_reserved_by_group_session(self, group_session_ids: List[UUID]) -> Dict[UUID, int]:
        if not group_session_ids:
            return {}
        rows = self.session.exec(
            select(GroupSessionReservation.group_session_id, func.count())
            .where(
                GroupSessionReservation.group_session_id.in_(group_session_ids),
                GroupSessionReservation.canceled == False,  # noqa: E712
            )
            .group_by(GroupSessionReservation.group_session_id)
        ).all()
        return {group_session_id: count for group_session_id, count in rows}

    def find_collections(self, institution_id: str) -> List[GroupSessionCollection]:
        return list(
            self.session.exec(
                select(GroupSessionCollection)
                .where(GroupSessionCollection.institution_id == institution_id)
                .order_by(GroupSessionCollection.display_order, GroupSessionCollection.description)
            ).all()
        )

    # ------------------------------------------------------------------
    # Url names
    # ------------------------------------------------------------------

    def url_name_exists(self, url_name: str, institution_id: str, exclude_group_session_id: Optional[UUID] = None) -> bool:
        query = select(GroupSession).where(
            GroupSession.institution_id == institution_id,
            GroupSession.url_name == url_name,
        )
        if exclude_group_session_id is not None:
            query = query.where(GroupSession.group_session_id != exclude_group_session_id)
        return self.session.exec(query).first() is not None

    def recommend_url_name(self, url_name: str, institution_id: str, exclude_group_session_id: Optional[UUID] = None) -> str:
        base = normalize_url_name(url_name) or "group-session"
        candidate = base
        suffix = 1
        while self.url_name_exists(candidate, institution_id, exclude_group_session_id):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def validate_url_name(
        self, url_name: str, institution_id: str, group_session_id: Optional[UUID] = None
    ) -> Tuple[bool, str]:
        """(available, recommendation) for a friendly url name"""
        normalized = normalize_url_name(url_name) or ""
        has_illegal_characters = normalized != (url_name or "").strip()
        if normalized and not has_illegal_characters and not self.url_name_exists(normalized, institution_id, group_session_id):
            return True, normalized
        return False, self.recommend_url_name(normalized or "group-session", institution_id, group_session_id)

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def _validate(self, request: SaveGroupSessionRequest, institution_id: str, group_session_id: Optional[UUID] = None) -> dict:
        field_errors = {}
        url_name = normalize_url_name(request.url_name)

        if not request.title or not request.title.strip():
            field_errors["title"] = "Title is required."
        if not request.description or not request.description.strip():
            field_errors["description"] = "Description is required."
        if url_name is None:
            field_errors["url_name"] = "Friendly URL name is required."
        elif url_name != (request.url_name or "").strip():
            field_errors["url_name"] = "Not a valid Friendly URL."
        elif self.url_name_exists(url_name, institution_id, group_session_id):
            field_errors["url_name"] = "Friendly URL name is already in use."
        if not request.facilitator_name or not request.facilitator_name.strip():
            field_errors["facilitator_name"] = "Facilitator name is required."
        if not request.facilitator_email_address:
            field_errors["facilitator_email_address"] = "Facilitator email address is required."
        elif not is_valid_email_address(normalize_email_address(request.facilitator_email_address)):
            field_errors["facilitator_email_address"] = "Facilitator email address is invalid."
        if request.start_date_time is None:
            field_errors["start_date_time"] = "Start time is required."
        if request.end_date_time is None:
            field_errors["end_date_time"] = "End time is required."
        elif request.start_date_time is not None and request.end_date_time <= request.start_date_time:
            field_errors["end_date_time"] = "End time must be after start time."

        if request.group_session_scheduling_system_id == GroupSessionSchedulingSystemId.EXTERNAL:
            if not request.schedule_url:
                field_errors["schedule_url"] = "Scheduling URL is required."
        elif request.seats is None or request.seats <= 0:
            field_errors["seats"] = "Seats must be greater than zero."

        if request.group_session_collection_id is not None:
            collection = self.session.get(GroupSessionCollection, request.group_session_collection_id)
            if collection is None or collection.institution_id != institution_id:
                field_errors["group_session_collection_id"] = "Collection is invalid."

        if field_errors:
            raise ValidationException(field_errors=field_errors)
        return {
            "title": request.title.strip(),
            "description": request.description.strip(),
            "url_name": url_name,
            "facilitator_name": request.facilitator_name.strip(),
            "facilitator_email_address": normalize_email_address(request.facilitator_email_address),
        }

    def create_group_session(self, request: SaveGroupSessionRequest, submitter: Account, time_zone: str) -> GroupSession:
        cleaned = self._validate(request, submitter.institution_id)
        data = request.model_dump()
        data.update(cleaned)
        if request.group_session_scheduling_system_id == GroupSessionSchedulingSystemId.EXTERNAL:
            data["seats"] = None

        group_session = GroupSession(
            **data,
            institution_id=submitter.institution_id,
            submitter_account_id=submitter.account_id,
            group_session_status_id=GroupSessionStatusId.NEW,
            time_zone=time_zone,
        )
        self.session.add(group_session)
        self.session.commit()
        self.session.refresh(group_session)
        logger.info(f"Group session {group_session.group_session_id} submitted by {submitter.account_id}")
        return group_session

    def update_group_session(self, group_session: GroupSession, request: SaveGroupSessionRequest) -> GroupSession:
        cleaned = self._validate(request, group_session.institution_id, group_session.group_session_id)
        data = request.model_dump()
        data.update(cleaned)
        for key, value in data.items():
            setattr(group_session, key, value)
        if group_session.group_session_scheduling_system_id == GroupSessionSchedulingSystemId.EXTERNAL:
            group_session.seats = None
        self.session.add(group_session)
        self.session.commit()
        self.session.refresh(group_session)
        return group_session

    def duplicate_group_session(self, source: GroupSession, account: Account) -> GroupSession:
        if source.institution_id != account.institution_id:
            raise ValidationException.for_field(
                "group_session_id", "Group Sessions from other Institutions cannot be duplicated."
            )

        offset = timedelta(days=0)
        if source.group_session_scheduling_system_id == GroupSessionSchedulingSystemId.COBALT:
            offset = timedelta(days=DUPLICATE_DATE_OFFSET_DAYS)

        data = source.model_dump(
            exclude={"group_session_id", "group_session_status_id", "created", "last_updated", "url_name"}
        )
        data["start_date_time"] = source.start_date_time + offset
        data["end_date_time"] = source.end_date_time + offset

        duplicate = GroupSession(
            **data,
            url_name=self.recommend_url_name(source.url_name, source.institution_id),
            group_session_status_id=GroupSessionStatusId.NEW,
        )
        self.session.add(duplicate)
        self.session.commit()
        self.session.refresh(duplicate)
        return duplicate

    def update_group_session_status(
        self, group_session: GroupSession, group_session_status_id: GroupSessionStatusId, account: Account
    ) -> bool:
        """Change status. Returns False when the status is unchanged."""
        if group_session.group_session_status_id == group_session_status_id:
            return False

        group_session.group_session_status_id = group_session_status_id
        self.session.add(group_session)
        self.session.commit()
        self.session.refresh(group_session)
        logger.info(f"Group session {group_session.group_session_id} is now {group_session_status_id.value}")

        if group_session_status_id == GroupSessionStatusId.CANCELED:
            for reservation in self.find_reservations(group_session.group_session_id):
                reservation.canceled = True
                self.session.add(reservation)
                attendee = self.session.get(Account, reservation.account_id)
                if attendee is not None and attendee.email_address:
                    self.message_service.enqueue_email(
                        group_session.institution_id,
                        attendee.email_address,
                        f"{group_session.title} has been canceled",
                        f"We're sorry, but \"{group_session.title}\" scheduled for "
                        f"{format_date_time_description(group_session.start_date_time)} has been canceled.",
                        template="GROUP_SESSION_CANCELED",
                    )
            self.session.commit()
        elif group_session_status_id == GroupSessionStatusId.ADDED:
            if group_session.submitter_account_id != account.account_id:
                submitter = self.session.get(Account, group_session.submitter_account_id)
                if submitter is not None and submitter.email_address:
                    self.message_service.enqueue_email(
                        group_session.institution_id,
                        submitter.email_address,
                        f"{group_session.title} is now live",
                        f"Your group session \"{group_session.title}\" has been approved and is now listed.",
                        template="GROUP_SESSION_LIVE",
                    )
        return True

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def find_reservations(self, group_session_id: UUID) -> List[GroupSessionReservation]:
        return list(
            self.session.exec(
                select(GroupSessionReservation)
                .where(
                    GroupSessionReservation.group_session_id == group_session_id,
                    GroupSessionReservation.canceled == False,  # noqa: E712
                )
                .order_by(GroupSessionReservation.created)
            ).all()
        )

    def find_reservation_for_account(self, group_session_id: UUID, account_id: UUID) -> Optional[GroupSessionReservation]:
        return self.session.exec(
            select(GroupSessionReservation).where(
                GroupSessionReservation.group_session_id == group_session_id,
                GroupSessionReservation.account_id == account_id,
                GroupSessionReservation.canceled == False,  # noqa: E712
            )
        ).first()

    def find_reservation_by_id(self, group_session_reservation_id: UUID) -> Optional[GroupSessionReservation]:
        return self.session.get(GroupSessionReservation, group_session_reservation_id)

    def create_reservation(self, request: CreateReservationRequest, account: Account) -> GroupSessionReservation:
        if request.group_session_id is None:
            raise ValidationException.for_field("group_session_id", "Group session is required.")

        group_session = self.find_group_session(request.group_session_id, account.institution_id, include_deleted=True)
        if group_session is None:
            raise ValidationException.for_field("group_session_id", "Group session is invalid.")

        if group_session.group_session_scheduling_system_id != GroupSessionSchedulingSystemId.COBALT:
            raise ValidationException("This group session is not available for reservations.")

        status_messages = {
            GroupSessionStatusId.NEW: "This group session has not been approved yet.",
            GroupSessionStatusId.ARCHIVED: "This group session has been archived.",
            GroupSessionStatusId.CANCELED: "This group session has been canceled.",
            GroupSessionStatusId.DELETED: "This group session has been deleted.",
        }
        if group_session.group_session_status_id in status_messages:
            raise ValidationException(status_messages[group_session.group_session_status_id])

        existing = self.find_reservation_for_account(group_session.group_session_id, account.account_id)
        if existing is not None:
            return existing

        field_errors = {}
        email_address = normalize_email_address(request.email_address) or normalize_email_address(account.email_address)
        if email_address is None:
            field_errors["email_address"] = "An email address is required to reserve a seat."
        elif not is_valid_email_address(email_address):
            field_errors["email_address"] = "Email address is invalid."

        phone_number = None
        if request.phone_number:
            try:
                phone_number = format_e164(request.phone_number)
            except ValueError:
                field_errors["phone_number"] = "Phone number is invalid."
        if field_errors:
            raise ValidationException(field_errors=field_errors)

        if group_session.seats is not None and self.seats_reserved(group_session.group_session_id) >= group_session.seats:
            raise ValidationException("Sorry, this group session is full.")

        if email_address != normalize_email_address(account.email_address):
            account.email_address = email_address
            account.email_verified = False
        if phone_number is not None:
            account.phone_number = phone_number
        self.session.add(account)

        reservation = GroupSessionReservation(
            group_session_id=group_session.group_session_id,
            account_id=account.account_id,
        )
        self.session.add(reservation)
        self.session.commit()
        self.session.refresh(reservation)

        when = format_date_time_description(group_session.start_date_time)
        self.message_service.enqueue_email(
            group_session.institution_id,
            email_address,
            f"You're registered for {group_session.title}",
            f"Your seat for \"{group_session.title}\" on {when} is reserved.",
            template="GROUP_SESSION_RESERVATION_CREATED_ATTENDEE",
        )
        self.message_service.enqueue_email(
            group_session.institution_id,
            group_session.facilitator_email_address,
            f"New registration for {group_session.title}",
            f"{account.full_name or email_address} reserved a seat for \"{group_session.title}\" on {when}.",
            template="GROUP_SESSION_RESERVATION_CREATED_FACILITATOR",
        )
        return reservation

    def cancel_reservation(self, reservation: GroupSessionReservation) -> bool:
        if reservation.canceled:
            return False

        reservation.canceled = True
        self.session.add(reservation)
        self.session.commit()
        self.session.refresh(reservation)

        group_session = self.session.get(GroupSession, reservation.group_session_id)
        attendee = self.session.get(Account, reservation.account_id)
        when = format_date_time_description(group_session.start_date_time)
        if attendee is not None and attendee.email_address:
            self.message_service.enqueue_email(
                group_session.institution_id,
                attendee.email_address,
                f"Your reservation for {group_session.title} is canceled",
                f"Your seat for \"{group_session.title}\" on {when} has been released.",
                template="GROUP_SESSION_RESERVATION_CANCELED_ATTENDEE",
            )
        self.message_service.enqueue_email(
            group_session.institution_id,
            group_session.facilitator_email_address,
            f"Cancellation for {group_session.title}",
            f"{(attendee.full_name if attendee else None) or 'An attendee'} canceled their seat for "
            f"\"{group_session.title}\" on {when}.",
            template="GROUP_SESSION_RESERVATION_CANCELED_FACILITATOR",
        )
        return True
