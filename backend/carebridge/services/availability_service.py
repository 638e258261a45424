"""Provider calendars: logical availability blocks and bookable slots."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, select

from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account
from carebridge.models.appointment import Appointment, AppointmentType, VisitTypeId
from carebridge.models.availability import LogicalAvailability, LogicalAvailabilityTypeId, RecurrenceTypeId
from carebridge.models.provider import Provider, SchedulingSystemId
from carebridge.services.acuity_service import AcuitySyncManager
from carebridge.utils.dates import local_now

logger = logging.getLogger(__name__)


class CreateLogicalAvailabilityRequest(BaseModel):
    provider_id: UUID
    logical_availability_type_id: LogicalAvailabilityTypeId
    recurrence_type_id: RecurrenceTypeId = RecurrenceTypeId.NONE
    start_date_time: datetime
    end_date_time: datetime
    recur_monday: bool = False
    recur_tuesday: bool = False
    recur_wednesday: bool = False
    recur_thursday: bool = False
    recur_friday: bool = False
    recur_saturday: bool = False
    recur_sunday: bool = False
    appointment_type_ids: List[UUID] = []


@dataclass
class CalendarWindow:
    logical_availability_id: UUID
    logical_availability_type_id: LogicalAvailabilityTypeId
    start_time: datetime
    end_time: datetime
    appointment_type_ids: List[UUID] = field(default_factory=list)


@dataclass
class AvailableSlot:
    start_time: datetime
    appointment_type_ids: List[UUID] = field(default_factory=list)


def _overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def expand_logical_availability(
    logical_availability: LogicalAvailability, start_date: date, end_date: date
) -> List[CalendarWindow]:
    """Concrete windows of one block that fall within [start_date, end_date]."""
    type_ids = [UUID(str(t)) for t in (logical_availability.appointment_type_ids or [])]
    range_start = datetime.combine(start_date, time.min)
    range_end = datetime.combine(end_date + timedelta(days=1), time.min)
    windows = []

    if logical_availability.recurrence_type_id == RecurrenceTypeId.DAILY:
        current = max(logical_availability.start_date_time.date(), start_date)
        last = min(logical_availability.end_date_time.date(), end_date)
        window_start_time = logical_availability.start_date_time.time()
        window_end_time = logical_availability.end_date_time.time()
        while current <= last:
            if logical_availability.recurs_on(current.weekday()) and window_start_time < window_end_time:
                windows.append(
                    CalendarWindow(
                        logical_availability_id=logical_availability.logical_availability_id,
                        logical_availability_type_id=logical_availability.logical_availability_type_id,
                        start_time=datetime.combine(current, window_start_time),
                        end_time=datetime.combine(current, window_end_time),
                        appointment_type_ids=type_ids,
                    )
                )
            current += timedelta(days=1)
    elif _overlaps(logical_availability.start_date_time, logical_availability.end_date_time, range_start, range_end):
        windows.append(
            CalendarWindow(
                logical_availability_id=logical_availability.logical_availability_id,
                logical_availability_type_id=logical_availability.logical_availability_type_id,
                start_time=max(logical_availability.start_date_time, range_start),
                end_time=min(logical_availability.end_date_time, range_end),
                appointment_type_ids=type_ids,
            )
        )

    return windows


class AvailabilityService:
    def __init__(self, session: Session, acuity_sync_manager: Optional[AcuitySyncManager] = None):
        self.session = session
        self.acuity_sync_manager = acuity_sync_manager

    def find_logical_availability_by_id(self, logical_availability_id: UUID) -> Optional[LogicalAvailability]:
        return self.session.get(LogicalAvailability, logical_availability_id)

    def create_logical_availability(
        self, request: CreateLogicalAvailabilityRequest, created_by: Account
    ) -> LogicalAvailability:
        field_errors = {}
        if request.end_date_time <= request.start_date_time:
            field_errors["end_date_time"] = "End time must be after start time."

        if request.recurrence_type_id == RecurrenceTypeId.DAILY:
            if request.start_date_time.time() >= request.end_date_time.time():
                field_errors["end_date_time"] = "Daily availability must end later in the day than it starts."
            flags = [
                request.recur_monday,
                request.recur_tuesday,
                request.recur_wednesday,
                request.recur_thursday,
                request.recur_friday,
                request.recur_saturday,
                request.recur_sunday,
            ]
            if not any(flags):
                field_errors["recurrence_type_id"] = "Pick at least one day for recurring availability."

        if request.appointment_type_ids:
            if request.logical_availability_type_id == LogicalAvailabilityTypeId.BLOCK:
                field_errors["appointment_type_ids"] = "Blocked time cannot have appointment types."
            else:
                owned = {
                    t.appointment_type_id
                    for t in self.find_appointment_types(request.provider_id)
                }
                if any(type_id not in owned for type_id in request.appointment_type_ids):
                    field_errors["appointment_type_ids"] = "Appointment type is invalid."

        if field_errors:
            raise ValidationException(field_errors=field_errors)

        logical_availability = LogicalAvailability(
            **request.model_dump(exclude={"appointment_type_ids"}),
            appointment_type_ids=[str(t) for t in request.appointment_type_ids] or None,
            created_by_account_id=created_by.account_id,
        )
        self.session.add(logical_availability)
        self.session.commit()
        self.session.refresh(logical_availability)
        return logical_availability

    def find_logical_availabilities(
        self, provider_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[LogicalAvailability]:
        query = select(LogicalAvailability).where(LogicalAvailability.provider_id == provider_id)
        if end_date is not None:
            query = query.where(LogicalAvailability.start_date_time < datetime.combine(end_date + timedelta(days=1), time.min))
        if start_date is not None:
            query = query.where(LogicalAvailability.end_date_time >= datetime.combine(start_date, time.min))
        return list(self.session.exec(query.order_by(LogicalAvailability.start_date_time)).all())

    def delete_logical_availability(self, logical_availability_id: UUID) -> None:
        logical_availability = self.find_logical_availability_by_id(logical_availability_id)
        if logical_availability is None:
            raise NotFoundException(f"Logical availability {logical_availability_id} not found")
        self.session.delete(logical_availability)
        self.session.commit()

    def find_appointment_types(self, provider_id: UUID) -> List[AppointmentType]:
        return list(
            self.session.exec(
                select(AppointmentType)
                .where(AppointmentType.provider_id == provider_id, AppointmentType.deleted == False)  # noqa: E712
                .order_by(AppointmentType.duration_in_minutes, AppointmentType.name)
            ).all()
        )

    def find_calendar_windows(self, provider_id: UUID, start_date: date, end_date: date) -> List[CalendarWindow]:
        windows = []
        for logical_availability in self.find_logical_availabilities(provider_id, start_date, end_date):
            windows.extend(expand_logical_availability(logical_availability, start_date, end_date))
        windows.sort(key=lambda w: (w.start_time, w.logical_availability_type_id))
        return windows

    def find_booked_ranges(
        self, provider_id: UUID, start_date: date, end_date: date, exclude_appointment_id: Optional[UUID] = None
    ) -> List[Tuple[datetime, datetime]]:
        query = select(Appointment).where(
            Appointment.provider_id == provider_id,
            Appointment.canceled == False,  # noqa: E712
            Appointment.start_time < datetime.combine(end_date + timedelta(days=1), time.min),
            Appointment.end_time > datetime.combine(start_date, time.min),
        )
        if exclude_appointment_id is not None:
            query = query.where(Appointment.appointment_id != exclude_appointment_id)
        return [(a.start_time, a.end_time) for a in self.session.exec(query).all()]

    def find_available_slots(
        self,
        provider: Provider,
        start_date: date,
        end_date: date,
        visit_type_ids: Optional[Iterable[VisitTypeId]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[date, List[AvailableSlot]]:
        """
        Open slots per date for a provider.

        A slot starts every ``duration_in_minutes`` of each allowed appointment
        type inside OPEN windows. Slots that overlap BLOCK windows or booked
        appointments, or start before ``now`` (provider wall-clock), are dropped.
        """
        now = now or local_now(provider.time_zone)
        appointment_types = self.find_appointment_types(provider.provider_id)
        if visit_type_ids:
            allowed_visit_types = set(visit_type_ids)
            appointment_types = [t for t in appointment_types if t.visit_type_id in allowed_visit_types]
        if not appointment_types:
            return {}

        if provider.scheduling_system_id == SchedulingSystemId.ACUITY:
            return self._find_acuity_slots(provider, start_date, end_date, appointment_types, now)

        types_by_id = {t.appointment_type_id: t for t in appointment_types}
        windows = self.find_calendar_windows(provider.provider_id, start_date, end_date)
        blocked = [(w.start_time, w.end_time) for w in windows if w.logical_availability_type_id == LogicalAvailabilityTypeId.BLOCK]
        blocked.extend(self.find_booked_ranges(provider.provider_id, start_date, end_date))

        slots_by_time: Dict[datetime, AvailableSlot] = {}
        for window in windows:
            if window.logical_availability_type_id != LogicalAvailabilityTypeId.OPEN:
                continue
            window_types = [types_by_id[t] for t in window.appointment_type_ids if t in types_by_id]
            if not window.appointment_type_ids:
                window_types = appointment_types

            for appointment_type in window_types:
                duration = timedelta(minutes=appointment_type.duration_in_minutes)
                slot_start = window.start_time
                while slot_start + duration <= window.end_time:
                    slot_end = slot_start + duration
                    if slot_start >= now and not any(_overlaps(slot_start, slot_end, b0, b1) for b0, b1 in blocked):
                        slot = slots_by_time.setdefault(slot_start, AvailableSlot(start_time=slot_start))
                        if appointment_type.appointment_type_id not in slot.appointment_type_ids:
                            slot.appointment_type_ids.append(appointment_type.appointment_type_id)
                    slot_start = slot_end

        return self._group_by_date(slots_by_time.values())

    def _find_acuity_slots(
        self,
        provider: Provider,
        start_date: date,
        end_date: date,
        appointment_types: List[AppointmentType],
        now: datetime,
    ) -> Dict[date, List[AvailableSlot]]:
        if self.acuity_sync_manager is None:
            logger.warning(f"No Acuity sync manager available for provider {provider.provider_id}")
            return {}

        allowed = {t.appointment_type_id for t in appointment_types}
        slots = []
        current = start_date
        while current <= end_date:
            for cached in self.acuity_sync_manager.availability_for(self.session, provider, current):
                type_ids = [t for t in cached.appointment_type_ids if t in allowed]
                if type_ids and cached.start_time >= now:
                    slots.append(AvailableSlot(start_time=cached.start_time, appointment_type_ids=type_ids))
            current += timedelta(days=1)
        return self._group_by_date(slots)

    @staticmethod
    def _group_by_date(slots: Iterable[AvailableSlot]) -> Dict[date, List[AvailableSlot]]:
        grouped: Dict[date, List[AvailableSlot]] = {}
        for slot in sorted(slots, key=lambda s: s.start_time):
            grouped.setdefault(slot.start_time.date(), []).append(slot)
        return grouped

    def is_slot_available(
        self,
        provider: Provider,
        start_time: datetime,
        duration_in_minutes: int,
        exclude_appointment_id: Optional[UUID] = None,
    ) -> bool:
        """True when no other non-canceled appointment overlaps the range."""
        end_time = start_time + timedelta(minutes=duration_in_minutes)
        booked = self.find_booked_ranges(
            provider.provider_id, start_time.date(), end_time.date(), exclude_appointment_id=exclude_appointment_id
        )
        return not any(_overlaps(start_time, end_time, b0, b1) for b0, b1 in booked)
