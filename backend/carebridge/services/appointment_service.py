"""Booking, rescheduling and canceling 1:1 appointments, and appointment types."""

import datetime as dt
import logging
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, select

from carebridge.context import CurrentContext
from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account
from carebridge.models.appointment import Appointment, AppointmentType, AttendanceStatusId, VisitTypeId
from carebridge.models.assessment import AccountSession
from carebridge.models.provider import Provider, SchedulingSystemId
from carebridge.services.account_service import AccountService, is_valid_email_address, normalize_email_address
from carebridge.services.assessment_scoring_service import AssessmentScoringService
from carebridge.services.availability_service import AvailabilityService
from carebridge.services.message_service import MessageService
from carebridge.services.twilio_service import format_e164
from carebridge.utils.dates import format_date_time_description, local_now, utc_now

logger = logging.getLogger(__name__)

MAXIMUM_APPOINTMENT_DURATION_IN_MINUTES = 480


class AppointmentListType(str, Enum):
    RECENT = "RECENT"
    UPCOMING = "UPCOMING"


class CreateAppointmentRequest(BaseModel):
    account_id: Optional[UUID] = None
    provider_id: Optional[UUID] = None
    appointment_type_id: Optional[UUID] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    email_address: Optional[str] = None
    phone_number: Optional[str] = None
    comment: Optional[str] = None


class RescheduleAppointmentRequest(BaseModel):
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    provider_id: Optional[UUID] = None
    appointment_type_id: Optional[UUID] = None


class CreateAppointmentTypeRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    duration_in_minutes: Optional[int] = None
    visit_type_id: VisitTypeId = VisitTypeId.INITIAL


class UpdateAppointmentTypeRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    duration_in_minutes: Optional[int] = None
    visit_type_id: Optional[VisitTypeId] = None


class AppointmentService:
    def __init__(
        self,
        session: Session,
        message_service: Optional[MessageService] = None,
        availability_service: Optional[AvailabilityService] = None,
        scoring_service: Optional[AssessmentScoringService] = None,
    ):
        self.session = session
        self.message_service = message_service or MessageService(session)
        self.availability_service = availability_service or AvailabilityService(session)
        self.scoring_service = scoring_service or AssessmentScoringService(session, self.message_service)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_appointment_by_id(self, appointment_id: Optional[UUID]) -> Optional[Appointment]:
        if appointment_id is None:
            return None
        return self.session.get(Appointment, appointment_id)

    def find_appointment_by_acuity_id(self, acuity_appointment_id: int) -> Optional[Appointment]:
        return self.session.exec(
            select(Appointment).where(Appointment.acuity_appointment_id == acuity_appointment_id)
        ).first()

    def find_appointments_for_account(self, account_id: UUID, list_type: AppointmentListType) -> List[Appointment]:
        appointments = self.session.exec(
            select(Appointment).where(
                Appointment.account_id == account_id,
                Appointment.canceled == False,  # noqa: E712
            )
        ).all()

        if list_type == AppointmentListType.UPCOMING:
            upcoming = [a for a in appointments if a.end_time >= local_now(a.time_zone)]
            return sorted(upcoming, key=lambda a: a.start_time)

        recent = [a for a in appointments if a.start_time < local_now(a.time_zone)]
        return sorted(recent, key=lambda a: a.start_time, reverse=True)

    def find_appointments_for_provider(self, provider_id: UUID, start_date: date, end_date: date) -> List[Appointment]:
        return list(
            self.session.exec(
                select(Appointment)
                .where(
                    Appointment.provider_id == provider_id,
                    Appointment.canceled == False,  # noqa: E712
                    Appointment.start_time >= datetime.combine(start_date, time.min),
                    Appointment.start_time < datetime.combine(end_date + timedelta(days=1), time.min),
                )
                .order_by(Appointment.start_time)
            ).all()
        )

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def _resolve_provider_and_type(
        self,
        institution_id: str,
        provider_id: Optional[UUID],
        appointment_type_id: Optional[UUID],
        field_errors: dict,
    ):
        provider = None
        appointment_type = None

        if provider_id is None:
            field_errors["provider_id"] = "Provider is required."
        else:
            provider = self.session.get(Provider, provider_id)
            if provider is None or not provider.active or provider.institution_id != institution_id:
                field_errors["provider_id"] = "Provider is invalid."
                provider = None

        if appointment_type_id is None:
            field_errors["appointment_type_id"] = "Appointment type is required."
        else:
            appointment_type = self.session.get(AppointmentType, appointment_type_id)
            if (
                appointment_type is None
                or appointment_type.deleted
                or (provider is not None and appointment_type.provider_id != provider.provider_id)
            ):
                field_errors["appointment_type_id"] = "Appointment type is invalid."
                appointment_type = None

        return provider, appointment_type

    def _intake_allows_booking(self, account: Account, provider: Provider) -> bool:
        if provider.intake_assessment_id is None:
            return True
        account_session = self.session.exec(
            select(AccountSession)
            .where(
                AccountSession.account_id == account.account_id,
                AccountSession.assessment_id == provider.intake_assessment_id,
                AccountSession.complete == True,  # noqa: E712
            )
            .order_by(AccountSession.created.desc())
        ).first()
        return account_session is not None and self.scoring_service.is_booking_allowed(account_session)

    def create_appointment(self, request: CreateAppointmentRequest, context: CurrentContext) -> Appointment:
        account_service = AccountService(self.session, self.message_service)
        account = account_service.find_account_by_id(request.account_id or context.account_id)
        if account is None:
            raise ValidationException.for_field("account_id", "Account is invalid.")

        field_errors = {}
        if request.date is None:
            field_errors["date"] = "Date is required."
        if request.time is None:
            field_errors["time"] = "Time is required."

        email_address = normalize_email_address(request.email_address)
        if email_address is not None and not is_valid_email_address(email_address):
            field_errors["email_address"] = "Email address is invalid."

        phone_number = None
        if request.phone_number:
            try:
                phone_number = format_e164(request.phone_number)
            except ValueError:
                field_errors["phone_number"] = "Phone number is invalid."

        provider, appointment_type = self._resolve_provider_and_type(
            context.institution_id, request.provider_id, request.appointment_type_id, field_errors
        )

        if field_errors:
            raise ValidationException(field_errors=field_errors)

        if email_address is None and not account.email_address:
            raise ValidationException(
                "An email address is required to book an appointment.",
                {"email_address": "An email address is required to book an appointment."},
                metadata={"account_email_address_required": True},
            )

        if not self._intake_allows_booking(account, provider):
            raise ValidationException(
                "Please complete the intake assessment before booking with this provider.",
                metadata={"intake_assessment_required": True, "provider_id": str(provider.provider_id)},
            )

        if context.institution.email_verification_required:
            email_to_check = email_address or account.email_address
            if not account_service.is_email_address_verified(account, email_to_check):
                raise ValidationException(
                    "Please verify your email address before booking.",
                    metadata={"account_email_verification_required": True, "email_address": email_to_check},
                )

        start_time = datetime.combine(request.date, request.time)
        if start_time < local_now(provider.time_zone):
            raise ValidationException.for_field("time", "This appointment time has already passed.")
        if not self.availability_service.is_slot_available(provider, start_time, appointment_type.duration_in_minutes):
            raise ValidationException.for_field("time", "Sorry, this time is no longer available.")

        if email_address is not None and email_address != normalize_email_address(account.email_address):
            account.email_address = email_address
            account.email_verified = False
        if phone_number is not None:
            account.phone_number = phone_number
        self.session.add(account)

        appointment = Appointment(
            provider_id=provider.provider_id,
            account_id=account.account_id,
            created_by_account_id=context.account_id or account.account_id,
            appointment_type_id=appointment_type.appointment_type_id,
            title=f"{appointment_type.name} with {provider.name}",
            comment=request.comment,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=appointment_type.duration_in_minutes),
            duration_in_minutes=appointment_type.duration_in_minutes,
            time_zone=provider.time_zone,
            videoconference_url=provider.videoconference_url,
        )
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)
        self.session.refresh(account)

        logger.info(f"Booked appointment {appointment.appointment_id} for account {account.account_id}")
        self._notify(appointment, account, provider, "Your appointment is confirmed", "confirmed")
        return appointment

    def reschedule_appointment(
        self, appointment: Appointment, request: RescheduleAppointmentRequest, institution_id: str
    ) -> Appointment:
        if appointment.canceled:
            raise ValidationException.for_field("canceled", "Canceled appointments cannot be edited.")

        field_errors = {}
        if request.date is None:
            field_errors["date"] = "Date is required."
        if request.time is None:
            field_errors["time"] = "Time is required."
        provider, appointment_type = self._resolve_provider_and_type(
            institution_id,
            request.provider_id or appointment.provider_id,
            request.appointment_type_id or appointment.appointment_type_id,
            field_errors,
        )
        if field_errors:
            raise ValidationException(field_errors=field_errors)

        start_time = datetime.combine(request.date, request.time)
        if start_time < local_now(provider.time_zone):
            raise ValidationException.for_field("time", "This appointment time has already passed.")
        if not self.availability_service.is_slot_available(
            provider, start_time, appointment_type.duration_in_minutes, exclude_appointment_id=appointment.appointment_id
        ):
            raise ValidationException.for_field("time", "Sorry, this time is no longer available.")

        appointment.provider_id = provider.provider_id
        appointment.appointment_type_id = appointment_type.appointment_type_id
        appointment.title = f"{appointment_type.name} with {provider.name}"
        appointment.start_time = start_time
        appointment.duration_in_minutes = appointment_type.duration_in_minutes
        appointment.end_time = start_time + timedelta(minutes=appointment_type.duration_in_minutes)
        appointment.time_zone = provider.time_zone
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)

        account = self.session.get(Account, appointment.account_id)
        self._notify(appointment, account, provider, "Your appointment has been rescheduled", "rescheduled")
        return appointment

    def reschedule_from_webhook(self, appointment: Appointment, start_time: datetime, duration_in_minutes: int) -> Appointment:
        appointment.start_time = start_time
        appointment.duration_in_minutes = duration_in_minutes
        appointment.end_time = start_time + timedelta(minutes=duration_in_minutes)
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)
        return appointment

    def cancel_appointment(self, appointment: Appointment, canceled_by_webhook: bool = False) -> bool:
        """Cancel an appointment. Returns False if it was already canceled."""
        if appointment.canceled:
            logger.info(f"Appointment {appointment.appointment_id} is already canceled, not re-canceling")
            return False

        appointment.canceled = True
        appointment.canceled_at = utc_now()
        appointment.canceled_by_webhook = canceled_by_webhook
        appointment.attendance_status_id = AttendanceStatusId.CANCELED
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)

        account = self.session.get(Account, appointment.account_id)
        provider = self.session.get(Provider, appointment.provider_id)
        self._notify(appointment, account, provider, "Your appointment has been canceled", "canceled")
        return True

    def update_attendance_status(self, appointment: Appointment, attendance_status_id: AttendanceStatusId) -> Appointment:
        appointment.attendance_status_id = attendance_status_id
        self.session.add(appointment)
        self.session.commit()
        self.session.refresh(appointment)
        return appointment

    def _notify(self, appointment: Appointment, account: Optional[Account], provider: Optional[Provider], subject: str, verb: str):
        when = format_date_time_description(appointment.start_time)
        institution_id = provider.institution_id if provider else account.institution_id
        if account is not None and account.email_address:
            self.message_service.enqueue_email(
                institution_id,
                account.email_address,
                subject,
                f"Your appointment \"{appointment.title}\" on {when} ({appointment.time_zone}) has been {verb}.",
                template=f"APPOINTMENT_{verb.upper()}_PATIENT",
            )
        if account is not None and account.phone_number:
            self.message_service.enqueue_sms(
                institution_id,
                account.phone_number,
                f"Your appointment on {when} has been {verb}.",
                template=f"APPOINTMENT_{verb.upper()}_PATIENT_SMS",
            )
        if provider is not None and provider.email_address:
            patient = (account.full_name if account else None) or "A patient"
            self.message_service.enqueue_email(
                institution_id,
                provider.email_address,
                f"Appointment {verb}",
                f"{patient}'s appointment \"{appointment.title}\" on {when} ({appointment.time_zone}) has been {verb}.",
                template=f"APPOINTMENT_{verb.upper()}_PROVIDER",
            )

    # ------------------------------------------------------------------
    # Appointment types
    # ------------------------------------------------------------------

    def find_appointment_type_by_id(self, appointment_type_id: UUID) -> Optional[AppointmentType]:
        appointment_type = self.session.get(AppointmentType, appointment_type_id)
        if appointment_type is None or appointment_type.deleted:
            return None
        return appointment_type

    def get_appointment_type(self, appointment_type_id: UUID) -> AppointmentType:
        appointment_type = self.find_appointment_type_by_id(appointment_type_id)
        if appointment_type is None:
            raise NotFoundException(f"Appointment type {appointment_type_id} not found")
        return appointment_type

    def _validate_appointment_type_fields(self, name: Optional[str], duration_in_minutes: Optional[int]) -> None:
        field_errors = {}
        if name is not None and not name.strip():
            field_errors["name"] = "Name is required."
        if duration_in_minutes is not None and not 0 < duration_in_minutes <= MAXIMUM_APPOINTMENT_DURATION_IN_MINUTES:
            field_errors["duration_in_minutes"] = (
                f"Duration must be between 1 and {MAXIMUM_APPOINTMENT_DURATION_IN_MINUTES} minutes."
            )
        if field_errors:
            raise ValidationException(field_errors=field_errors)

    def create_appointment_type(self, provider: Provider, request: CreateAppointmentTypeRequest) -> AppointmentType:
        field_errors = {}
        if not request.name or not request.name.strip():
            field_errors["name"] = "Name is required."
        if request.duration_in_minutes is None:
            field_errors["duration_in_minutes"] = "Duration is required."
        if field_errors:
            raise ValidationException(field_errors=field_errors)
        self._validate_appointment_type_fields(request.name, request.duration_in_minutes)

        appointment_type = AppointmentType(
            provider_id=provider.provider_id,
            name=request.name.strip(),
            description=request.description,
            duration_in_minutes=request.duration_in_minutes,
            visit_type_id=request.visit_type_id,
            scheduling_system_id=SchedulingSystemId.COBALT,
        )
        self.session.add(appointment_type)
        self.session.commit()
        self.session.refresh(appointment_type)
        return appointment_type

    def update_appointment_type(
        self, appointment_type: AppointmentType, request: UpdateAppointmentTypeRequest
    ) -> AppointmentType:
        self._validate_appointment_type_fields(request.name, request.duration_in_minutes)
        for key, value in request.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(appointment_type, key, value.strip() if key == "name" else value)
        self.session.add(appointment_type)
        self.session.commit()
        self.session.refresh(appointment_type)
        return appointment_type

    def delete_appointment_type(self, appointment_type: AppointmentType) -> None:
        appointment_type.deleted = True
        self.session.add(appointment_type)
        self.session.commit()
