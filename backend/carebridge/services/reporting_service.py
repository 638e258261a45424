"""CSV reports for institution administrators."""

import csv
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from io import StringIO
from typing import List, Optional

from sqlmodel import Session, select

from carebridge.models.account import Account
from carebridge.models.appointment import Appointment, AppointmentType
from carebridge.models.provider import Provider
from carebridge.services.availability_service import AvailabilityService
from carebridge.services.provider_service import validate_date_range
from carebridge.utils.dates import format_report_date_time, utc_to_local

logger = logging.getLogger(__name__)


class ReportTypeId(str, Enum):
    PROVIDER_UNUSED_AVAILABILITY = "PROVIDER_UNUSED_AVAILABILITY"
    PROVIDER_APPOINTMENTS = "PROVIDER_APPOINTMENTS"
    PROVIDER_APPOINTMENT_CANCELATIONS = "PROVIDER_APPOINTMENT_CANCELATIONS"


REPORT_TYPE_DESCRIPTIONS = {
    ReportTypeId.PROVIDER_UNUSED_AVAILABILITY: "Provider Unused Availability",
    ReportTypeId.PROVIDER_APPOINTMENTS: "Provider Appointments",
    ReportTypeId.PROVIDER_APPOINTMENT_CANCELATIONS: "Provider Appointment Cancelations",
}

APPOINTMENT_COLUMNS = [
    "Provider ID",
    "Provider Name",
    "Slot Date/Time",
    "Booked At",
    "Patient Account ID",
    "Patient Name",
    "Patient Email Address",
    "Patient Phone Number",
]


@dataclass
class Report:
    filename: str
    content: str


def _booked_at(value: datetime, time_zone: str) -> str:
    local = utc_to_local(value, time_zone)
    return f"{format_report_date_time(local)}:{local.second:02d}"


class ReportingService:
    def __init__(self, session: Session, availability_service: Optional[AvailabilityService] = None):
        self.session = session
        self.availability_service = availability_service or AvailabilityService(session)

    def find_report_types(self) -> List[ReportTypeId]:
        return list(ReportTypeId)

    def run_report(
        self,
        report_type_id: ReportTypeId,
        institution_id: str,
        start_date: Optional[date],
        end_date: Optional[date],
        time_zone: str,
    ) -> Report:
        validate_date_range(start_date, end_date)

        output = StringIO()
        writer = csv.writer(output)
        if report_type_id == ReportTypeId.PROVIDER_UNUSED_AVAILABILITY:
            self._write_unused_availability(writer, institution_id, start_date, end_date)
        else:
            canceled = report_type_id == ReportTypeId.PROVIDER_APPOINTMENT_CANCELATIONS
            self._write_appointments(writer, institution_id, start_date, end_date, time_zone, canceled)

        filename = (
            f"{REPORT_TYPE_DESCRIPTIONS[report_type_id]} "
            f"{start_date.isoformat()} to {end_date.isoformat()}.csv"
        )
        logger.info(f"Ran {report_type_id.value} report for {institution_id}: {filename}")
        return Report(filename=filename, content=output.getvalue())

    def _write_appointments(self, writer, institution_id: str, start_date: date, end_date: date, time_zone: str, canceled: bool):
        header = list(APPOINTMENT_COLUMNS)
        if canceled:
            header.append("Canceled At")
        writer.writerow(header)

        # Slot times are provider wall-clock times, compared as stored
        rows = self.session.exec(
            select(Appointment, Provider, Account)
            .join(Provider, Provider.provider_id == Appointment.provider_id)
            .join(Account, Account.account_id == Appointment.account_id)
            .where(
                Provider.institution_id == institution_id,
                Appointment.canceled == canceled,
                Appointment.start_time >= datetime.combine(start_date, time.min),
                Appointment.start_time < datetime.combine(end_date + timedelta(days=1), time.min),
            )
            .order_by(Provider.name, Appointment.start_time)
        ).all()

        for appointment, provider, account in rows:
            record = [
                str(provider.provider_id),
                provider.name,
                format_report_date_time(appointment.start_time),
                _booked_at(appointment.created, time_zone),
                str(account.account_id),
                account.full_name or "",
                account.email_address or "",
                account.phone_number or "",
            ]
            if canceled:
                record.append(_booked_at(appointment.canceled_at, time_zone) if appointment.canceled_at else "")
            writer.writerow(record)

    def _write_unused_availability(self, writer, institution_id: str, start_date: date, end_date: date):
        writer.writerow(["Provider ID", "Provider Name", "Slot Date/Time", "Appointment Types"])

        providers = self.session.exec(
            select(Provider)
            .where(Provider.institution_id == institution_id, Provider.active == True)  # noqa: E712
            .order_by(Provider.name)
        ).all()
        report_start = datetime.combine(start_date, time.min)

        for provider in providers:
            type_names = {
                t.appointment_type_id: t.name
                for t in self.session.exec(
                    select(AppointmentType).where(AppointmentType.provider_id == provider.provider_id)
                ).all()
            }
            slots_by_date = self.availability_service.find_available_slots(
                provider, start_date, end_date, now=report_start
            )
            for slot_date in sorted(slots_by_date):
                for slot in slots_by_date[slot_date]:
                    writer.writerow(
                        [
                            str(provider.provider_id),
                            provider.name,
                            format_report_date_time(slot.start_time),
                            ", ".join(type_names.get(t, str(t)) for t in slot.appointment_type_ids),
                        ]
                    )
