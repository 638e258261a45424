"""Tests for administrator CSV reports."""

import csv
from datetime import datetime
from io import StringIO

import pytest
from sqlmodel import Session, select

from carebridge.models.appointment import Appointment
from carebridge.models.audit_log import AuditLog
from carebridge.models.availability import LogicalAvailability, LogicalAvailabilityTypeId

REPORT_DAY = "2030-03-04"


def _rows(response) -> list:
    return list(csv.reader(StringIO(response.text)))


@pytest.fixture(name="booked_appointment")
def booked_appointment_fixture(session: Session, patient, provider, appointment_type):
    appointment = Appointment(
        provider_id=provider.provider_id,
        account_id=patient.account_id,
        created_by_account_id=patient.account_id,
        appointment_type_id=appointment_type.appointment_type_id,
        title="Initial Consult with Dr. Jane Smith",
        start_time=datetime(2030, 3, 4, 9, 0),
        end_time=datetime(2030, 3, 4, 9, 30),
        duration_in_minutes=30,
        time_zone="America/New_York",
    )
    session.add(appointment)
    session.commit()
    session.refresh(appointment)
    return appointment


class TestReportTypes:
    def test_list(self, client, administrator, auth_headers):
        response = client.get("/api/reporting/report-types", headers=auth_headers(administrator))
        assert response.status_code == 200
        descriptions = {r["report_type_id"]: r["description"] for r in response.json()["report_types"]}
        assert descriptions == {
            "PROVIDER_UNUSED_AVAILABILITY": "Provider Unused Availability",
            "PROVIDER_APPOINTMENTS": "Provider Appointments",
            "PROVIDER_APPOINTMENT_CANCELATIONS": "Provider Appointment Cancelations",
        }

    def test_administrators_only(self, client, patient, auth_headers):
        response = client.get("/api/reporting/report-types", headers=auth_headers(patient))
        assert response.status_code == 403


class TestRunReport:
    def test_appointments_report(self, client, session: Session, administrator, auth_headers, booked_appointment):
        response = client.get(
            "/api/reporting/run-report",
            params={"report_type_id": "PROVIDER_APPOINTMENTS", "start_date": REPORT_DAY, "end_date": REPORT_DAY},
            headers=auth_headers(administrator),
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == (
            'attachment; filename="Provider Appointments 2030-03-04 to 2030-03-04.csv"'
        )

        header, row = _rows(response)
        assert header == [
            "Provider ID",
            "Provider Name",
            "Slot Date/Time",
            "Booked At",
            "Patient Account ID",
            "Patient Name",
            "Patient Email Address",
            "Patient Phone Number",
        ]
        assert row[1] == "Dr. Jane Smith"
        assert row[2] == "2030-03-04 9:00"
        assert row[4] == str(booked_appointment.account_id)
        assert row[5] == "Pat Patient"
        assert row[6] == "patient@example.com"

        audit = session.exec(select(AuditLog).where(AuditLog.audit_log_event_id == "REPORT_RUN")).one()
        assert audit.account_id == administrator.account_id

    def test_cancelations_report(self, client, session: Session, administrator, auth_headers, booked_appointment):
        booked_appointment.canceled = True
        booked_appointment.canceled_at = datetime(2030, 3, 1, 17, 5, 9)
        session.add(booked_appointment)
        session.commit()

        response = client.get(
            "/api/reporting/run-report",
            params={
                "report_type_id": "PROVIDER_APPOINTMENT_CANCELATIONS",
                "start_date": REPORT_DAY,
                "end_date": REPORT_DAY,
            },
            headers=auth_headers(administrator),
        )
        header, row = _rows(response)
        assert header[-1] == "Canceled At"
        # 17:05:09 UTC is 12:05:09 in New York
        assert row[-1] == "2030-03-01 12:05:09"

        appointments = client.get(
            "/api/reporting/run-report",
            params={"report_type_id": "PROVIDER_APPOINTMENTS", "start_date": REPORT_DAY, "end_date": REPORT_DAY},
            headers=auth_headers(administrator),
        )
        assert len(_rows(appointments)) == 1

    def test_unused_availability_report(
        self, client, session: Session, administrator, provider, auth_headers, booked_appointment
    ):
        session.add(
            LogicalAvailability(
                provider_id=provider.provider_id,
                logical_availability_type_id=LogicalAvailabilityTypeId.OPEN,
                start_date_time=datetime(2030, 3, 4, 9, 0),
                end_date_time=datetime(2030, 3, 4, 10, 0),
            )
        )
        session.commit()

        response = client.get(
            "/api/reporting/run-report",
            params={"report_type_id": "PROVIDER_UNUSED_AVAILABILITY", "start_date": REPORT_DAY, "end_date": REPORT_DAY},
            headers=auth_headers(administrator),
        )
        header, *rows = _rows(response)
        assert header == ["Provider ID", "Provider Name", "Slot Date/Time", "Appointment Types"]
        assert rows == [[str(provider.provider_id), "Dr. Jane Smith", "2030-03-04 9:30", "Initial Consult"]]

    def test_dates_required(self, client, administrator, auth_headers):
        response = client.get(
            "/api/reporting/run-report",
            params={"report_type_id": "PROVIDER_APPOINTMENTS"},
            headers=auth_headers(administrator),
        )
        assert response.status_code == 422
        assert response.json()["field_errors"] == {"date": "Start and end dates are required."}

    def test_reversed_dates(self, client, administrator, auth_headers):
        response = client.get(
            "/api/reporting/run-report",
            params={"report_type_id": "PROVIDER_APPOINTMENTS", "start_date": "2030-03-05", "end_date": "2030-03-04"},
            headers=auth_headers(administrator),
        )
        assert response.json()["field_errors"] == {"date": "End date must not be before start date."}

    def test_unknown_report_type(self, client, administrator, auth_headers):
        response = client.get(
            "/api/reporting/run-report",
            params={"report_type_id": "NOPE", "start_date": REPORT_DAY, "end_date": REPORT_DAY},
            headers=auth_headers(administrator),
        )
        assert response.status_code == 422
