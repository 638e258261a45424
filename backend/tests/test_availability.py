"""Tests for provider calendars, open slot search and calendar permissions."""

from datetime import date, datetime, timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session

from carebridge.models.account import RoleId
from carebridge.models.appointment import Appointment, AppointmentType, VisitTypeId
from carebridge.models.availability import LogicalAvailability, LogicalAvailabilityTypeId, RecurrenceTypeId
from carebridge.models.provider import CalendarPermission, CalendarPermissionId, Provider, SchedulingSystemId
from carebridge.services.availability_service import AvailabilityService, expand_logical_availability
from tests.conftest import future_date


def _open(session: Session, provider: Provider, start: datetime, end: datetime, **kwargs) -> LogicalAvailability:
    logical_availability = LogicalAvailability(
        provider_id=provider.provider_id,
        logical_availability_type_id=kwargs.pop("logical_availability_type_id", LogicalAvailabilityTypeId.OPEN),
        start_date_time=start,
        end_date_time=end,
        **kwargs,
    )
    session.add(logical_availability)
    session.commit()
    session.refresh(logical_availability)
    return logical_availability


def _at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute)


# ---------------------------------------------------------------------------
# Expanding logical availability
# ---------------------------------------------------------------------------


class TestExpandLogicalAvailability:
    def test_one_time_block_clipped_to_range(self):
        la = LogicalAvailability(
            provider_id=uuid4(),
            logical_availability_type_id=LogicalAvailabilityTypeId.OPEN,
            start_date_time=datetime(2030, 3, 4, 9, 0),
            end_date_time=datetime(2030, 3, 6, 17, 0),
        )
        windows = expand_logical_availability(la, date(2030, 3, 5), date(2030, 3, 5))
        assert len(windows) == 1
        assert windows[0].start_time == datetime(2030, 3, 5, 0, 0)
        assert windows[0].end_time == datetime(2030, 3, 6, 0, 0)

    def test_one_time_block_outside_range(self):
        la = LogicalAvailability(
            provider_id=uuid4(),
            logical_availability_type_id=LogicalAvailabilityTypeId.OPEN,
            start_date_time=datetime(2030, 3, 4, 9, 0),
            end_date_time=datetime(2030, 3, 4, 17, 0),
        )
        assert expand_logical_availability(la, date(2030, 3, 5), date(2030, 3, 9)) == []

    def test_daily_recurrence_on_flagged_weekdays(self):
        # 2030-03-04 is a Monday
        la = LogicalAvailability(
            provider_id=uuid4(),
            logical_availability_type_id=LogicalAvailabilityTypeId.OPEN,
            recurrence_type_id=RecurrenceTypeId.DAILY,
            start_date_time=datetime(2030, 3, 4, 9, 0),
            end_date_time=datetime(2030, 3, 31, 12, 0),
            recur_monday=True,
            recur_wednesday=True,
        )
        windows = expand_logical_availability(la, date(2030, 3, 4), date(2030, 3, 10))
        assert [(w.start_time, w.end_time) for w in windows] == [
            (datetime(2030, 3, 4, 9, 0), datetime(2030, 3, 4, 12, 0)),
            (datetime(2030, 3, 6, 9, 0), datetime(2030, 3, 6, 12, 0)),
        ]

    def test_daily_recurrence_stops_at_end_date(self):
        la = LogicalAvailability(
            provider_id=uuid4(),
            logical_availability_type_id=LogicalAvailabilityTypeId.OPEN,
            recurrence_type_id=RecurrenceTypeId.DAILY,
            start_date_time=datetime(2030, 3, 4, 9, 0),
            end_date_time=datetime(2030, 3, 5, 12, 0),
            recur_monday=True,
            recur_tuesday=True,
            recur_wednesday=True,
        )
        windows = expand_logical_availability(la, date(2030, 3, 1), date(2030, 3, 31))
        assert len(windows) == 2


# ---------------------------------------------------------------------------
# Open slots
# ---------------------------------------------------------------------------


class TestFindAvailableSlots:
    def test_slots_follow_appointment_duration(self, session: Session, provider, appointment_type):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 11))

        slots = AvailabilityService(session).find_available_slots(provider, day, day)
        assert [s.start_time for s in slots[day]] == [_at(day, 9), _at(day, 9, 30), _at(day, 10), _at(day, 10, 30)]
        assert slots[day][0].appointment_type_ids == [appointment_type.appointment_type_id]

    def test_blocked_time_removes_slots(self, session: Session, provider, appointment_type):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 11))
        _open(
            session,
            provider,
            _at(day, 9, 45),
            _at(day, 10, 15),
            logical_availability_type_id=LogicalAvailabilityTypeId.BLOCK,
        )

        slots = AvailabilityService(session).find_available_slots(provider, day, day)
        assert [s.start_time for s in slots[day]] == [_at(day, 9), _at(day, 10, 30)]

    def test_booked_appointment_removes_slot(self, session: Session, provider, appointment_type, patient):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 10))
        session.add(
            Appointment(
                provider_id=provider.provider_id,
                account_id=patient.account_id,
                created_by_account_id=patient.account_id,
                appointment_type_id=appointment_type.appointment_type_id,
                title="Booked",
                start_time=_at(day, 9),
                end_time=_at(day, 9, 30),
                duration_in_minutes=30,
                time_zone=provider.time_zone,
            )
        )
        session.commit()

        slots = AvailabilityService(session).find_available_slots(provider, day, day)
        assert [s.start_time for s in slots[day]] == [_at(day, 9, 30)]

    def test_past_slots_are_dropped(self, session: Session, provider, appointment_type):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 11))

        slots = AvailabilityService(session).find_available_slots(provider, day, day, now=_at(day, 10))
        assert [s.start_time for s in slots[day]] == [_at(day, 10), _at(day, 10, 30)]

    def test_window_limited_to_appointment_types(self, session: Session, provider, appointment_type):
        followup = AppointmentType(
            provider_id=provider.provider_id, name="Follow Up", duration_in_minutes=60, visit_type_id=VisitTypeId.FOLLOWUP
        )
        session.add(followup)
        session.commit()
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 10), appointment_type_ids=[str(followup.appointment_type_id)])

        slots = AvailabilityService(session).find_available_slots(provider, day, day)
        assert [(s.start_time, s.appointment_type_ids) for s in slots[day]] == [(_at(day, 9), [followup.appointment_type_id])]

    def test_visit_type_filter(self, session: Session, provider, appointment_type):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 10))
        slots = AvailabilityService(session).find_available_slots(provider, day, day, visit_type_ids=[VisitTypeId.FOLLOWUP])
        assert slots == {}

    def test_acuity_provider_reads_cached_times(self, session: Session, institution, acuity_client, acuity_sync_manager):
        day = future_date()
        provider = Provider(
            institution_id=institution.institution_id,
            name="Dr. Acuity",
            scheduling_system_id=SchedulingSystemId.ACUITY,
            acuity_calendar_id=77,
        )
        session.add(provider)
        session.commit()
        acuity_type = AppointmentType(
            provider_id=provider.provider_id,
            name="Acuity Visit",
            duration_in_minutes=45,
            scheduling_system_id=SchedulingSystemId.ACUITY,
            acuity_appointment_type_id=501,
        )
        session.add(acuity_type)
        session.commit()
        acuity_client.availability[(501, 77, day)] = [{"time": f"{day.isoformat()}T13:00:00-0500"}]

        service = AvailabilityService(session, acuity_sync_manager)
        slots = service.find_available_slots(provider, day, day)
        assert len(slots[day]) == 1
        assert slots[day][0].appointment_type_ids == [acuity_type.appointment_type_id]

        # Second lookup is served from the cache
        service.find_available_slots(provider, day, day)
        assert acuity_client.availability_calls.count((501, 77, day)) == 1


# ---------------------------------------------------------------------------
# Logical availability endpoints
# ---------------------------------------------------------------------------


class TestLogicalAvailabilityEndpoints:
    def _body(self, provider, day, **kwargs):
        body = {
            "provider_id": str(provider.provider_id),
            "logical_availability_type_id": "OPEN",
            "start_date_time": _at(day, 9).isoformat(),
            "end_date_time": _at(day, 12).isoformat(),
        }
        body.update(kwargs)
        return body

    def test_provider_creates_and_deletes(self, client, provider, provider_account, auth_headers):
        headers = auth_headers(provider_account)
        day = future_date()
        response = client.post("/api/logical-availabilities", json=self._body(provider, day), headers=headers)
        assert response.status_code == 201
        created = response.json()["logical_availability"]
        assert created["start_date_time"] == _at(day, 9).isoformat()

        listed = client.get(f"/api/logical-availabilities?provider_id={provider.provider_id}", headers=headers)
        assert len(listed.json()["logical_availabilities"]) == 1

        deleted = client.delete(f"/api/logical-availabilities/{created['logical_availability_id']}", headers=headers)
        assert deleted.status_code == 204

        missing = client.delete(f"/api/logical-availabilities/{created['logical_availability_id']}", headers=headers)
        assert missing.status_code == 404

    def test_end_before_start(self, client, provider, provider_account, auth_headers):
        day = future_date()
        body = self._body(provider, day, end_date_time=_at(day, 8).isoformat())
        response = client.post("/api/logical-availabilities", json=body, headers=auth_headers(provider_account))
        assert response.status_code == 422
        assert response.json()["field_errors"]["end_date_time"] == "End time must be after start time."

    def test_daily_requires_weekday(self, client, provider, provider_account, auth_headers):
        body = self._body(provider, future_date(), recurrence_type_id="DAILY")
        response = client.post("/api/logical-availabilities", json=body, headers=auth_headers(provider_account))
        assert response.status_code == 422
        assert response.json()["field_errors"]["recurrence_type_id"] == "Pick at least one day for recurring availability."

    def test_block_cannot_have_appointment_types(self, client, provider, provider_account, appointment_type, auth_headers):
        body = self._body(
            provider,
            future_date(),
            logical_availability_type_id="BLOCK",
            appointment_type_ids=[str(appointment_type.appointment_type_id)],
        )
        response = client.post("/api/logical-availabilities", json=body, headers=auth_headers(provider_account))
        assert response.status_code == 422
        assert response.json()["field_errors"]["appointment_type_ids"] == "Blocked time cannot have appointment types."

    def test_patient_cannot_edit_calendar(self, client, provider, patient, auth_headers):
        response = client.post(
            "/api/logical-availabilities", json=self._body(provider, future_date()), headers=auth_headers(patient)
        )
        assert response.status_code == 403

    def test_viewer_can_read_but_not_write(self, client, session: Session, provider, make_account, auth_headers):
        viewer = make_account(RoleId.MHIC, email_address="viewer@cobalt.example.com")
        session.add(
            CalendarPermission(
                account_id=viewer.account_id,
                provider_id=provider.provider_id,
                calendar_permission_id=CalendarPermissionId.VIEWER,
            )
        )
        session.commit()
        headers = auth_headers(viewer)

        assert client.get(f"/api/logical-availabilities?provider_id={provider.provider_id}", headers=headers).status_code == 200
        response = client.post("/api/logical-availabilities", json=self._body(provider, future_date()), headers=headers)
        assert response.status_code == 403


# ---------------------------------------------------------------------------
# Provider directory and search
# ---------------------------------------------------------------------------


class TestProviders:
    def test_list_and_search(self, client, session: Session, provider, institution):
        session.add(Provider(institution_id=institution.institution_id, name="Sam Coach", title="Peer Coach"))
        session.add(Provider(institution_id=institution.institution_id, name="Gone", active=False))
        session.commit()

        names = [p["name"] for p in client.get("/api/providers").json()["providers"]]
        assert sorted(names) == ["Dr. Jane Smith", "Sam Coach"]

        searched = client.get("/api/providers?search=coach").json()["providers"]
        assert [p["name"] for p in searched] == ["Sam Coach"]

    def test_get_provider(self, client, provider, appointment_type):
        response = client.get(f"/api/providers/{provider.provider_id}")
        assert response.status_code == 200
        assert response.json()["provider"]["name"] == "Dr. Jane Smith"
        assert [t["name"] for t in response.json()["appointment_types"]] == ["Initial Consult"]

    def test_get_unknown_provider(self, client, institution):
        assert client.get(f"/api/providers/{uuid4()}").status_code == 404

    def test_find_open_times(self, client, session: Session, provider, appointment_type):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 10))

        response = client.post(
            "/api/providers/find", json={"start_date": day.isoformat(), "end_date": (day + timedelta(days=2)).isoformat()}
        )
        assert response.status_code == 200
        section = response.json()["providers"][0]
        assert section["provider"]["name"] == "Dr. Jane Smith"
        assert section["dates"][0]["date"] == day.isoformat()
        assert [t["time"] for t in section["dates"][0]["times"]] == ["09:00", "09:30"]
        assert section["dates"][0]["times"][0]["time_description"] == "9:00 AM"

    def test_find_filters_time_of_day(self, client, session: Session, provider, appointment_type):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 12))
        response = client.post(
            "/api/providers/find",
            json={"start_date": day.isoformat(), "end_date": day.isoformat(), "start_time": "10:00", "end_time": "10:30"},
        )
        times = [t["time"] for t in response.json()["providers"][0]["dates"][0]["times"]]
        assert times == ["10:00", "10:30"]

    def test_find_rejects_reversed_range(self, client, institution):
        response = client.post(
            "/api/providers/find",
            json={"start_date": future_date(5).isoformat(), "end_date": future_date(1).isoformat()},
        )
        assert response.status_code == 422
        assert response.json()["field_errors"]["date"] == "End date must not be before start date."

    def test_calendar(self, client, session: Session, provider, provider_account, appointment_type, auth_headers):
        day = future_date()
        _open(session, provider, _at(day, 9), _at(day, 10))
        response = client.get(
            f"/api/providers/{provider.provider_id}/calendar?start_date={day}&end_date={day}",
            headers=auth_headers(provider_account),
        )
        assert response.status_code == 200
        assert len(response.json()["availabilities"]) == 1
        assert response.json()["appointments"] == []

    def test_calendar_requires_dates(self, client, provider, provider_account, auth_headers):
        response = client.get(f"/api/providers/{provider.provider_id}/calendar", headers=auth_headers(provider_account))
        assert response.status_code == 422


class TestCalendarPermissions:
    def test_admin_grants_and_revokes(self, client, provider, administrator, make_account, auth_headers):
        mhic = make_account(RoleId.MHIC, email_address="mhic@cobalt.example.com")
        url = f"/api/providers/{provider.provider_id}/calendar-permissions"
        headers = auth_headers(administrator)

        granted = client.put(
            url, json={"account_id": str(mhic.account_id), "calendar_permission_id": "MANAGER"}, headers=headers
        )
        assert granted.status_code == 200
        assert granted.json()["calendar_permissions"] == [
            {
                "account_id": str(mhic.account_id),
                "provider_id": str(provider.provider_id),
                "calendar_permission_id": "MANAGER",
            }
        ]

        revoked = client.put(url, json={"account_id": str(mhic.account_id)}, headers=headers)
        assert revoked.json()["calendar_permissions"] == []

    def test_non_admin_forbidden(self, client, provider, provider_account, auth_headers):
        response = client.get(
            f"/api/providers/{provider.provider_id}/calendar-permissions", headers=auth_headers(provider_account)
        )
        assert response.status_code == 403

    def test_unknown_account(self, client, provider, administrator, auth_headers):
        response = client.put(
            f"/api/providers/{provider.provider_id}/calendar-permissions",
            json={"account_id": str(uuid4()), "calendar_permission_id": "VIEWER"},
            headers=auth_headers(administrator),
        )
        assert response.status_code == 422
        assert response.json()["field_errors"] == {"account_id": "Account is invalid."}


# ---------------------------------------------------------------------------
# Appointment types
# ---------------------------------------------------------------------------


class TestAppointmentTypes:
    def test_provider_manages_types(self, client, provider, provider_account, auth_headers):
        headers = auth_headers(provider_account)
        created = client.post(
            "/api/appointment-types",
            json={"name": " Check-in ", "duration_in_minutes": 15, "visit_type_id": "FOLLOWUP"},
            headers=headers,
        )
        assert created.status_code == 201
        appointment_type = created.json()["appointment_type"]
        assert appointment_type["name"] == "Check-in"

        updated = client.put(
            f"/api/appointment-types/{appointment_type['appointment_type_id']}",
            json={"duration_in_minutes": 20},
            headers=headers,
        )
        assert updated.json()["appointment_type"]["duration_in_minutes"] == 20

        deleted = client.delete(f"/api/appointment-types/{appointment_type['appointment_type_id']}", headers=headers)
        assert deleted.status_code == 204

        listed = client.get(f"/api/appointment-types?provider_id={provider.provider_id}", headers=headers)
        assert listed.json()["appointment_types"] == []

    @pytest.mark.parametrize("duration", [0, 481])
    def test_duration_bounds(self, client, provider, provider_account, auth_headers, duration):
        response = client.post(
            "/api/appointment-types",
            json={"name": "Too long", "duration_in_minutes": duration},
            headers=auth_headers(provider_account),
        )
        assert response.status_code == 422
        assert "duration_in_minutes" in response.json()["field_errors"]

    def test_patient_cannot_create(self, client, patient, auth_headers):
        response = client.post(
            "/api/appointment-types", json={"name": "Nope", "duration_in_minutes": 30}, headers=auth_headers(patient)
        )
        assert response.status_code == 403

    def test_other_provider_cannot_edit(self, client, session: Session, appointment_type, institution, make_account, auth_headers):
        other = Provider(institution_id=institution.institution_id, name="Dr. Other")
        session.add(other)
        session.commit()
        other_account = make_account(RoleId.PROVIDER, email_address="other@cobalt.example.com", provider_id=other.provider_id)

        response = client.put(
            f"/api/appointment-types/{appointment_type.appointment_type_id}",
            json={"name": "Mine now"},
            headers=auth_headers(other_account),
        )
        assert response.status_code == 403
