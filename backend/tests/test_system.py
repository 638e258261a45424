"""Tests for system endpoints, request context, tokens and activity tracking."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session, select

from carebridge.models.activity_tracking import ActivityTracking
from carebridge.models.institution import Institution
from carebridge.security import (
    create_access_token,
    create_signing_token,
    decode_access_token,
    verify_signing_token,
)


@pytest.fixture(name="background_calls")
def background_calls_fixture(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "carebridge.routes.system.run_in_background",
        lambda fn, *args, description=None: calls.append(description),
    )
    return calls


def test_health_check(client):
    response = client.get("/api/system/health-check")
    assert response.status_code == 200
    assert response.text == "OK"


class TestConfiguration:
    def test_default_institution(self, client, institution):
        response = client.get("/api/system/configuration")
        configuration = response.json()["configuration"]
        assert configuration["institution_id"] == "COBALT"
        assert configuration["default_time_zone"] == "America/New_York"
        assert configuration["support_email_address"] == "support@cobalt.example.com"
        assert "America/New_York" in configuration["supported_time_zones"]

    def test_institution_header(self, client, session: Session, institution):
        session.add(Institution(institution_id="WEST", name="West Clinic", time_zone="America/Los_Angeles"))
        session.commit()
        response = client.get("/api/system/configuration", headers={"X-Institution-Id": "WEST"})
        assert response.json()["configuration"]["default_time_zone"] == "America/Los_Angeles"

    def test_account_institution_wins_over_header(self, client, session: Session, patient, auth_headers):
        session.add(Institution(institution_id="WEST", name="West Clinic", time_zone="America/Los_Angeles"))
        session.commit()
        headers = {**auth_headers(patient), "X-Institution-Id": "WEST"}
        response = client.get("/api/system/configuration", headers=headers)
        assert response.json()["configuration"]["institution_id"] == "COBALT"

    def test_unknown_institution(self, client, institution):
        response = client.get("/api/system/configuration", headers={"X-Institution-Id": "NOPE"})
        assert response.status_code == 404
        assert response.json() == {
            "code": "NOT_FOUND",
            "message": "Unknown institution NOPE",
            "field_errors": {},
            "metadata": {},
        }


class TestSyncProviderAvailability:
    def test_signed_request_starts_sync(self, client, institution, background_calls):
        response = client.post(
            "/api/system/sync-provider-availability", headers={"X-Signing-Token": create_signing_token()}
        )
        assert response.status_code == 202
        assert response.json() == {"started": True}
        assert background_calls == ["Acuity availability sync for all providers"]

    def test_unsigned_request_rejected(self, client, institution, background_calls):
        response = client.post("/api/system/sync-provider-availability")
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication failed. This request must be signed."
        assert background_calls == []

    def test_wrong_subject_rejected(self, client, institution, background_calls):
        response = client.post(
            "/api/system/sync-provider-availability", headers={"X-Signing-Token": create_signing_token("SOMEONE_ELSE")}
        )
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def test_access_token_round_trip():
    account_id = uuid4()
    assert decode_access_token(create_access_token(account_id)) == account_id


def test_expired_access_token():
    assert decode_access_token(create_access_token(uuid4(), expires_delta=timedelta(minutes=-1))) is None


def test_signing_token():
    assert verify_signing_token(create_signing_token()) is True
    assert verify_signing_token(None) is False
    assert verify_signing_token("garbage") is False


# ---------------------------------------------------------------------------
# Activity tracking
# ---------------------------------------------------------------------------


class TestActivityTracking:
    def test_track(self, client, session: Session, patient, auth_headers):
        session_tracking_id = uuid4()
        response = client.post(
            "/api/activity-tracking",
            json={"activity_type_id": "URL", "activity_action_id": "VIEW", "context": {"url": "/connect"}},
            headers={**auth_headers(patient), "X-Session-Tracking-Id": str(session_tracking_id)},
        )
        assert response.status_code == 201

        activity = session.exec(select(ActivityTracking)).one()
        assert str(activity.activity_tracking_id) == response.json()["activity_tracking_id"]
        assert activity.account_id == patient.account_id
        assert activity.session_tracking_id == session_tracking_id
        assert activity.context == {"url": "/connect"}

    def test_requires_session_tracking_id(self, client, patient, auth_headers):
        response = client.post(
            "/api/activity-tracking",
            json={"activity_type_id": "URL", "activity_action_id": "VIEW"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 422
        assert response.json()["message"] == "A session tracking id is required to track activity."

    def test_requires_sign_in(self, client, institution):
        response = client.post(
            "/api/activity-tracking",
            json={"activity_type_id": "URL", "activity_action_id": "VIEW"},
            headers={"X-Session-Tracking-Id": str(uuid4())},
        )
        assert response.status_code == 401

    def test_malformed_request_body(self, client, patient, auth_headers):
        response = client.post(
            "/api/activity-tracking",
            json={"activity_type_id": "SOMETHING", "activity_action_id": "VIEW"},
            headers={**auth_headers(patient), "X-Session-Tracking-Id": str(uuid4())},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_FAILED"
        assert "activity_type_id" in body["field_errors"]
