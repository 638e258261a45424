"""Tests for account creation, sign-in, profile updates and password resets."""

from datetime import timedelta
from uuid import UUID

from sqlmodel import Session, select

from carebridge.models.account import Account, AccountEmailVerification, PasswordResetRequest, RoleId
from carebridge.models.audit_log import AuditLog, AuditLogEventId
from carebridge.models.message import MessageLog
from carebridge.security import create_access_token, hash_password
from carebridge.utils.dates import utc_now


# ---------------------------------------------------------------------------
# Account creation
# ---------------------------------------------------------------------------


class TestCreateAccount:
    def test_anonymous_account(self, client, institution):
        response = client.post("/api/accounts", json={})
        assert response.status_code == 201
        data = response.json()
        assert data["account"]["account_source_id"] == "ANONYMOUS"
        assert data["account"]["role_id"] == "PATIENT"
        assert data["account"]["institution_id"] == "COBALT"
        assert data["account"]["time_zone"] == "America/New_York"
        assert data["access_token"]

    def test_email_password_account(self, client, institution):
        response = client.post(
            "/api/accounts",
            json={
                "account_source_id": "EMAIL_PASSWORD",
                "email_address": "  New.User@Example.com ",
                "password": "correct-horse",
                "first_name": "New",
                "last_name": "User",
                "phone_number": "(215) 555-0100",
            },
        )
        assert response.status_code == 201
        account = response.json()["account"]
        assert account["email_address"] == "new.user@example.com"
        assert account["phone_number"] == "+12155550100"
        assert account["display_name"] == "New User"

    def test_email_password_account_requires_fields(self, client, institution):
        response = client.post("/api/accounts", json={"account_source_id": "EMAIL_PASSWORD"})
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_FAILED"
        assert body["field_errors"]["email_address"] == "Email address is required."
        assert body["field_errors"]["password"] == "Password is required."

    def test_duplicate_email_address_rejected(self, client, patient):
        response = client.post(
            "/api/accounts",
            json={"account_source_id": "EMAIL_PASSWORD", "email_address": "PATIENT@example.com", "password": "password1"},
        )
        assert response.status_code == 422
        assert response.json()["field_errors"]["email_address"] == "An account with that email address already exists."

    def test_short_password_rejected(self, client, institution):
        response = client.post(
            "/api/accounts",
            json={"account_source_id": "EMAIL_PASSWORD", "email_address": "a@example.com", "password": "short"},
        )
        assert response.status_code == 422
        assert "at least 8 characters" in response.json()["field_errors"]["password"]

    def test_unknown_institution(self, client, institution):
        response = client.post("/api/accounts", json={}, headers={"X-Institution-Id": "NOPE"})
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_creation_is_audited(self, client, session: Session, institution):
        response = client.post("/api/accounts", json={"account_source_id": "ANONYMOUS"})
        assert response.status_code == 201

        audit = session.exec(
            select(AuditLog).where(AuditLog.audit_log_event_id == AuditLogEventId.ACCOUNT_CREATE)
        ).one()
        assert str(audit.account_id) == response.json()["account"]["account_id"]
        assert audit.message == "Created ANONYMOUS account"

    def test_time_zone(self, client, institution):
        response = client.post("/api/accounts", json={"time_zone": "America/Chicago"})
        assert response.status_code == 201
        assert response.json()["account"]["time_zone"] == "America/Chicago"

    def test_invalid_time_zone_rejected(self, client, session: Session, institution):
        response = client.post("/api/accounts", json={"time_zone": "Not/AZone"})
        assert response.status_code == 422
        assert response.json()["field_errors"]["time_zone"] == "Time zone is invalid."
        assert session.exec(select(Account)).all() == []

    def test_stored_invalid_time_zone_falls_back_to_institution(self, client, make_account, auth_headers):
        account = make_account(time_zone="Not/AZone")
        response = client.get(f"/api/accounts/{account.account_id}", headers=auth_headers(account))
        assert response.status_code == 200
        assert response.json()["account"]["account_id"] == str(account.account_id)


# ---------------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------------


class TestAccessToken:
    def test_sign_in(self, client, make_account):
        make_account(email_address="member@example.com", password=hash_password("let-me-in-1"))
        response = client.post(
            "/api/accounts/access-token", json={"email_address": "Member@Example.com", "password": "let-me-in-1"}
        )
        assert response.status_code == 200
        assert response.json()["access_token"]

    def test_wrong_password(self, client, make_account):
        make_account(email_address="member@example.com", password=hash_password("let-me-in-1"))
        response = client.post(
            "/api/accounts/access-token", json={"email_address": "member@example.com", "password": "nope-nope"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Sorry, we were unable to authenticate you."

    def test_token_authenticates_requests(self, client, patient, auth_headers):
        response = client.get(f"/api/accounts/{patient.account_id}", headers=auth_headers(patient))
        assert response.status_code == 200
        assert response.json()["account"]["account_id"] == str(patient.account_id)

    def test_x_access_token_header(self, client, patient):
        headers = {"X-Access-Token": create_access_token(patient.account_id)}
        response = client.get(f"/api/accounts/{patient.account_id}", headers=headers)
        assert response.status_code == 200

    def test_missing_token(self, client, patient):
        response = client.get(f"/api/accounts/{patient.account_id}")
        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_FAILED"

    def test_garbage_token_is_anonymous(self, client, patient):
        response = client.get(
            f"/api/accounts/{patient.account_id}", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# Viewing and updating accounts
# ---------------------------------------------------------------------------


class TestAccountAccess:
    def test_patient_cannot_view_other_account(self, client, patient, make_account, auth_headers):
        other = make_account(email_address="other@example.com")
        response = client.get(f"/api/accounts/{other.account_id}", headers=auth_headers(patient))
        assert response.status_code == 403

    def test_mhic_can_view_account(self, client, patient, make_account, auth_headers):
        mhic = make_account(RoleId.MHIC, email_address="mhic@cobalt.example.com")
        response = client.get(f"/api/accounts/{patient.account_id}", headers=auth_headers(mhic))
        assert response.status_code == 200

    def test_update_phone_number(self, client, patient, auth_headers):
        response = client.put(
            f"/api/accounts/{patient.account_id}/phone-number",
            json={"phone_number": "215.555.0199"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 200
        assert response.json()["account"]["phone_number"] == "+12155550199"

    def test_update_invalid_phone_number(self, client, patient, auth_headers):
        response = client.put(
            f"/api/accounts/{patient.account_id}/phone-number",
            json={"phone_number": "123"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 422
        assert response.json()["field_errors"] == {"phone_number": "Phone number is invalid."}

    def test_cannot_update_someone_else(self, client, patient, make_account, auth_headers):
        other = make_account()
        response = client.put(
            f"/api/accounts/{other.account_id}/email-address",
            json={"email_address": "mine@example.com"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 403

    def test_update_email_address_resets_verification(self, client, session: Session, make_account, auth_headers):
        account = make_account(email_address="old@example.com", email_verified=True)
        response = client.put(
            f"/api/accounts/{account.account_id}/email-address",
            json={"email_address": "new@example.com"},
            headers=auth_headers(account),
        )
        assert response.status_code == 200
        assert response.json()["account"]["email_address"] == "new@example.com"
        assert response.json()["account"]["email_verified"] is False

    def test_accept_consent_form(self, client, patient, auth_headers):
        response = client.put(
            f"/api/accounts/{patient.account_id}/consent-form-accepted", headers=auth_headers(patient)
        )
        assert response.status_code == 200
        assert response.json()["account"]["consent_form_accepted"] is True
        assert response.json()["account"]["consent_form_accepted_date"] is not None


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


class TestPasswordReset:
    def test_forgot_password_sends_email(self, client, session: Session, make_account):
        account = make_account(email_address="member@example.com", password=hash_password("original-1"))
        response = client.post("/api/accounts/forgot-password", json={"email_address": "member@example.com"})
        assert response.status_code == 204

        reset_request = session.exec(
            select(PasswordResetRequest).where(PasswordResetRequest.account_id == account.account_id)
        ).one()
        message = session.exec(select(MessageLog).where(MessageLog.template == "PASSWORD_RESET")).one()
        assert message.recipient == "member@example.com"
        assert reset_request.password_reset_token in message.body

    def test_forgot_password_unknown_email_is_silent(self, client, session: Session, institution):
        response = client.post("/api/accounts/forgot-password", json={"email_address": "ghost@example.com"})
        assert response.status_code == 204
        assert session.exec(select(MessageLog)).all() == []

    def test_reset_password(self, client, session: Session, make_account):
        make_account(email_address="member@example.com", password=hash_password("original-1"))
        client.post("/api/accounts/forgot-password", json={"email_address": "member@example.com"})
        token = session.exec(select(PasswordResetRequest)).one().password_reset_token

        response = client.post(
            "/api/accounts/reset-password",
            json={"password_reset_token": token, "password": "brand-new-1", "confirm_password": "brand-new-1"},
        )
        assert response.status_code == 200

        sign_in = client.post(
            "/api/accounts/access-token", json={"email_address": "member@example.com", "password": "brand-new-1"}
        )
        assert sign_in.status_code == 200

        reused = client.post(
            "/api/accounts/reset-password",
            json={"password_reset_token": token, "password": "again-new-1", "confirm_password": "again-new-1"},
        )
        assert reused.status_code == 422
        assert reused.json()["message"] == "Your password reset link is invalid or has expired."

    def test_reset_password_mismatch(self, client, session: Session, make_account):
        make_account(email_address="member@example.com", password=hash_password("original-1"))
        client.post("/api/accounts/forgot-password", json={"email_address": "member@example.com"})
        token = session.exec(select(PasswordResetRequest)).one().password_reset_token

        response = client.post(
            "/api/accounts/reset-password",
            json={"password_reset_token": token, "password": "brand-new-1", "confirm_password": "brand-new-2"},
        )
        assert response.status_code == 422
        assert response.json()["field_errors"] == {"confirm_password": "Passwords do not match."}

    def test_expired_token_rejected(self, client, session: Session, make_account):
        make_account(email_address="member@example.com", password=hash_password("original-1"))
        client.post("/api/accounts/forgot-password", json={"email_address": "member@example.com"})
        reset_request = session.exec(select(PasswordResetRequest)).one()
        reset_request.expiration = utc_now() - timedelta(minutes=1)
        session.add(reset_request)
        session.commit()

        response = client.post(
            "/api/accounts/reset-password",
            json={
                "password_reset_token": reset_request.password_reset_token,
                "password": "brand-new-1",
                "confirm_password": "brand-new-1",
            },
        )
        assert response.status_code == 422
        assert response.json()["message"] == "Your password reset link is invalid or has expired."

        sign_in = client.post(
            "/api/accounts/access-token", json={"email_address": "member@example.com", "password": "original-1"}
        )
        assert sign_in.status_code == 200


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------


class TestEmailVerification:
    def test_verify_email_address(self, client, session: Session, patient, auth_headers):
        headers = auth_headers(patient)
        response = client.post(f"/api/accounts/{patient.account_id}/email-verification-code", json={}, headers=headers)
        assert response.status_code == 204

        code = session.exec(select(AccountEmailVerification)).one().code
        response = client.post(
            f"/api/accounts/{patient.account_id}/email-verification", json={"code": code}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["account"]["email_verified"] is True

        verified = client.get(f"/api/accounts/{patient.account_id}/email-verified", headers=headers)
        assert verified.json() == {"verified": True}

    def test_wrong_code(self, client, patient, auth_headers):
        headers = auth_headers(patient)
        client.post(f"/api/accounts/{patient.account_id}/email-verification-code", json={}, headers=headers)
        response = client.post(
            f"/api/accounts/{patient.account_id}/email-verification", json={"code": "not-it"}, headers=headers
        )
        assert response.status_code == 422
        assert response.json()["field_errors"]["code"] == "The verification code is invalid or has expired."

    def test_expired_code(self, client, session: Session, patient, auth_headers):
        headers = auth_headers(patient)
        client.post(f"/api/accounts/{patient.account_id}/email-verification-code", json={}, headers=headers)
        verification = session.exec(select(AccountEmailVerification)).one()
        verification.expiration = utc_now() - timedelta(seconds=1)
        session.add(verification)
        session.commit()

        response = client.post(
            f"/api/accounts/{patient.account_id}/email-verification",
            json={"code": verification.code},
            headers=headers,
        )
        assert response.status_code == 422
        assert response.json()["field_errors"]["code"] == "The verification code is invalid or has expired."

        verified = client.get(f"/api/accounts/{patient.account_id}/email-verified", headers=headers)
        assert verified.json() == {"verified": False}

    def test_unverified_by_default(self, client, patient, auth_headers):
        response = client.get(f"/api/accounts/{patient.account_id}/email-verified", headers=auth_headers(patient))
        assert response.json() == {"verified": False}


# ---------------------------------------------------------------------------
# Institution
# ---------------------------------------------------------------------------


class TestInstitution:
    def test_current_institution(self, client, institution):
        response = client.get("/api/institution/current")
        assert response.status_code == 200
        assert response.json()["institution"]["institution_id"] == "COBALT"

    def test_account_sources(self, client, institution):
        response = client.get("/api/institution/account-sources")
        sources = [s["account_source_id"] for s in response.json()["account_sources"]]
        assert sources == ["ANONYMOUS", "EMAIL_PASSWORD"]

    def test_account_sources_respect_flags(self, client, session: Session, institution):
        institution.anonymous_enabled = False
        session.add(institution)
        session.commit()
        response = client.get("/api/institution/account-sources")
        sources = [s["account_source_id"] for s in response.json()["account_sources"]]
        assert sources == ["EMAIL_PASSWORD"]

    def test_reference_data(self, client, institution):
        response = client.get("/api/accounts/reference-data")
        data = response.json()
        assert "America/New_York" in data["time_zones"]
        assert "ADMINISTRATOR" in data["roles"]


def test_account_row_is_persisted(client, session: Session, institution):
    response = client.post("/api/accounts", json={"first_name": "Solo"})
    account_id = response.json()["account"]["account_id"]
    account = session.get(Account, UUID(account_id))
    assert account is not None
    assert account.first_name == "Solo"
