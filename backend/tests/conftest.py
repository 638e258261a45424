import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AMAZON_SNS_VERIFY_SIGNATURES", "false")

from datetime import date, datetime, timedelta  # noqa: E402
from typing import Dict, List, Optional  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from carebridge.database import get_session  # noqa: E402
from carebridge.main import app  # noqa: E402
from carebridge.models.account import Account, AccountSourceId, RoleId  # noqa: E402
from carebridge.models.appointment import AppointmentType, VisitTypeId  # noqa: E402
from carebridge.models.assessment import Answer, Assessment, AssessmentTypeId, Question  # noqa: E402
from carebridge.models.institution import CrisisContact, Institution  # noqa: E402
from carebridge.models.provider import Provider  # noqa: E402
from carebridge.security import create_access_token  # noqa: E402
from carebridge.services.acuity_service import (  # noqa: E402
    AcuityAvailabilityCache,
    AcuitySyncManager,
    get_acuity_client,
    get_acuity_sync_manager,
)
from carebridge.webhook_security import verify_acuity_signature  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_TIME_ZONE = "America/New_York"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False for TestClient and background sync threads
# 3. Tables are dropped and recreated for every test (see session_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


class FakeAcuityClient:
    """Stands in for the Acuity HTTP API."""

    def __init__(self, api_key: str = "acuity-test-key"):
        self.api_key = api_key
        self.appointments: Dict[int, dict] = {}
        self.availability: Dict[tuple, List[dict]] = {}
        self.availability_calls: List[tuple] = []

    def get_appointment(self, acuity_appointment_id: int) -> dict:
        return self.appointments[acuity_appointment_id]

    def get_availability_times(self, appointment_type_id, calendar_id, for_date, time_zone) -> List[dict]:
        self.availability_calls.append((appointment_type_id, calendar_id, for_date))
        return self.availability.get((appointment_type_id, calendar_id, for_date), [])

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> bool:
        return verify_acuity_signature(self.api_key, payload, signature or "")


def future_date(days: int = 7) -> date:
    """A date comfortably in the future in the test time zone."""
    return datetime.now(ZoneInfo(TEST_TIME_ZONE)).date() + timedelta(days=days)


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    # Importing the package registers every table before create_all
    import carebridge.models  # noqa: F401

    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="acuity_client")
def acuity_client_fixture():
    return FakeAcuityClient()


@pytest.fixture(name="acuity_sync_manager")
def acuity_sync_manager_fixture(acuity_client):
    return AcuitySyncManager(acuity_client, AcuityAvailabilityCache(), session_factory=lambda: Session(test_engine))


@pytest.fixture(name="client")
def client_fixture(session: Session, acuity_client, acuity_sync_manager):
    """Provide a test client with overridden database session and Acuity client

    Overrides MUST be set BEFORE TestClient() and stay in place
    for the entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_acuity_client] = lambda: acuity_client
    app.dependency_overrides[get_acuity_sync_manager] = lambda: acuity_sync_manager

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Domain fixtures
# ============================================================================


@pytest.fixture(name="institution")
def institution_fixture(session: Session) -> Institution:
    institution = Institution(
        institution_id="COBALT",
        name="Cobalt Health",
        time_zone=TEST_TIME_ZONE,
        support_email_address="support@cobalt.example.com",
    )
    session.add(institution)
    session.add(CrisisContact(institution_id="COBALT", email_address="crisis@cobalt.example.com"))
    session.commit()
    session.refresh(institution)
    return institution


@pytest.fixture(name="make_account")
def make_account_fixture(session: Session, institution: Institution):
    def _make_account(
        role_id: RoleId = RoleId.PATIENT,
        email_address: Optional[str] = None,
        provider_id=None,
        institution_id: Optional[str] = None,
        **kwargs,
    ) -> Account:
        account = Account(
            institution_id=institution_id or institution.institution_id,
            role_id=role_id,
            account_source_id=AccountSourceId.EMAIL_PASSWORD if email_address else AccountSourceId.ANONYMOUS,
            email_address=email_address,
            provider_id=provider_id,
            **kwargs,
        )
        session.add(account)
        session.commit()
        session.refresh(account)
        return account

    return _make_account


@pytest.fixture(name="patient")
def patient_fixture(make_account) -> Account:
    return make_account(email_address="patient@example.com", first_name="Pat", last_name="Patient")


@pytest.fixture(name="administrator")
def administrator_fixture(make_account) -> Account:
    return make_account(RoleId.ADMINISTRATOR, email_address="admin@cobalt.example.com", first_name="Ada")


@pytest.fixture(name="provider")
def provider_fixture(session: Session, institution: Institution) -> Provider:
    provider = Provider(
        institution_id=institution.institution_id,
        name="Dr. Jane Smith",
        title="Psychologist",
        email_address="jane.smith@cobalt.example.com",
        time_zone=TEST_TIME_ZONE,
        videoconference_url="https://video.example.com/jsmith",
    )
    session.add(provider)
    session.commit()
    session.refresh(provider)
    return provider


@pytest.fixture(name="provider_account")
def provider_account_fixture(make_account, provider: Provider) -> Account:
    return make_account(
        RoleId.PROVIDER, email_address="jane.smith@cobalt.example.com", provider_id=provider.provider_id
    )


@pytest.fixture(name="appointment_type")
def appointment_type_fixture(session: Session, provider: Provider) -> AppointmentType:
    appointment_type = AppointmentType(
        provider_id=provider.provider_id,
        name="Initial Consult",
        duration_in_minutes=30,
        visit_type_id=VisitTypeId.INITIAL,
    )
    session.add(appointment_type)
    session.commit()
    session.refresh(appointment_type)
    return appointment_type


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    def _auth_headers(account: Account) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(account.account_id)}"}

    return _auth_headers


@pytest.fixture(name="make_assessment")
def make_assessment_fixture(session: Session):
    """Build an assessment from ``[(question_text, [(answer_text, value), ...]), ...]``.

    An answer may carry a third element, ``True``, to flag it as a crisis answer.
    """

    def _make_assessment(
        assessment_type_id: AssessmentTypeId,
        questions,
        next_assessment: Optional[Assessment] = None,
        minimum_eligibility_score: int = 0,
    ) -> Assessment:
        assessment = Assessment(
            assessment_type_id=assessment_type_id,
            next_assessment_id=next_assessment.assessment_id if next_assessment else None,
            minimum_eligibility_score=minimum_eligibility_score,
        )
        session.add(assessment)
        session.commit()

        for question_order, (question_text, answers) in enumerate(questions, start=1):
            question = Question(
                assessment_id=assessment.assessment_id, question_text=question_text, display_order=question_order
            )
            session.add(question)
            session.commit()
            for answer_order, answer in enumerate(answers, start=1):
                answer_text, answer_value = answer[0], answer[1]
                session.add(
                    Answer(
                        question_id=question.question_id,
                        answer_text=answer_text,
                        answer_value=answer_value,
                        display_order=answer_order,
                        crisis=len(answer) > 2 and answer[2],
                    )
                )
            session.commit()

        session.refresh(assessment)
        return assessment

    return _make_assessment
