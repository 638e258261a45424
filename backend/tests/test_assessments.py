"""Tests for screening questionnaires, intake eligibility and evidence scoring."""

from uuid import UUID

import pytest
from sqlmodel import Session, select

from carebridge.models.assessment import AccountSessionAnswer, AssessmentTypeId, QuestionTypeId
from carebridge.models.audit_log import AuditLog
from carebridge.models.message import MessageLog
from carebridge.services.assessment_scoring_service import (
    RecommendationLevel,
    gad7_level,
    pcptsd_level,
    phq9_level,
)

QUAD = [("0", 0), ("1", 1), ("2", 2), ("3", 3)]


def _answer_id(assessment: dict, text: str) -> str:
    return next(a["answer_id"] for a in assessment["question"]["answers"] if a["answer_text"] == text)


def _submit(client, path: str, headers: dict, assessment: dict, text: str):
    return client.put(
        path,
        json={
            "session_id": assessment["session_id"],
            "question_id": assessment["question"]["question_id"],
            "answer_ids": [_answer_id(assessment, text)],
        },
        headers=headers,
    )


def _walk(client, path: str, headers: dict, texts, params=None) -> dict:
    """Answer questions in order, returning the final PUT body."""
    assessment = client.get(path, params=params, headers=headers).json()["assessment"]
    body = {}
    for text in texts:
        response = _submit(client, path, headers, assessment, text)
        assert response.status_code == 200, response.text
        body = response.json()
        assessment = body.get("assessment")
    return body


@pytest.fixture(name="evidence_chain")
def evidence_chain_fixture(make_assessment):
    pcptsd = make_assessment(AssessmentTypeId.PCPTSD, [("Nightmares?", [("0", 0), ("1", 1)])])
    gad7 = make_assessment(AssessmentTypeId.GAD7, [("Worrying too much?", QUAD)], next_assessment=pcptsd)
    phq9 = make_assessment(
        AssessmentTypeId.PHQ9,
        [
            ("Trouble sleeping?", QUAD),
            ("Thoughts of self-harm?", [("0", 0), ("1", 1), ("2", 2), ("3", 3, True)]),
        ],
        next_assessment=gad7,
    )
    return make_assessment(
        AssessmentTypeId.PHQ4,
        [
            ("Feeling nervous?", QUAD),
            ("Not able to stop worrying?", QUAD),
            ("Little interest in doing things?", QUAD),
            ("Feeling down?", QUAD),
        ],
        next_assessment=phq9,
    )


# ---------------------------------------------------------------------------
# Scoring levels
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "score,level",
    [
        (0, RecommendationLevel.PEER_COACH),
        (4, RecommendationLevel.PEER_COACH),
        (5, RecommendationLevel.COACH),
        (10, RecommendationLevel.CLINICIAN),
        (19, RecommendationLevel.CLINICIAN),
        (20, RecommendationLevel.PSYCHIATRIST),
    ],
)
def test_phq9_level(score, level):
    assert phq9_level(score) == level


@pytest.mark.parametrize(
    "score,level",
    [
        (4, RecommendationLevel.PEER_COACH),
        (5, RecommendationLevel.COACH_CLINICIAN),
        (12, RecommendationLevel.CLINICIAN),
        (21, RecommendationLevel.PSYCHIATRIST),
    ],
)
def test_gad7_level(score, level):
    assert gad7_level(score) == level


def test_pcptsd_level():
    assert pcptsd_level(2) == RecommendationLevel.COACH_CLINICIAN
    assert pcptsd_level(3) == RecommendationLevel.CLINICIAN_PSYCHIATRIST


# ---------------------------------------------------------------------------
# Question navigation
# ---------------------------------------------------------------------------


class TestIntroAssessment:
    def test_first_question(self, client, patient, auth_headers, make_assessment):
        make_assessment(AssessmentTypeId.INTRO, [("How are you?", [("Good", 0), ("Bad", 1)]), ("Why?", QUAD)])
        response = client.get("/api/assessment/intro", headers=auth_headers(patient))
        assert response.status_code == 200
        assessment = response.json()["assessment"]
        assert assessment["assessment_type_id"] == "INTRO"
        assert assessment["question"]["question_text"] == "How are you?"
        assert [a["answer_text"] for a in assessment["question"]["answers"]] == ["Good", "Bad"]
        assert assessment["previous_question_id"] is None
        assert assessment["assessment_progress"] == 1
        assert assessment["assessment_progress_total"] == 2

    def test_not_configured(self, client, patient, auth_headers):
        response = client.get("/api/assessment/intro", headers=auth_headers(patient))
        assert response.status_code == 404

    def test_requires_sign_in(self, client, institution):
        assert client.get("/api/assessment/intro").status_code == 401

    def test_resume_and_go_back(self, client, session: Session, patient, auth_headers, make_assessment):
        make_assessment(AssessmentTypeId.INTRO, [("How are you?", [("Good", 0), ("Bad", 1)]), ("Why?", QUAD)])
        headers = auth_headers(patient)
        first = client.get("/api/assessment/intro", headers=headers).json()["assessment"]

        second = _submit(client, "/api/assessment/intro", headers, first, "Good").json()["assessment"]
        assert second["question"]["question_text"] == "Why?"
        assert second["previous_question_id"] == first["question"]["question_id"]

        resumed = client.get("/api/assessment/intro", headers=headers).json()["assessment"]
        assert resumed["session_id"] == first["session_id"]
        assert resumed["question"]["question_id"] == second["question"]["question_id"]

        back = client.get(
            "/api/assessment/intro",
            params={"question_id": first["question"]["question_id"], "session_id": first["session_id"]},
            headers=headers,
        ).json()["assessment"]
        assert back["question"]["selected_answer_ids"] == [_answer_id(first, "Good")]

        _submit(client, "/api/assessment/intro", headers, back, "Bad")
        answers = session.exec(select(AccountSessionAnswer)).all()
        assert [a.answer_id for a in answers] == [UUID(_answer_id(first, "Bad"))]

    def test_validation(self, client, patient, auth_headers):
        response = client.put("/api/assessment/intro", json={}, headers=auth_headers(patient))
        assert response.status_code == 422
        assert response.json()["field_errors"] == {
            "session_id": "Session is required.",
            "question_id": "Question is required.",
            "answer_ids": "Please select an answer.",
        }

    def test_single_choice_question(self, client, patient, auth_headers, make_assessment):
        make_assessment(AssessmentTypeId.INTRO, [("How are you?", [("Good", 0), ("Bad", 1)])])
        headers = auth_headers(patient)
        first = client.get("/api/assessment/intro", headers=headers).json()["assessment"]
        response = client.put(
            "/api/assessment/intro",
            json={
                "session_id": first["session_id"],
                "question_id": first["question"]["question_id"],
                "answer_ids": [_answer_id(first, "Good"), _answer_id(first, "Bad")],
            },
            headers=headers,
        )
        assert response.json()["field_errors"] == {"answer_ids": "Please select only one answer."}

    def test_checkbox_question_accepts_many(self, client, session: Session, patient, auth_headers, make_assessment):
        assessment = make_assessment(AssessmentTypeId.INTRO, [("Which apply?", [("Sleep", 0), ("Mood", 0)])])
        question = assessment.questions[0]
        question.question_type_id = QuestionTypeId.CHECKBOX
        session.add(question)
        session.commit()

        headers = auth_headers(patient)
        first = client.get("/api/assessment/intro", headers=headers).json()["assessment"]
        response = client.put(
            "/api/assessment/intro",
            json={
                "session_id": first["session_id"],
                "question_id": first["question"]["question_id"],
                "answer_ids": [_answer_id(first, "Sleep"), _answer_id(first, "Mood")],
            },
            headers=headers,
        )
        assert response.status_code == 200
        assert len(session.exec(select(AccountSessionAnswer)).all()) == 2

    def test_completed_session_is_closed(self, client, patient, auth_headers, make_assessment):
        make_assessment(AssessmentTypeId.INTRO, [("How are you?", [("Good", 0), ("Bad", 1)])])
        headers = auth_headers(patient)
        first = client.get("/api/assessment/intro", headers=headers).json()["assessment"]
        assert _submit(client, "/api/assessment/intro", headers, first, "Good").json() == {}

        again = _submit(client, "/api/assessment/intro", headers, first, "Bad")
        assert again.status_code == 422
        assert again.json()["message"] == "This assessment has already been completed."


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


class TestIntakeAssessment:
    @pytest.fixture(name="intake_provider")
    def intake_provider_fixture(self, session: Session, provider, make_assessment):
        intake = make_assessment(
            AssessmentTypeId.INTAKE, [("Are you over 18?", [("No", 0), ("Yes", 2)])], minimum_eligibility_score=2
        )
        provider.intake_assessment_id = intake.assessment_id
        session.add(provider)
        session.commit()
        return provider

    @pytest.mark.parametrize("text,allowed", [("Yes", True), ("No", False)])
    def test_booking_allowed(self, client, patient, auth_headers, intake_provider, text, allowed):
        body = _walk(
            client,
            "/api/assessment/intake",
            auth_headers(patient),
            [text],
            params={"provider_id": str(intake_provider.provider_id)},
        )
        assert body == {"assessment": {"booking_allowed": allowed}}

    def test_requires_provider_or_group_session(self, client, patient, auth_headers):
        response = client.get("/api/assessment/intake", headers=auth_headers(patient))
        assert response.status_code == 422
        assert response.json()["message"] == "A provider or group session is required for an intake assessment."

    def test_provider_without_intake(self, client, patient, provider, auth_headers):
        response = client.get(
            "/api/assessment/intake", params={"provider_id": str(provider.provider_id)}, headers=auth_headers(patient)
        )
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Evidence screening
# ---------------------------------------------------------------------------


class TestEvidenceAssessment:
    def test_low_phq4_finishes_early(self, client, session: Session, patient, auth_headers, evidence_chain):
        headers = auth_headers(patient)
        body = _walk(client, "/api/assessment/evidence", headers, ["0", "1", "0", "1"])
        assert body == {}

        response = client.get("/api/assessment/evidence/recommendation", headers=headers)
        assert response.status_code == 200
        recommendation = response.json()["recommendation"]
        assert recommendation["phq4"]["score"] == 2
        assert recommendation["phq4"]["answers"] == "0-1-0-1"
        assert recommendation["phq9"] is None
        assert recommendation["crisis"] is False

    def test_full_screening_with_crisis(self, client, session: Session, patient, auth_headers, evidence_chain):
        headers = auth_headers(patient)
        body = _walk(client, "/api/assessment/evidence", headers, ["3", "3", "3", "3", "3", "3", "3", "1"])
        assert body == {}

        recommendation = client.get("/api/assessment/evidence/recommendation", headers=headers).json()["recommendation"]
        assert recommendation["phq4"]["score"] == 12
        assert recommendation["phq9"] == {
            "level": "CLINICIAN",
            "score": 12,
            "account_session_id": recommendation["phq9"]["account_session_id"],
            "answers": "3-3-3-3",
        }
        assert recommendation["gad7"]["level"] == "COACH_CLINICIAN"
        assert recommendation["gad7"]["score"] == 9
        assert recommendation["pcptsd"]["level"] == "COACH_CLINICIAN"
        assert recommendation["crisis"] is True

        alert = session.exec(select(MessageLog).where(MessageLog.template == "SUICIDE_RISK")).one()
        assert alert.recipient == "crisis@cobalt.example.com"
        assert "Pat Patient" in alert.body
        audit = session.exec(select(AuditLog).where(AuditLog.audit_log_event_id == "CRISIS_DETECTED")).one()
        assert audit.account_id == patient.account_id

    def test_chain_moves_to_next_questionnaire(self, client, patient, auth_headers, evidence_chain):
        headers = auth_headers(patient)
        body = _walk(client, "/api/assessment/evidence", headers, ["2", "2", "2", "2"])
        assert body["assessment"]["assessment_type_id"] == "PHQ9"

        resumed = client.get("/api/assessment/evidence", headers=headers).json()["assessment"]
        assert resumed["assessment_type_id"] == "PHQ9"
        assert resumed["question"]["question_text"] == "Trouble sleeping?"

    def test_no_crisis_sends_no_alert(self, client, session: Session, patient, auth_headers, evidence_chain):
        headers = auth_headers(patient)
        _walk(client, "/api/assessment/evidence", headers, ["3", "3", "3", "3", "0", "2", "0", "0"])
        assert session.exec(select(MessageLog)).all() == []

    def test_recommendation_before_completion(self, client, patient, auth_headers, evidence_chain):
        response = client.get("/api/assessment/evidence/recommendation", headers=auth_headers(patient))
        assert response.status_code == 404
