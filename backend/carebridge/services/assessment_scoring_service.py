"""
Scoring for the evidence screening (PHQ-4, PHQ-9, GAD-7, PC-PTSD) and
intake eligibility.

PHQ-4 questions 1-2 are the GAD-2 and questions 3-4 the PHQ-2, so those
answers are folded into the GAD-7 and PHQ-9 totals respectively.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
from uuid import UUID

from sqlmodel import Session, select

from carebridge.models.account import Account
from carebridge.models.assessment import AccountSession, AccountSessionAnswer, Answer, Assessment, AssessmentTypeId, Question
from carebridge.models.audit_log import AuditLogEventId
from carebridge.services.audit_log_service import AuditLogService
from carebridge.services.institution_service import InstitutionService
from carebridge.services.message_service import MessageService

logger = logging.getLogger(__name__)

PHQ4_TRIAGE_THRESHOLD = 2


class RecommendationLevel(str, Enum):
    PEER_COACH = "PEER_COACH"
    COACH = "COACH"
    COACH_CLINICIAN = "COACH_CLINICIAN"
    CLINICIAN = "CLINICIAN"
    CLINICIAN_PSYCHIATRIST = "CLINICIAN_PSYCHIATRIST"
    PSYCHIATRIST = "PSYCHIATRIST"


@dataclass
class Recommendation:
    level: RecommendationLevel
    score: int
    account_session_id: UUID
    answers: str


@dataclass
class EvidenceScores:
    phq4: Recommendation
    phq9: Optional[Recommendation] = None
    gad7: Optional[Recommendation] = None
    pcptsd: Optional[Recommendation] = None
    crisis: bool = False


def answers_string(answers: List[Answer]) -> str:
    return "-".join(str(a.answer_value) for a in answers)


def phq9_level(score: int) -> RecommendationLevel:
    if score < 5:
        return RecommendationLevel.PEER_COACH
    if score < 10:
        return RecommendationLevel.COACH
    if score < 20:
        return RecommendationLevel.CLINICIAN
    return RecommendationLevel.PSYCHIATRIST


def gad7_level(score: int) -> RecommendationLevel:
    if score < 5:
        return RecommendationLevel.PEER_COACH
    if score < 10:
        return RecommendationLevel.COACH_CLINICIAN
    if score < 20:
        return RecommendationLevel.CLINICIAN
    return RecommendationLevel.PSYCHIATRIST


def pcptsd_level(score: int) -> RecommendationLevel:
    if score < 3:
        return RecommendationLevel.COACH_CLINICIAN
    return RecommendationLevel.CLINICIAN_PSYCHIATRIST


class AssessmentScoringService:
    def __init__(self, session: Session, message_service: Optional[MessageService] = None):
        self.session = session
        self.message_service = message_service or MessageService(session)

    def find_completed_session(self, account_id: UUID, assessment_type_id: AssessmentTypeId) -> Optional[AccountSession]:
        """Most recent completed run of an assessment type."""
        return self.session.exec(
            select(AccountSession)
            .join(Assessment, Assessment.assessment_id == AccountSession.assessment_id)
            .where(
                AccountSession.account_id == account_id,
                AccountSession.complete == True,  # noqa: E712
                Assessment.assessment_type_id == assessment_type_id,
            )
            .order_by(AccountSession.completed_at.desc(), AccountSession.created.desc())
        ).first()

    def find_answers_for_session(self, account_session: AccountSession) -> List[Answer]:
        """Selected answers in question order."""
        return list(
            self.session.exec(
                select(Answer)
                .join(AccountSessionAnswer, AccountSessionAnswer.answer_id == Answer.answer_id)
                .join(Question, Question.question_id == AccountSessionAnswer.question_id)
                .where(AccountSessionAnswer.account_session_id == account_session.account_session_id)
                .order_by(Question.display_order, Answer.display_order)
            ).all()
        )

    def is_booking_allowed(self, account_session: AccountSession) -> bool:
        assessment = self.session.get(Assessment, account_session.assessment_id)
        score = sum(a.answer_value for a in self.find_answers_for_session(account_session))
        minimum = assessment.minimum_eligibility_score if assessment else 0
        return score >= minimum

    def evidence_scores(self, account_id: UUID) -> Optional[EvidenceScores]:
        """Scores for the most recent completed evidence screening, or None if incomplete."""
        phq4_session = self.find_completed_session(account_id, AssessmentTypeId.PHQ4)
        if phq4_session is None:
            return None

        phq4_answers = self.find_answers_for_session(phq4_session)
        phq4_score = sum(a.answer_value for a in phq4_answers)
        phq4 = Recommendation(
            RecommendationLevel.PEER_COACH, phq4_score, phq4_session.account_session_id, answers_string(phq4_answers)
        )
        if phq4_score <= PHQ4_TRIAGE_THRESHOLD:
            return EvidenceScores(phq4=phq4)

        phq9_session = self.find_completed_session(account_id, AssessmentTypeId.PHQ9)
        if phq9_session is None:
            return None
        phq9_answers = phq4_answers[2:4] + self.find_answers_for_session(phq9_session)
        phq9_score = sum(a.answer_value for a in phq9_answers)
        phq9 = Recommendation(
            phq9_level(phq9_score), phq9_score, phq9_session.account_session_id, answers_string(phq9_answers)
        )
        crisis = any(a.crisis for a in phq9_answers)

        gad7_session = self.find_completed_session(account_id, AssessmentTypeId.GAD7)
        if gad7_session is None:
            return None
        gad7_answers = phq4_answers[0:2] + self.find_answers_for_session(gad7_session)
        gad7_score = sum(a.answer_value for a in gad7_answers)
        gad7 = Recommendation(
            gad7_level(gad7_score), gad7_score, gad7_session.account_session_id, answers_string(gad7_answers)
        )

        pcptsd_session = self.find_completed_session(account_id, AssessmentTypeId.PCPTSD)
        if pcptsd_session is None:
            return None
        pcptsd_answers = self.find_answers_for_session(pcptsd_session)
        pcptsd_score = sum(a.answer_value for a in pcptsd_answers)
        pcptsd = Recommendation(
            pcptsd_level(pcptsd_score), pcptsd_score, pcptsd_session.account_session_id, answers_string(pcptsd_answers)
        )

        return EvidenceScores(phq4=phq4, phq9=phq9, gad7=gad7, pcptsd=pcptsd, crisis=crisis)

    def finish_evidence_assessment(self, account: Account) -> Optional[EvidenceScores]:
        scores = self.evidence_scores(account.account_id)
        if scores is None:
            logger.warning(f"Evidence assessment for {account.account_id} finished but could not be scored")
            return None
        if scores.crisis:
            self._report_crisis(account, scores)
        return scores

    def _report_crisis(self, account: Account, scores: EvidenceScores) -> None:
        AuditLogService(self.session).audit(
            AuditLogEventId.CRISIS_DETECTED,
            account_id=account.account_id,
            message="Evidence screening indicated crisis",
            payload={"phq9_answers": scores.phq9.answers if scores.phq9 else None},
        )

        crisis_contacts = InstitutionService(self.session).find_active_crisis_contacts(account.institution_id)
        if not crisis_contacts:
            logger.error(
                f"Crisis alert email needed, but there are no active crisis contacts for institution {account.institution_id}"
            )
            return

        name = account.full_name or "Anonymous User"
        email_address = account.email_address or "[no email address]"
        phone_number = account.phone_number or "[no phone number]"
        answers = " and ".join(
            r.answers for r in (scores.phq4, scores.phq9, scores.gad7, scores.pcptsd) if r is not None
        )
        body = (
            f"Q9 alert for {name} at {phone_number} with {email_address} and S3: {answers}.\n"
            f"Account - {account.account_id} at {account.institution_id}"
        )
        for crisis_contact in crisis_contacts:
            self.message_service.enqueue_email(
                account.institution_id,
                crisis_contact.email_address,
                "Crisis alert",
                body,
                template="SUICIDE_RISK",
            )
