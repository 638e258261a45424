"""Question-by-question navigation through assessments.

An AccountSession tracks one run of an assessment. Answers are stored per
question so going back and re-answering replaces earlier choices. Chained
assessments (via ``next_assessment_id``) start a new session for the next
questionnaire when the previous one completes.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlmodel import Session, select

from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account
from carebridge.models.assessment import (
    AccountSession,
    AccountSessionAnswer,
    Answer,
    Assessment,
    AssessmentTypeId,
    Question,
    QuestionTypeId,
)
from carebridge.models.group_session import GroupSession
from carebridge.models.provider import Provider
from carebridge.services.assessment_scoring_service import PHQ4_TRIAGE_THRESHOLD, AssessmentScoringService
from carebridge.utils.dates import utc_now

logger = logging.getLogger(__name__)

EVIDENCE_ASSESSMENT_TYPES = (
    AssessmentTypeId.PHQ4,
    AssessmentTypeId.PHQ9,
    AssessmentTypeId.GAD7,
    AssessmentTypeId.PCPTSD,
)


class SubmitAssessmentAnswerRequest(BaseModel):
    session_id: Optional[UUID] = None
    question_id: Optional[UUID] = None
    answer_ids: List[UUID] = []


@dataclass
class AssessmentQuestion:
    assessment: Assessment
    account_session: AccountSession
    question: Question
    selected_answer_ids: List[UUID] = field(default_factory=list)
    previous_question_id: Optional[UUID] = None
    progress: int = 1
    progress_total: int = 1


class AssessmentService:
    def __init__(self, session: Session, scoring_service: Optional[AssessmentScoringService] = None):
        self.session = session
        self.scoring_service = scoring_service or AssessmentScoringService(session)

    def find_assessment_by_type(self, assessment_type_id: AssessmentTypeId) -> Assessment:
        assessment = self.session.exec(
            select(Assessment)
            .where(Assessment.assessment_type_id == assessment_type_id)
            .order_by(Assessment.created.desc())
        ).first()
        if assessment is None:
            raise NotFoundException(f"No {assessment_type_id.value} assessment is configured")
        return assessment

    def find_intake_assessment(self, provider_id: Optional[UUID], group_session_id: Optional[UUID]) -> Assessment:
        assessment_id = None
        if provider_id is not None:
            provider = self.session.get(Provider, provider_id)
            if provider is None:
                raise NotFoundException(f"Provider {provider_id} not found")
            assessment_id = provider.intake_assessment_id
        elif group_session_id is not None:
            group_session = self.session.get(GroupSession, group_session_id)
            if group_session is None:
                raise NotFoundException(f"Group session {group_session_id} not found")
            assessment_id = group_session.assessment_id
        else:
            raise ValidationException("A provider or group session is required for an intake assessment.")

        assessment = self.session.get(Assessment, assessment_id) if assessment_id else None
        if assessment is None:
            raise NotFoundException("There is no intake assessment for this booking.")
        return assessment

    def _get_account_session(self, account: Account, session_id: UUID) -> AccountSession:
        account_session = self.session.get(AccountSession, session_id)
        if account_session is None or account_session.account_id != account.account_id:
            raise NotFoundException(f"Assessment session {session_id} not found")
        return account_session

    def _assessment_chain(self, first: Assessment) -> List[Assessment]:
        chain = [first]
        seen = {first.assessment_id}
        current = first
        while current.next_assessment_id and current.next_assessment_id not in seen:
            current = self.session.get(Assessment, current.next_assessment_id)
            if current is None:
                break
            chain.append(current)
            seen.add(current.assessment_id)
        return chain

    def _find_in_progress_session(self, account: Account, assessments: List[Assessment]) -> Optional[AccountSession]:
        assessment_ids = [a.assessment_id for a in assessments]
        return self.session.exec(
            select(AccountSession)
            .where(
                AccountSession.account_id == account.account_id,
                AccountSession.assessment_id.in_(assessment_ids),
                AccountSession.current_flag == True,  # noqa: E712
                AccountSession.complete == False,  # noqa: E712
            )
            .order_by(AccountSession.created.desc())
        ).first()

    def _start_session(self, account: Account, assessment: Assessment) -> AccountSession:
        previous_sessions = self.session.exec(
            select(AccountSession).where(
                AccountSession.account_id == account.account_id,
                AccountSession.assessment_id == assessment.assessment_id,
                AccountSession.current_flag == True,  # noqa: E712
            )
        ).all()
        for previous in previous_sessions:
            previous.current_flag = False
            self.session.add(previous)

        account_session = AccountSession(account_id=account.account_id, assessment_id=assessment.assessment_id)
        self.session.add(account_session)
        self.session.commit()
        self.session.refresh(account_session)
        return account_session

    def _answers_by_question(self, account_session: AccountSession) -> dict:
        answers = self.session.exec(
            select(AccountSessionAnswer).where(
                AccountSessionAnswer.account_session_id == account_session.account_session_id
            )
        ).all()
        by_question = {}
        for answer in answers:
            by_question.setdefault(answer.question_id, []).append(answer.answer_id)
        return by_question

    def _build_question(
        self, assessment: Assessment, account_session: AccountSession, question: Question
    ) -> AssessmentQuestion:
        questions = assessment.questions
        index = next(i for i, q in enumerate(questions) if q.question_id == question.question_id)
        selected = self._answers_by_question(account_session).get(question.question_id, [])
        return AssessmentQuestion(
            assessment=assessment,
            account_session=account_session,
            question=question,
            selected_answer_ids=selected,
            previous_question_id=questions[index - 1].question_id if index > 0 else None,
            progress=index + 1,
            progress_total=len(questions),
        )

    def _first_unanswered_question(self, assessment: Assessment, account_session: AccountSession) -> Question:
        if not assessment.questions:
            raise NotFoundException(f"Assessment {assessment.assessment_id} has no questions")
        answered = self._answers_by_question(account_session)
        for question in assessment.questions:
            if question.question_id not in answered:
                return question
        return assessment.questions[-1]

    def get_next_question(
        self,
        account: Account,
        assessment_type_id: AssessmentTypeId,
        question_id: Optional[UUID] = None,
        session_id: Optional[UUID] = None,
        provider_id: Optional[UUID] = None,
        group_session_id: Optional[UUID] = None,
    ) -> AssessmentQuestion:
        if session_id is not None:
            account_session = self._get_account_session(account, session_id)
            assessment = self.session.get(Assessment, account_session.assessment_id)
        else:
            if assessment_type_id == AssessmentTypeId.INTAKE:
                first = self.find_intake_assessment(provider_id, group_session_id)
            else:
                first = self.find_assessment_by_type(assessment_type_id)

            account_session = self._find_in_progress_session(account, self._assessment_chain(first))
            if account_session is None:
                assessment = first
                account_session = self._start_session(account, assessment)
            else:
                assessment = self.session.get(Assessment, account_session.assessment_id)

        if question_id is not None:
            question = self.session.get(Question, question_id)
            if question is None or question.assessment_id != assessment.assessment_id:
                raise NotFoundException(f"Question {question_id} not found")
        else:
            question = self._first_unanswered_question(assessment, account_session)

        return self._build_question(assessment, account_session, question)

    def submit_answer(
        self, account: Account, request: SubmitAssessmentAnswerRequest
    ) -> Tuple[Optional[AssessmentQuestion], AccountSession]:
        """
        Record answers for one question.

        Returns the next question to show (or None when the run is finished)
        along with the session the answers were recorded against.
        """
        field_errors = {}
        if request.session_id is None:
            field_errors["session_id"] = "Session is required."
        if request.question_id is None:
            field_errors["question_id"] = "Question is required."
        if not request.answer_ids:
            field_errors["answer_ids"] = "Please select an answer."
        if field_errors:
            raise ValidationException(field_errors=field_errors)

        account_session = self._get_account_session(account, request.session_id)
        if account_session.complete:
            raise ValidationException("This assessment has already been completed.")

        assessment = self.session.get(Assessment, account_session.assessment_id)
        question = self.session.get(Question, request.question_id)
        if question is None or question.assessment_id != assessment.assessment_id:
            raise ValidationException.for_field("question_id", "Question is invalid.")

        answers_by_id = {a.answer_id: a for a in question.answers}
        if any(answer_id not in answers_by_id for answer_id in request.answer_ids):
            raise ValidationException.for_field("answer_ids", "Answer is invalid.")
        if question.question_type_id != QuestionTypeId.CHECKBOX and len(set(request.answer_ids)) > 1:
            raise ValidationException.for_field("answer_ids", "Please select only one answer.")

        existing = self.session.exec(
            select(AccountSessionAnswer).where(
                AccountSessionAnswer.account_session_id == account_session.account_session_id,
                AccountSessionAnswer.question_id == question.question_id,
            )
        ).all()
        for previous in existing:
            self.session.delete(previous)

        selected: List[Answer] = []
        for answer_id in dict.fromkeys(request.answer_ids):
            selected.append(answers_by_id[answer_id])
            self.session.add(
                AccountSessionAnswer(
                    account_session_id=account_session.account_session_id,
                    question_id=question.question_id,
                    answer_id=answer_id,
                )
            )
        if any(a.crisis for a in selected):
            account_session.crisis_reported = True
            self.session.add(account_session)
        self.session.commit()

        next_question = self._next_question(assessment, question, selected)
        if next_question is not None:
            return self._build_question(assessment, account_session, next_question), account_session

        return self._complete_session(account, assessment, account_session), account_session

    def _next_question(self, assessment: Assessment, question: Question, selected: List[Answer]) -> Optional[Question]:
        for answer in selected:
            if answer.next_question_id is not None:
                return self.session.get(Question, answer.next_question_id)
        for candidate in assessment.questions:
            if candidate.display_order > question.display_order:
                return candidate
        return None

    def _complete_session(
        self, account: Account, assessment: Assessment, account_session: AccountSession
    ) -> Optional[AssessmentQuestion]:
        account_session.complete = True
        account_session.completed_at = utc_now()
        self.session.add(account_session)
        self.session.commit()
        logger.info(f"Account {account.account_id} completed {assessment.assessment_type_id} assessment")

        if assessment.assessment_type_id == AssessmentTypeId.PHQ4:
            phq4_score = sum(a.answer_value for a in self.scoring_service.find_answers_for_session(account_session))
            if phq4_score <= PHQ4_TRIAGE_THRESHOLD:
                self.scoring_service.finish_evidence_assessment(account)
                return None

        if assessment.next_assessment_id is not None:
            next_assessment = self.session.get(Assessment, assessment.next_assessment_id)
            if next_assessment is not None and next_assessment.questions:
                next_session = self._start_session(account, next_assessment)
                return self._build_question(next_assessment, next_session, next_assessment.questions[0])

        if assessment.assessment_type_id in EVIDENCE_ASSESSMENT_TYPES:
            self.scoring_service.finish_evidence_assessment(account)
        return None
