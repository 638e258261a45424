"""Assessment question and recommendation shapes returned to the web client."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from carebridge.models.assessment import AssessmentTypeId, QuestionTypeId
from carebridge.services.assessment_scoring_service import EvidenceScores, Recommendation, RecommendationLevel
from carebridge.services.assessment_service import AssessmentQuestion


class AnswerResponse(BaseModel):
    answer_id: UUID
    answer_text: str
    display_order: int


class QuestionResponse(BaseModel):
    question_id: UUID
    question_type_id: QuestionTypeId
    question_text: str
    answers: List[AnswerResponse]
    selected_answer_ids: List[UUID] = []


class AssessmentQuestionResponse(BaseModel):
    assessment_id: UUID
    assessment_type_id: AssessmentTypeId
    session_id: UUID
    question: QuestionResponse
    previous_question_id: Optional[UUID] = None
    assessment_progress: int
    assessment_progress_total: int


class RecommendationResponse(BaseModel):
    level: RecommendationLevel
    score: int
    account_session_id: UUID
    answers: str


class EvidenceScoresResponse(BaseModel):
    phq4: RecommendationResponse
    phq9: Optional[RecommendationResponse] = None
    gad7: Optional[RecommendationResponse] = None
    pcptsd: Optional[RecommendationResponse] = None
    crisis: bool


def build_assessment_question_response(assessment_question: AssessmentQuestion) -> AssessmentQuestionResponse:
    question = assessment_question.question
    return AssessmentQuestionResponse(
        assessment_id=assessment_question.assessment.assessment_id,
        assessment_type_id=assessment_question.assessment.assessment_type_id,
        session_id=assessment_question.account_session.account_session_id,
        question=QuestionResponse(
            question_id=question.question_id,
            question_type_id=question.question_type_id,
            question_text=question.question_text,
            answers=[
                AnswerResponse(answer_id=a.answer_id, answer_text=a.answer_text, display_order=a.display_order)
                for a in question.answers
            ],
            selected_answer_ids=assessment_question.selected_answer_ids,
        ),
        previous_question_id=assessment_question.previous_question_id,
        assessment_progress=assessment_question.progress,
        assessment_progress_total=assessment_question.progress_total,
    )


def _recommendation(recommendation: Optional[Recommendation]) -> Optional[RecommendationResponse]:
    if recommendation is None:
        return None
    return RecommendationResponse(
        level=recommendation.level,
        score=recommendation.score,
        account_session_id=recommendation.account_session_id,
        answers=recommendation.answers,
    )


def build_evidence_scores_response(scores: EvidenceScores) -> EvidenceScoresResponse:
    return EvidenceScoresResponse(
        phq4=_recommendation(scores.phq4),
        phq9=_recommendation(scores.phq9),
        gad7=_recommendation(scores.gad7),
        pcptsd=_recommendation(scores.pcptsd),
        crisis=scores.crisis,
    )
