"""
Screening questionnaires.

Each assessment kind (intro, intake, evidence) is walked one question at a
time. GET returns the current question of the account's in-progress run,
PUT records answers and returns the following question.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from carebridge.context import CurrentContext, require_account
from carebridge.database import get_session
from carebridge.errors import NotFoundException
from carebridge.models.assessment import AssessmentTypeId
from carebridge.responses.assessment import build_assessment_question_response, build_evidence_scores_response
from carebridge.services.assessment_service import AssessmentService, SubmitAssessmentAnswerRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def get_assessment_service(session: Session = Depends(get_session)) -> AssessmentService:
    return AssessmentService(session)


def _question(assessment_question) -> dict:
    return {"assessment": build_assessment_question_response(assessment_question)}


def _submit(
    assessment_service: AssessmentService,
    context: CurrentContext,
    request: SubmitAssessmentAnswerRequest,
    assessment_type_id: AssessmentTypeId,
) -> dict:
    next_question, account_session = assessment_service.submit_answer(context.account, request)
    if next_question is not None:
        return _question(next_question)
    if assessment_type_id == AssessmentTypeId.INTAKE:
        booking_allowed = assessment_service.scoring_service.is_booking_allowed(account_session)
        logger.info(f"Intake for {context.account_id} finished, booking allowed: {booking_allowed}")
        return {"assessment": {"booking_allowed": booking_allowed}}
    return {}


@router.get("/assessment/intro")
def get_intro_assessment(
    question_id: Optional[UUID] = None,
    session_id: Optional[UUID] = None,
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return _question(
        assessment_service.get_next_question(
            context.account, AssessmentTypeId.INTRO, question_id=question_id, session_id=session_id
        )
    )


@router.put("/assessment/intro")
def submit_intro_assessment(
    request: SubmitAssessmentAnswerRequest,
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return _submit(assessment_service, context, request, AssessmentTypeId.INTRO)


@router.get("/assessment/intake")
def get_intake_assessment(
    provider_id: Optional[UUID] = None,
    group_session_id: Optional[UUID] = None,
    question_id: Optional[UUID] = None,
    session_id: Optional[UUID] = None,
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return _question(
        assessment_service.get_next_question(
            context.account,
            AssessmentTypeId.INTAKE,
            question_id=question_id,
            session_id=session_id,
            provider_id=provider_id,
            group_session_id=group_session_id,
        )
    )


@router.put("/assessment/intake")
def submit_intake_assessment(
    request: SubmitAssessmentAnswerRequest,
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return _submit(assessment_service, context, request, AssessmentTypeId.INTAKE)


@router.get("/assessment/evidence/recommendation")
def get_evidence_recommendation(
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    scores = assessment_service.scoring_service.evidence_scores(context.account_id)
    if scores is None:
        raise NotFoundException("No completed evidence assessment")
    return {"recommendation": build_evidence_scores_response(scores)}


@router.get("/assessment/evidence")
def get_evidence_assessment(
    question_id: Optional[UUID] = None,
    session_id: Optional[UUID] = None,
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return _question(
        assessment_service.get_next_question(
            context.account, AssessmentTypeId.PHQ4, question_id=question_id, session_id=session_id
        )
    )


@router.put("/assessment/evidence")
def submit_evidence_assessment(
    request: SubmitAssessmentAnswerRequest,
    context: CurrentContext = Depends(require_account),
    assessment_service: AssessmentService = Depends(get_assessment_service),
):
    return _submit(assessment_service, context, request, AssessmentTypeId.PHQ4)
