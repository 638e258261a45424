"""Screening questionnaires and the answers accounts give to them."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

from carebridge.utils.dates import utc_now


class AssessmentTypeId(str, Enum):
    INTRO = "INTRO"
    INTAKE = "INTAKE"
    PHQ4 = "PHQ4"
    PHQ9 = "PHQ9"
    GAD7 = "GAD7"
    PCPTSD = "PCPTSD"


class QuestionTypeId(str, Enum):
    QUAD = "QUAD"
    RADIO = "RADIO"
    CHECKBOX = "CHECKBOX"


class Assessment(SQLModel, table=True):
    __tablename__ = "assessment"

    assessment_id: UUID = Field(default_factory=uuid4, primary_key=True)
    assessment_type_id: AssessmentTypeId = Field(sa_column=Column(String, nullable=False, index=True))
    base_question: Optional[str] = None
    # Next questionnaire in a chained screening (PHQ4 -> PHQ9 -> GAD7 -> PCPTSD)
    next_assessment_id: Optional[UUID] = Field(default=None, foreign_key="assessment.assessment_id")
    minimum_eligibility_score: int = Field(default=0)
    created: datetime = Field(default_factory=utc_now)

    questions: List["Question"] = Relationship(
        back_populates="assessment",
        sa_relationship_kwargs={"order_by": "Question.display_order"},
    )


class Question(SQLModel, table=True):
    __tablename__ = "question"

    question_id: UUID = Field(default_factory=uuid4, primary_key=True)
    assessment_id: UUID = Field(foreign_key="assessment.assessment_id", index=True)
    question_type_id: QuestionTypeId = Field(default=QuestionTypeId.QUAD, sa_column=Column(String, nullable=False))
    question_text: str
    display_order: int

    assessment: Optional[Assessment] = Relationship(back_populates="questions")
    answers: List["Answer"] = Relationship(
        back_populates="question",
        sa_relationship_kwargs={"order_by": "Answer.display_order", "foreign_keys": "[Answer.question_id]"},
    )


class Answer(SQLModel, table=True):
    __tablename__ = "answer"

    answer_id: UUID = Field(default_factory=uuid4, primary_key=True)
    question_id: UUID = Field(foreign_key="question.question_id", index=True)
    answer_text: str
    answer_value: int = Field(default=0)
    display_order: int
    crisis: bool = Field(default=False)
    # Branching: jump to this question instead of the next in order
    next_question_id: Optional[UUID] = Field(default=None, foreign_key="question.question_id")

    question: Optional[Question] = Relationship(
        back_populates="answers",
        sa_relationship_kwargs={"foreign_keys": "[Answer.question_id]"},
    )


class AccountSession(SQLModel, table=True):
    """One run of an assessment by an account."""

    __tablename__ = "account_session"

    account_session_id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    assessment_id: UUID = Field(foreign_key="assessment.assessment_id", index=True)
    complete: bool = Field(default=False)
    current_flag: bool = Field(default=True)
    crisis_reported: bool = Field(default=False)
    created: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None


class AccountSessionAnswer(SQLModel, table=True):
    __tablename__ = "account_session_answer"

    account_session_answer_id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_session_id: UUID = Field(foreign_key="account_session.account_session_id", index=True)
    question_id: UUID = Field(foreign_key="question.question_id")
    answer_id: UUID = Field(foreign_key="answer.answer_id")
    created: datetime = Field(default_factory=utc_now)
