#!/usr/bin/env python3
"""Load a demo institution, the screening questionnaires and an administrator.

Usage: python seed.py [admin-email] [admin-password]
"""

import sys

from sqlmodel import select

from carebridge.config import DEFAULT_INSTITUTION_ID
from carebridge.database import init_db, new_session
from carebridge.models.account import Account, AccountSourceId, RoleId
from carebridge.models.assessment import Answer, Assessment, AssessmentTypeId, Question, QuestionTypeId
from carebridge.models.group_session import GroupSessionCollection
from carebridge.models.institution import CrisisContact, Institution, InstitutionLocation
from carebridge.security import hash_password

FREQUENCY_ANSWERS = ["Not at all", "Several days", "More than half the days", "Nearly every day"]
YES_NO_ANSWERS = [("No", 0), ("Yes", 1)]

PHQ4_QUESTIONS = [
    "Feeling nervous, anxious or on edge",
    "Not being able to stop or control worrying",
    "Little interest or pleasure in doing things",
    "Feeling down, depressed or hopeless",
]

# Items 1-2 of the PHQ-9 are asked by the PHQ-4
PHQ9_QUESTIONS = [
    "Trouble falling or staying asleep, or sleeping too much",
    "Feeling tired or having little energy",
    "Poor appetite or overeating",
    "Feeling bad about yourself, or that you are a failure or have let yourself or your family down",
    "Trouble concentrating on things, such as reading the newspaper or watching television",
    "Moving or speaking so slowly that other people could have noticed, or being so fidgety or restless "
    "that you have been moving around a lot more than usual",
    "Thoughts that you would be better off dead, or of hurting yourself",
]

# Items 1-2 of the GAD-7 are asked by the PHQ-4
GAD7_QUESTIONS = [
    "Worrying too much about different things",
    "Trouble relaxing",
    "Being so restless that it is hard to sit still",
    "Becoming easily annoyed or irritable",
    "Feeling afraid, as if something awful might happen",
]

PCPTSD_QUESTIONS = [
    "Had nightmares about the event(s) or thought about the event(s) when you did not want to",
    "Tried hard not to think about the event(s) or went out of your way to avoid situations that reminded you of the event(s)",
    "Been constantly on guard, watchful, or easily startled",
    "Felt numb or detached from people, activities, or your surroundings",
    "Felt guilty or unable to stop blaming yourself or others for the event(s) or any problems the event(s) may have caused",
]


def add_assessment(session, assessment_type_id, questions, answers, next_assessment=None, base_question=None,
                   crisis_question_index=None, minimum_eligibility_score=0):
    assessment = Assessment(
        assessment_type_id=assessment_type_id,
        base_question=base_question,
        next_assessment_id=next_assessment.assessment_id if next_assessment else None,
        minimum_eligibility_score=minimum_eligibility_score,
    )
    session.add(assessment)
    session.flush()

    for question_order, question_text in enumerate(questions, start=1):
        question = Question(
            assessment_id=assessment.assessment_id,
            question_type_id=QuestionTypeId.QUAD if len(answers) == 4 else QuestionTypeId.RADIO,
            question_text=question_text,
            display_order=question_order,
        )
        session.add(question)
        session.flush()
        for answer_order, (answer_text, answer_value) in enumerate(answers, start=1):
            session.add(
                Answer(
                    question_id=question.question_id,
                    answer_text=answer_text,
                    answer_value=answer_value,
                    display_order=answer_order,
                    crisis=question_order - 1 == crisis_question_index and answer_value > 0,
                )
            )
    return assessment


def seed(admin_email_address: str, admin_password: str):
    init_db()

    with new_session() as session:
        if session.get(Institution, DEFAULT_INSTITUTION_ID) is not None:
            print(f"Institution {DEFAULT_INSTITUTION_ID} already exists, nothing to do")
            return

        session.add(
            Institution(
                institution_id=DEFAULT_INSTITUTION_ID,
                name="CareBridge Demo",
                support_email_address="support@carebridge.local",
            )
        )
        session.flush()
        for order, name in enumerate(["Main Campus", "Downtown Clinic", "Telehealth"]):
            session.add(InstitutionLocation(institution_id=DEFAULT_INSTITUTION_ID, name=name, display_order=order))
        session.add(CrisisContact(institution_id=DEFAULT_INSTITUTION_ID, email_address="crisis@carebridge.local"))
        for order, description in enumerate(["Wellness", "Mindfulness", "Parenting"]):
            session.add(
                GroupSessionCollection(
                    institution_id=DEFAULT_INSTITUTION_ID, description=description, display_order=order
                )
            )

        frequency = [(text, value) for value, text in enumerate(FREQUENCY_ANSWERS)]
        base_question = "Over the last 2 weeks, how often have you been bothered by the following problems?"
        pcptsd = add_assessment(
            session,
            AssessmentTypeId.PCPTSD,
            PCPTSD_QUESTIONS,
            YES_NO_ANSWERS,
            base_question="In the past month, have you...",
        )
        gad7 = add_assessment(session, AssessmentTypeId.GAD7, GAD7_QUESTIONS, frequency, pcptsd, base_question)
        phq9 = add_assessment(
            session,
            AssessmentTypeId.PHQ9,
            PHQ9_QUESTIONS,
            frequency,
            gad7,
            base_question,
            crisis_question_index=len(PHQ9_QUESTIONS) - 1,
        )
        add_assessment(session, AssessmentTypeId.PHQ4, PHQ4_QUESTIONS, frequency, phq9, base_question)
        add_assessment(
            session,
            AssessmentTypeId.INTRO,
            ["What brings you here today?"],
            [("I'd like to talk to someone", 0), ("I'm looking for resources", 0), ("Just browsing", 0)],
        )
        add_assessment(
            session,
            AssessmentTypeId.INTAKE,
            ["Are you currently a patient of this practice?", "Are you 18 years of age or older?"],
            YES_NO_ANSWERS,
            minimum_eligibility_score=1,
        )

        existing = session.exec(select(Account).where(Account.email_address == admin_email_address)).first()
        if existing is None:
            session.add(
                Account(
                    institution_id=DEFAULT_INSTITUTION_ID,
                    role_id=RoleId.ADMINISTRATOR,
                    account_source_id=AccountSourceId.EMAIL_PASSWORD,
                    email_address=admin_email_address,
                    email_verified=True,
                    password=hash_password(admin_password),
                    first_name="Demo",
                    last_name="Administrator",
                )
            )
        session.commit()

    print(f"Seeded institution {DEFAULT_INSTITUTION_ID} with administrator {admin_email_address}")


if __name__ == "__main__":
    email = sys.argv[1] if len(sys.argv) > 1 else "admin@carebridge.local"
    password = sys.argv[2] if len(sys.argv) > 2 else "change-me-please"
    seed(email, password)
