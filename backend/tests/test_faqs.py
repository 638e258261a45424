"""Tests for FAQ topics and questions."""

import pytest
from sqlmodel import Session

from carebridge.models.faq import Faq, FaqTopic
from carebridge.models.institution import Institution


@pytest.fixture(name="faq_topic")
def faq_topic_fixture(session: Session, institution) -> FaqTopic:
    faq_topic = FaqTopic(institution_id="COBALT", url_name="getting-started", description="Getting Started")
    session.add(faq_topic)
    session.commit()
    session.refresh(faq_topic)
    return faq_topic


@pytest.fixture(name="make_faq")
def make_faq_fixture(session: Session, faq_topic: FaqTopic):
    def _make_faq(url_name: str, question: str, display_order: int = 0, topic=None, **kwargs) -> Faq:
        topic = topic or faq_topic
        faq = Faq(
            institution_id=topic.institution_id,
            faq_topic_id=topic.faq_topic_id,
            url_name=url_name,
            question=question,
            answer=f"<p>{question}</p>",
            display_order=display_order,
            **kwargs,
        )
        session.add(faq)
        session.commit()
        session.refresh(faq)
        return faq

    return _make_faq


def _other_institution_topic(session: Session) -> FaqTopic:
    session.add(Institution(institution_id="OTHER", name="Other", time_zone="America/Chicago"))
    faq_topic = FaqTopic(institution_id="OTHER", url_name="elsewhere", description="Elsewhere")
    session.add(faq_topic)
    session.commit()
    session.refresh(faq_topic)
    return faq_topic


class TestFaqTopics:
    def test_topics_with_grouped_faqs(self, client, session: Session, patient, auth_headers, faq_topic, make_faq):
        second_topic = FaqTopic(institution_id="COBALT", url_name="privacy", description="Privacy", display_order=1)
        session.add(second_topic)
        session.commit()
        session.refresh(second_topic)
        make_faq("who-sees", "Who sees my answers?", topic=second_topic)
        make_faq("cost", "Does it cost anything?", display_order=2)
        make_faq("what-is", "What is this?", display_order=1)

        response = client.get("/api/faq-topics", headers=auth_headers(patient))
        assert response.status_code == 200
        body = response.json()
        assert [t["url_name"] for t in body["faq_topics"]] == ["getting-started", "privacy"]
        assert [f["url_name"] for f in body["faqs_by_faq_topic_id"][str(faq_topic.faq_topic_id)]] == ["what-is", "cost"]
        assert [f["url_name"] for f in body["faqs_by_faq_topic_id"][str(second_topic.faq_topic_id)]] == ["who-sees"]

    def test_requires_account(self, client, institution):
        assert client.get("/api/faq-topics").status_code == 401


class TestFaqs:
    def test_by_topic_url_name(self, client, patient, auth_headers, make_faq):
        make_faq("cost", "Does it cost anything?", display_order=2)
        make_faq("what-is", "What is this?", display_order=1)

        response = client.get("/api/faqs", params={"faq_topic_id": "getting-started"}, headers=auth_headers(patient))
        assert response.status_code == 200
        assert [f["question"] for f in response.json()["faqs"]] == ["What is this?", "Does it cost anything?"]

    def test_unknown_topic(self, client, patient, auth_headers):
        response = client.get("/api/faqs", params={"faq_topic_id": "missing"}, headers=auth_headers(patient))
        assert response.status_code == 404

    def test_topic_of_other_institution_forbidden(self, client, session: Session, patient, auth_headers):
        other_topic = _other_institution_topic(session)
        response = client.get(
            "/api/faqs", params={"faq_topic_id": str(other_topic.faq_topic_id)}, headers=auth_headers(patient)
        )
        assert response.status_code == 403

    def test_single_faq_by_id_and_url_name(self, client, patient, auth_headers, faq_topic, make_faq):
        faq = make_faq("what-is", "What is this?", short_answer="A wellbeing service.")

        by_id = client.get(f"/api/faqs/{faq.faq_id}", headers=auth_headers(patient)).json()
        by_url_name = client.get("/api/faqs/what-is", headers=auth_headers(patient)).json()

        assert by_id == by_url_name
        assert by_id["faq"]["short_answer"] == "A wellbeing service."
        assert by_id["faq_topic"]["faq_topic_id"] == str(faq_topic.faq_topic_id)

    def test_single_faq_not_found(self, client, patient, auth_headers):
        assert client.get("/api/faqs/missing", headers=auth_headers(patient)).status_code == 404

    def test_single_faq_of_other_institution_forbidden(self, client, session: Session, patient, auth_headers, make_faq):
        faq = make_faq("elsewhere", "Somewhere else?", topic=_other_institution_topic(session))
        assert client.get(f"/api/faqs/{faq.faq_id}", headers=auth_headers(patient)).status_code == 403
