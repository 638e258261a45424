from typing import List, Optional, Union
from uuid import UUID

from sqlmodel import Session, select

from carebridge.models.faq import Faq, FaqTopic


class FaqService:
    def __init__(self, session: Session):
        self.session = session

    def find_faq_topics(self, institution_id: str) -> List[FaqTopic]:
        return list(
            self.session.exec(
                select(FaqTopic).where(FaqTopic.institution_id == institution_id).order_by(FaqTopic.display_order)
            ).all()
        )

    def find_faqs(self, institution_id: str) -> List[Faq]:
        return list(
            self.session.exec(
                select(Faq).where(Faq.institution_id == institution_id).order_by(Faq.display_order, Faq.question)
            ).all()
        )

    def find_faqs_by_topic(self, faq_topic_id: UUID) -> List[Faq]:
        return list(
            self.session.exec(
                select(Faq).where(Faq.faq_topic_id == faq_topic_id).order_by(Faq.display_order)
            ).all()
        )

    def find_faq_topic(self, identifier: Union[str, UUID], institution_id: str) -> Optional[FaqTopic]:
        """Look up by id, or by url name within the institution."""
        try:
            return self.session.get(FaqTopic, UUID(str(identifier)))
        except ValueError:
            return self.session.exec(
                select(FaqTopic).where(
                    FaqTopic.institution_id == institution_id,
                    FaqTopic.url_name == str(identifier).strip(),
                )
            ).first()

    def find_faq(self, identifier: Union[str, UUID], institution_id: str) -> Optional[Faq]:
        """Look up by id, or by url name within the institution."""
        try:
            return self.session.get(Faq, UUID(str(identifier)))
        except ValueError:
            return self.session.exec(
                select(Faq).where(
                    Faq.institution_id == institution_id,
                    Faq.url_name == str(identifier).strip(),
                )
            ).first()
