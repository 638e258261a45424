from typing import List

from sqlmodel import Session, select

from carebridge.models.account import AccountSourceId
from carebridge.models.institution import CrisisContact, Institution, InstitutionLocation


class InstitutionService:
    def __init__(self, session: Session):
        self.session = session

    def find_account_sources(self, institution: Institution) -> List[dict]:
        """Sign-in options enabled for the institution"""
        sources = []
        if institution.anonymous_enabled:
            sources.append({"account_source_id": AccountSourceId.ANONYMOUS, "description": "Browse anonymously"})
        if institution.email_enabled:
            sources.append({"account_source_id": AccountSourceId.EMAIL_PASSWORD, "description": "Email and password"})
        return sources

    def find_locations(self, institution_id: str) -> List[InstitutionLocation]:
        return list(
            self.session.exec(
                select(InstitutionLocation)
                .where(InstitutionLocation.institution_id == institution_id)
                .order_by(InstitutionLocation.display_order, InstitutionLocation.name)
            ).all()
        )

    def find_active_crisis_contacts(self, institution_id: str) -> List[CrisisContact]:
        return list(
            self.session.exec(
                select(CrisisContact).where(
                    CrisisContact.institution_id == institution_id,
                    CrisisContact.active == True,  # noqa: E712
                )
            ).all()
        )
