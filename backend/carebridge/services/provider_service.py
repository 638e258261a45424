import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlmodel import Session, or_, select

from carebridge.errors import NotFoundException, ValidationException
from carebridge.models.account import Account
from carebridge.models.provider import CalendarPermission, CalendarPermissionId, Provider

logger = logging.getLogger(__name__)


class ProviderService:
    def __init__(self, session: Session):
        self.session = session

    def find_provider_by_id(self, provider_id: Optional[UUID]) -> Optional[Provider]:
        if provider_id is None:
            return None
        return self.session.get(Provider, provider_id)

    def get_provider(self, provider_id: UUID, institution_id: str) -> Provider:
        provider = self.find_provider_by_id(provider_id)
        if provider is None or provider.institution_id != institution_id:
            raise NotFoundException(f"Provider {provider_id} not found")
        return provider

    def find_providers(
        self,
        institution_id: str,
        search_query: Optional[str] = None,
        provider_ids: Optional[List[UUID]] = None,
    ) -> List[Provider]:
        query = select(Provider).where(
            Provider.institution_id == institution_id,
            Provider.active == True,  # noqa: E712
        )
        if search_query and search_query.strip():
            pattern = f"%{search_query.strip()}%"
            query = query.where(or_(Provider.name.ilike(pattern), Provider.title.ilike(pattern)))
        if provider_ids:
            query = query.where(Provider.provider_id.in_(provider_ids))
        return list(self.session.exec(query.order_by(Provider.name)).all())

    def find_calendar_permissions(self, provider_id: UUID) -> List[CalendarPermission]:
        return list(
            self.session.exec(
                select(CalendarPermission)
                .where(CalendarPermission.provider_id == provider_id)
                .order_by(CalendarPermission.created)
            ).all()
        )

    def set_calendar_permission(
        self, provider: Provider, account: Account, calendar_permission_id: Optional[CalendarPermissionId]
    ) -> Optional[CalendarPermission]:
        """Grant, replace or (with None) revoke an account's access to a provider calendar."""
        if account.institution_id != provider.institution_id:
            raise ValidationException.for_field("account_id", "Account belongs to a different institution.")

        existing = self.session.exec(
            select(CalendarPermission).where(
                CalendarPermission.account_id == account.account_id,
                CalendarPermission.provider_id == provider.provider_id,
            )
        ).first()

        if calendar_permission_id is None:
            if existing is not None:
                self.session.delete(existing)
                self.session.commit()
            return None

        if existing is None:
            existing = CalendarPermission(
                account_id=account.account_id,
                provider_id=provider.provider_id,
                calendar_permission_id=calendar_permission_id,
            )
        else:
            existing.calendar_permission_id = calendar_permission_id
        self.session.add(existing)
        self.session.commit()
        self.session.refresh(existing)
        logger.info(
            f"Calendar permission {calendar_permission_id} on provider {provider.provider_id} "
            f"granted to {account.account_id}"
        )
        return existing


def validate_date_range(start_date: Optional[date], end_date: Optional[date], field: str = "date") -> None:
    if start_date is None or end_date is None:
        raise ValidationException.for_field(field, "Start and end dates are required.")
    if end_date < start_date:
        raise ValidationException.for_field(field, "End date must not be before start date.")
