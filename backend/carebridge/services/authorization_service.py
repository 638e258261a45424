"""Who may see or change what.

All checks return booleans; routes turn a ``False`` into an
AuthorizationException.
"""

from typing import Optional

from sqlmodel import Session, select

from carebridge.models.account import Account, RoleId
from carebridge.models.appointment import Appointment, AppointmentType
from carebridge.models.group_session import GroupSession, GroupSessionRequest, GroupSessionStatusId
from carebridge.models.provider import CalendarPermission, CalendarPermissionId, Provider


def _normalize_email(email_address: Optional[str]) -> Optional[str]:
    if not email_address:
        return None
    return email_address.strip().lower() or None


class AuthorizationService:
    def __init__(self, session: Session):
        self.session = session

    def _provider_institution_id(self, provider_id) -> Optional[str]:
        provider = self.session.get(Provider, provider_id)
        return provider.institution_id if provider else None

    def _is_staff_of(self, account: Account, institution_id: Optional[str], *role_ids: RoleId) -> bool:
        return account.role_id in role_ids and account.institution_id == institution_id

    def can_view_account(self, account: Account, target: Account) -> bool:
        if account.account_id == target.account_id:
            return True
        return self._is_staff_of(account, target.institution_id, RoleId.ADMINISTRATOR, RoleId.MHIC)

    def can_view_appointment(self, account: Account, appointment: Appointment) -> bool:
        if appointment.account_id == account.account_id:
            return True
        if appointment.created_by_account_id == account.account_id:
            return True
        return account.provider_id is not None and account.provider_id == appointment.provider_id

    def can_cancel_appointment(self, account: Account, appointment: Appointment) -> bool:
        institution_id = self._provider_institution_id(appointment.provider_id)
        if self._is_staff_of(account, institution_id, RoleId.ADMINISTRATOR, RoleId.MHIC):
            return True
        if account.provider_id is not None and account.provider_id == appointment.provider_id:
            return True
        return appointment.account_id == account.account_id

    def can_update_appointment(self, account: Account, appointment: Appointment) -> bool:
        institution_id = self._provider_institution_id(appointment.provider_id)
        if self._is_staff_of(account, institution_id, RoleId.ADMINISTRATOR, RoleId.MHIC, RoleId.PROVIDER):
            return True
        return appointment.account_id == account.account_id

    def can_book_for_account(self, account: Account, target: Account) -> bool:
        if account.account_id == target.account_id:
            return True
        return self._is_staff_of(account, target.institution_id, RoleId.ADMINISTRATOR, RoleId.MHIC)

    def can_update_appointment_type(self, account: Account, appointment_type: AppointmentType) -> bool:
        return account.provider_id is not None and account.provider_id == appointment_type.provider_id

    def can_delete_appointment_type(self, account: Account, appointment_type: AppointmentType) -> bool:
        return self.can_update_appointment_type(account, appointment_type)

    def can_edit_group_session(self, account: Account, group_session: GroupSession) -> bool:
        if self._is_staff_of(account, group_session.institution_id, RoleId.ADMINISTRATOR):
            return True

        # Submitters and facilitators may edit until the session is approved
        if group_session.group_session_status_id != GroupSessionStatusId.NEW:
            return False
        if account.account_id in (group_session.submitter_account_id, group_session.facilitator_account_id):
            return True
        email_address = _normalize_email(account.email_address)
        return email_address is not None and email_address == _normalize_email(
            group_session.facilitator_email_address
        )

    def can_edit_group_session_status(self, account: Account, group_session: GroupSession) -> bool:
        return self._is_staff_of(account, group_session.institution_id, RoleId.ADMINISTRATOR)

    def can_edit_group_session_request(self, account: Account, group_session_request: GroupSessionRequest) -> bool:
        return self._is_staff_of(account, group_session_request.institution_id, RoleId.ADMINISTRATOR)

    def can_edit_group_session_request_status(
        self, account: Account, group_session_request: GroupSessionRequest
    ) -> bool:
        return self.can_edit_group_session_request(account, group_session_request)

    def _calendar_permission(self, account: Account, provider: Provider) -> Optional[CalendarPermissionId]:
        permission = self.session.exec(
            select(CalendarPermission).where(
                CalendarPermission.account_id == account.account_id,
                CalendarPermission.provider_id == provider.provider_id,
            )
        ).first()
        return permission.calendar_permission_id if permission else None

    def can_view_provider_calendar(self, account: Account, provider: Provider) -> bool:
        if self._is_staff_of(account, provider.institution_id, RoleId.ADMINISTRATOR):
            return True
        if account.provider_id == provider.provider_id:
            return True
        return self._calendar_permission(account, provider) in (CalendarPermissionId.MANAGER, CalendarPermissionId.VIEWER)

    def can_edit_provider_calendar(self, account: Account, provider: Provider) -> bool:
        if self._is_staff_of(account, provider.institution_id, RoleId.ADMINISTRATOR):
            return True
        if account.provider_id == provider.provider_id:
            return True
        return self._calendar_permission(account, provider) == CalendarPermissionId.MANAGER

    def can_administer_institution(self, account: Account, institution_id: str) -> bool:
        return self._is_staff_of(account, institution_id, RoleId.ADMINISTRATOR)
