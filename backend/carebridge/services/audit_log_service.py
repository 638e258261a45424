import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlmodel import Session

from carebridge.models.audit_log import AuditLog, AuditLogEventId

logger = logging.getLogger(__name__)


class AuditLogService:
    def __init__(self, session: Session):
        self.session = session

    def audit(
        self,
        audit_log_event_id: AuditLogEventId,
        account_id: Optional[UUID] = None,
        message: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        audit_log = AuditLog(
            audit_log_event_id=audit_log_event_id,
            account_id=account_id,
            message=message,
            payload=jsonable_encoder(payload) if payload is not None else None,
        )
        self.session.add(audit_log)
        self.session.commit()
        logger.debug(f"Audit {audit_log_event_id.value} by {account_id}: {message}")
        return audit_log
