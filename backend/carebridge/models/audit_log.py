from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

from carebridge.utils.dates import utc_now


class AuditLogEventId(str, Enum):
    ACCOUNT_LOOKUP = "ACCOUNT_LOOKUP"
    ACCOUNT_CREATE = "ACCOUNT_CREATE"
    APPOINTMENT_LOOKUP = "APPOINTMENT_LOOKUP"
    APPOINTMENT_CREATE = "APPOINTMENT_CREATE"
    APPOINTMENT_RESCHEDULE = "APPOINTMENT_RESCHEDULE"
    APPOINTMENT_CANCEL = "APPOINTMENT_CANCEL"
    ACUITY_WEBHOOK = "ACUITY_WEBHOOK"
    CRISIS_DETECTED = "CRISIS_DETECTED"
    REPORT_RUN = "REPORT_RUN"


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_log"

    audit_log_id: UUID = Field(default_factory=uuid4, primary_key=True)
    audit_log_event_id: AuditLogEventId = Field(sa_column=Column(String, nullable=False, index=True))
    account_id: Optional[UUID] = Field(default=None, foreign_key="account.account_id")
    message: Optional[str] = None
    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created: datetime = Field(default_factory=utc_now)
