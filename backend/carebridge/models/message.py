"""Outbound message log and the vendor callbacks recorded against it."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

from carebridge.utils.dates import utc_now


class MessageTypeId(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class MessageVendorId(str, Enum):
    AMAZON_SES = "AMAZON_SES"
    TWILIO = "TWILIO"
    LOG = "LOG"


class MessageStatusId(str, Enum):
    ENQUEUED = "ENQUEUED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    ERROR = "ERROR"


class MessageLog(SQLModel, table=True):
    __tablename__ = "message_log"

    message_id: UUID = Field(default_factory=uuid4, primary_key=True)
    institution_id: str = Field(foreign_key="institution.institution_id", index=True)
    message_type_id: MessageTypeId = Field(sa_column=Column(String, nullable=False))
    message_vendor_id: MessageVendorId = Field(sa_column=Column(String, nullable=False))
    message_status_id: MessageStatusId = Field(
        default=MessageStatusId.ENQUEUED, sa_column=Column(String, nullable=False)
    )
    vendor_assigned_id: Optional[str] = Field(default=None, index=True)
    recipient: str  # email address or E.164 phone number
    subject: Optional[str] = None
    body: str
    template: Optional[str] = None
    error_message: Optional[str] = None
    delivered: Optional[datetime] = None
    delivery_failed: Optional[datetime] = None
    delivery_failed_reason: Optional[str] = None
    complaint_registered: Optional[datetime] = None
    created: datetime = Field(default_factory=utc_now)
    processed: Optional[datetime] = None


class MessageLogEvent(SQLModel, table=True):
    __tablename__ = "message_log_event"

    message_log_event_id: UUID = Field(default_factory=uuid4, primary_key=True)
    message_id: UUID = Field(foreign_key="message_log.message_id", index=True)
    event_type: str  # delivered|delivery_failed|complaint
    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created: datetime = Field(default_factory=utc_now)
