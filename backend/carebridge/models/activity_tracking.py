from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, SQLModel

from carebridge.utils.dates import utc_now


class ActivityTypeId(str, Enum):
    URL = "URL"
    CONTENT = "CONTENT"
    APPOINTMENT = "APPOINTMENT"


class ActivityActionId(str, Enum):
    VIEW = "VIEW"
    CREATE = "CREATE"
    CANCEL = "CANCEL"
    DOWNLOAD = "DOWNLOAD"


class ActivityTracking(SQLModel, table=True):
    __tablename__ = "activity_tracking"

    activity_tracking_id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID = Field(foreign_key="account.account_id", index=True)
    session_tracking_id: UUID = Field(index=True)
    activity_type_id: ActivityTypeId = Field(sa_column=Column(String, nullable=False))
    activity_action_id: ActivityActionId = Field(sa_column=Column(String, nullable=False))
    activity_key: Optional[str] = None
    context: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created: datetime = Field(default_factory=utc_now)
