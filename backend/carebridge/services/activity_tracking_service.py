import logging
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from sqlmodel import Session

from carebridge.context import CurrentContext
from carebridge.models.activity_tracking import ActivityActionId, ActivityTracking, ActivityTypeId

logger = logging.getLogger(__name__)


class ActivityTrackingService:
    def __init__(self, session: Session):
        self.session = session

    def track(
        self,
        context: CurrentContext,
        activity_type_id: ActivityTypeId,
        activity_action_id: ActivityActionId,
        activity_key: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityTracking]:
        """Record an activity; no-op without a signed-in account and session tracking id."""
        if context.account is None or context.session_tracking_id is None:
            return None

        activity = ActivityTracking(
            account_id=context.account.account_id,
            session_tracking_id=context.session_tracking_id,
            activity_type_id=activity_type_id,
            activity_action_id=activity_action_id,
            activity_key=activity_key,
            context=jsonable_encoder(data) if data is not None else None,
        )
        self.session.add(activity)
        self.session.commit()
        self.session.refresh(activity)
        return activity
