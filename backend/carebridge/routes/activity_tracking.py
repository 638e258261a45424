import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from carebridge.context import CurrentContext, require_account
from carebridge.database import get_session
from carebridge.errors import ValidationException
from carebridge.models.activity_tracking import ActivityActionId, ActivityTypeId
from carebridge.services.activity_tracking_service import ActivityTrackingService

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateActivityTrackingRequest(BaseModel):
    activity_type_id: ActivityTypeId
    activity_action_id: ActivityActionId
    activity_key: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


@router.post("/activity-tracking", status_code=201)
def create_activity_tracking(
    request: CreateActivityTrackingRequest,
    context: CurrentContext = Depends(require_account),
    session: Session = Depends(get_session),
):
    if context.session_tracking_id is None:
        raise ValidationException("A session tracking id is required to track activity.")

    activity = ActivityTrackingService(session).track(
        context,
        request.activity_type_id,
        request.activity_action_id,
        activity_key=request.activity_key,
        data=request.context,
    )
    return {"activity_tracking_id": activity.activity_tracking_id}
