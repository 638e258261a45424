import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from carebridge.config import WEB_BASE_URL
from carebridge.context import CurrentContext, get_current_context, require_signed_request
from carebridge.routes.accounts import SUPPORTED_LOCALES, SUPPORTED_TIME_ZONES
from carebridge.services.acuity_service import AcuitySyncManager, get_acuity_sync_manager
from carebridge.utils.background import run_in_background

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/system/health-check", response_class=PlainTextResponse)
def health_check():
    return "OK"


@router.get("/system/configuration")
def get_configuration(context: CurrentContext = Depends(get_current_context)):
    """Settings the web client needs before anyone signs in"""
    institution = context.institution
    return {
        "configuration": {
            "institution_id": institution.institution_id,
            "web_base_url": WEB_BASE_URL,
            "default_locale": institution.locale,
            "default_time_zone": institution.time_zone,
            "supported_locales": SUPPORTED_LOCALES,
            "supported_time_zones": SUPPORTED_TIME_ZONES,
            "email_verification_required": institution.email_verification_required,
            "group_sessions_enabled": institution.group_sessions_enabled,
            "support_email_address": institution.support_email_address,
        }
    }


@router.post("/system/sync-provider-availability", status_code=202)
def sync_provider_availability(
    context: CurrentContext = Depends(require_signed_request),
    acuity_sync_manager: AcuitySyncManager = Depends(get_acuity_sync_manager),
):
    logger.info("Kicking off availability sync for all Acuity providers")
    run_in_background(acuity_sync_manager.sync_all_providers, description="Acuity availability sync for all providers")
    return {"started": True}
