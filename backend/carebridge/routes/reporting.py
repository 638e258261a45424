import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from carebridge.context import CurrentContext
from carebridge.database import get_session
from carebridge.models.audit_log import AuditLogEventId
from carebridge.routes.content import require_administrator
from carebridge.services.acuity_service import AcuitySyncManager, get_acuity_sync_manager
from carebridge.services.audit_log_service import AuditLogService
from carebridge.services.availability_service import AvailabilityService
from carebridge.services.reporting_service import REPORT_TYPE_DESCRIPTIONS, ReportingService, ReportTypeId

logger = logging.getLogger(__name__)

router = APIRouter()


def get_reporting_service(
    session: Session = Depends(get_session),
    acuity_sync_manager: AcuitySyncManager = Depends(get_acuity_sync_manager),
) -> ReportingService:
    return ReportingService(session, AvailabilityService(session, acuity_sync_manager))


@router.get("/reporting/report-types")
def get_report_types(
    context: CurrentContext = Depends(require_administrator),
    reporting_service: ReportingService = Depends(get_reporting_service),
):
    return {
        "report_types": [
            {"report_type_id": report_type_id.value, "description": REPORT_TYPE_DESCRIPTIONS[report_type_id]}
            for report_type_id in reporting_service.find_report_types()
        ]
    }


@router.get("/reporting/run-report")
def run_report(
    report_type_id: ReportTypeId,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    context: CurrentContext = Depends(require_administrator),
    reporting_service: ReportingService = Depends(get_reporting_service),
):
    """Download a report as CSV"""
    report = reporting_service.run_report(
        report_type_id, context.institution_id, start_date, end_date, context.time_zone
    )
    AuditLogService(reporting_service.session).audit(
        AuditLogEventId.REPORT_RUN,
        account_id=context.account_id,
        message=f"Ran {report_type_id.value} report",
        payload={"report_type_id": report_type_id, "start_date": start_date, "end_date": end_date},
    )
    return StreamingResponse(
        iter([report.content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )
