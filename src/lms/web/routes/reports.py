"""Instructor analytics endpoint."""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends

from lms.core.reports import build_report
from lms.db.users_repository import UserRecord
from lms.web.deps import require_admin
from lms.web.schemas import ReportResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("", response_model=ReportResponse)
async def get_report(
    date_range: Literal["7d", "30d", "3m", "6m", "1y", "all"] = "30d",
    actor: UserRecord = Depends(require_admin),
) -> ReportResponse:
    """Totals, performance, grade distribution and time analytics."""
    report = build_report(date_range)
    logger.info("reports.generated", date_range=date_range, submissions=report.total_submissions)
    return ReportResponse.model_validate(report)
