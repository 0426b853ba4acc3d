"""GET /v1/dashboard and /v1/reports - derived figures, computed on demand"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from loan_tracker.api.dependencies import get_current_account, get_reporting_service, get_request_id
from loan_tracker.api.errors import domain_errors
from loan_tracker.api.v1.schemas import ClientReportResponse, DashboardResponse, PeriodReportResponse
from loan_tracker.domain.models import Account
from loan_tracker.services.reporting import ReportingService
from loan_tracker.utils.date_utils import parse_calendar_date

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    request: Request,
    today: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to the server's current day"),
    account: Account = Depends(get_current_account),
    reporting: ReportingService = Depends(get_reporting_service),
):
    """
    Today's figures across every loan of the account.

    Returns:
        Outstanding active principal, installments due today, payments
        received today, loan counts by status, due-today and overdue lists
    """
    with domain_errors("dashboard", get_request_id(request)):
        day = parse_calendar_date(today, "today") if today else date.today()
        snapshot = reporting.dashboard(account.id, day)
    return DashboardResponse.model_validate(snapshot)


@router.get("/reports/period", response_model=PeriodReportResponse)
def get_period_report(
    request: Request,
    start: str = Query(..., description="First day, YYYY-MM-DD"),
    end: str = Query(..., description="Last day (inclusive), YYYY-MM-DD"),
    account: Account = Depends(get_current_account),
    reporting: ReportingService = Depends(get_reporting_service),
):
    """Principal disbursed vs payments received within the period; net is an approximation"""
    with domain_errors("period report", get_request_id(request)):
        report = reporting.period_report(account.id, start, end)
    return PeriodReportResponse.model_validate(report)


@router.get("/reports/clients/{client_id}", response_model=ClientReportResponse)
def get_client_report(
    client_id: str,
    request: Request,
    account: Account = Depends(get_current_account),
    reporting: ReportingService = Depends(get_reporting_service),
):
    with domain_errors("client report", get_request_id(request)):
        report = reporting.client_report(account.id, client_id)
    return ClientReportResponse.model_validate(report)
