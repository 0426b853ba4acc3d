"""Read-only reporting over the hierarchy store"""

from datetime import date
from typing import Optional, Union

from loan_tracker.domain.aggregation import build_client_report, build_dashboard, build_period_report
from loan_tracker.domain.models import ClientReport, DashboardSnapshot, PeriodReport
from loan_tracker.infrastructure.store import HierarchyStore
from loan_tracker.utils.date_utils import parse_calendar_date


class ReportingService:
    """Dashboard, period and per-client figures; never mutates the store"""

    def __init__(self, store: HierarchyStore):
        self.store = store

    def dashboard(self, owner_id: str, today: Optional[date] = None) -> DashboardSnapshot:
        return build_dashboard(self.store.load_hierarchy(owner_id), today or date.today())

    def period_report(
        self,
        owner_id: str,
        start_date: Union[str, date],
        end_date: Union[str, date],
    ) -> PeriodReport:
        """Principal disbursed and payments received within [start_date, end_date]"""
        start = parse_calendar_date(start_date, "start_date")
        end = parse_calendar_date(end_date, "end_date")

        loans = self.store.range_query_loans(owner_id, start, end)
        payments = self.store.range_query_payments(owner_id, start, end)
        return build_period_report(loans, payments, start, end)

    def client_report(self, owner_id: str, client_id: str) -> ClientReport:
        """Lifetime totals; raises NotFoundError for an unknown client"""
        self.store.get_client(owner_id, client_id)
        return build_client_report(client_id, self.store.list_loans(owner_id, client_id))
