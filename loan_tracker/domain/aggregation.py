"""Aggregation engine - dashboard and report figures scanned from the hierarchy"""

from datetime import date
from typing import Iterable, Optional

from loan_tracker.domain.models import (
    ClientReport,
    DashboardSnapshot,
    DueTodayEntry,
    Hierarchy,
    Loan,
    LoanStatus,
    OverdueEntry,
    Payment,
    PeriodReport,
    loan_key,
)
from loan_tracker.domain.status import is_due_on
from loan_tracker.utils.date_utils import is_within


def _amount(value: Optional[float]) -> float:
    """Missing numeric fields count as zero"""
    return value or 0.0


def build_dashboard(hierarchy: Hierarchy, today: date) -> DashboardSnapshot:
    """
    Scan every loan of every client for today's dashboard.

    For each loan:
    - count it under its status
    - active: add principal to the outstanding total; if today is within
      [start_date, end_date] add the daily installment to due-today
    - overdue with a positive balance: list it
    - sum its payments dated today into received-today

    Entries keep scan order (client order, then loan order); nothing is re-sorted.
    """
    snapshot = DashboardSnapshot()
    counts = snapshot.counts_by_status

    for client in hierarchy.clients:
        for loan in hierarchy.loans.get(client.id, []):
            if loan.status == LoanStatus.ACTIVE:
                counts.active += 1
            elif loan.status == LoanStatus.OVERDUE:
                counts.overdue += 1
            elif loan.status == LoanStatus.SETTLED:
                counts.settled += 1

            if loan.status == LoanStatus.ACTIVE:
                snapshot.active_principal_outstanding += _amount(loan.principal)

                if is_due_on(today, loan.start_date, loan.term_days):
                    installment = _amount(loan.daily_installment)
                    snapshot.due_today_total += installment
                    snapshot.due_today.append(
                        DueTodayEntry(
                            client_id=client.id,
                            client_name=client.name,
                            loan_id=loan.id,
                            installment_amount=installment,
                            start_date=loan.start_date,
                            total_amount=_amount(loan.total_amount),
                        )
                    )

            if loan.status == LoanStatus.OVERDUE and _amount(loan.remaining_balance) > 0:
                snapshot.overdue_list.append(
                    OverdueEntry(
                        client_id=client.id,
                        client_name=client.name,
                        loan_id=loan.id,
                        remaining_balance=_amount(loan.remaining_balance),
                        start_date=loan.start_date,
                    )
                )

            for payment in hierarchy.payments.get(loan_key(client.id, loan.id), []):
                if payment.payment_date == today:
                    snapshot.received_today_total += _amount(payment.amount)

    return snapshot


def build_period_report(
    loans: Iterable[Loan],
    payments: Iterable[Payment],
    start_date: date,
    end_date: date,
) -> PeriodReport:
    """
    Principal disbursed vs payments received within [start_date, end_date].

    net = received - disbursed. This is an approximation, not profit: money
    moved outside the window for loans spanning it is ignored.
    """
    disbursed = sum(
        (_amount(loan.principal) for loan in loans if is_within(loan.start_date, start_date, end_date)),
        0.0,
    )
    received = sum(
        (_amount(p.amount) for p in payments if is_within(p.payment_date, start_date, end_date)),
        0.0,
    )

    return PeriodReport(
        start_date=start_date,
        end_date=end_date,
        principal_disbursed=disbursed,
        amount_received=received,
        net=received - disbursed,
    )


def build_client_report(client_id: str, loans: Iterable[Loan]) -> ClientReport:
    """Lifetime totals for one client from the loans' materialized summaries"""
    disbursed = 0.0
    received = 0.0
    balance = 0.0
    for loan in loans:
        disbursed += _amount(loan.principal)
        received += _amount(loan.total_paid)
        balance += _amount(loan.remaining_balance)

    return ClientReport(
        client_id=client_id,
        lifetime_disbursed=disbursed,
        lifetime_received=received,
        current_balance=balance,
    )
