"""Unit tests for end date and status derivation"""

from datetime import date
from loan_tracker.domain.models import LoanStatus
from loan_tracker.domain.status import compute_end_date, derive_status, is_due_on


def test_compute_end_date_crosses_month_and_year():
    """Test calendar-day arithmetic across boundaries"""
    assert compute_end_date(date(2024, 1, 1), 30) == date(2024, 1, 31)
    assert compute_end_date(date(2024, 1, 20), 20) == date(2024, 2, 9)
    assert compute_end_date(date(2023, 12, 25), 10) == date(2024, 1, 4)
    assert compute_end_date(date(2024, 2, 20), 10) == date(2024, 3, 1)  # Leap year


def test_derive_status_active_within_term():
    status = derive_status(500.0, date(2024, 1, 1), 30, today=date(2024, 1, 31))
    assert status == LoanStatus.ACTIVE


def test_derive_status_overdue_after_end_date():
    status = derive_status(500.0, date(2024, 1, 1), 30, today=date(2024, 2, 1))
    assert status == LoanStatus.OVERDUE


def test_derive_status_settlement_epsilon():
    """Balances within 0.01 of zero (inclusive) are settled"""
    assert derive_status(0.01, date(2024, 1, 1), 30, today=date(2024, 1, 5)) == LoanStatus.SETTLED
    assert derive_status(0.0, date(2024, 1, 1), 30, today=date(2024, 1, 5)) == LoanStatus.SETTLED
    assert derive_status(-25.0, date(2024, 1, 1), 30, today=date(2024, 1, 5)) == LoanStatus.SETTLED
    assert derive_status(0.02, date(2024, 1, 1), 30, today=date(2024, 1, 5)) == LoanStatus.ACTIVE


def test_derive_status_settled_wins_over_overdue():
    """Paid off on or after the due date is settled, never overdue"""
    end = compute_end_date(date(2024, 1, 1), 30)
    assert derive_status(0.0, date(2024, 1, 1), 30, today=end) == LoanStatus.SETTLED
    assert derive_status(0.005, date(2024, 1, 1), 30, today=date(2024, 6, 1)) == LoanStatus.SETTLED


def test_is_due_on_inclusive_range():
    start = date(2024, 1, 10)
    assert is_due_on(date(2024, 1, 10), start, 5) is True
    assert is_due_on(date(2024, 1, 15), start, 5) is True
    assert is_due_on(date(2024, 1, 16), start, 5) is False
    assert is_due_on(date(2024, 1, 9), start, 5) is False
    assert is_due_on(date(2024, 1, 10), None, 5) is False
