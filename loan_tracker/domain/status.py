"""Loan end date and lifecycle status derivation"""

from datetime import date, timedelta
from typing import Optional

from loan_tracker.domain.models import LoanStatus

SETTLEMENT_EPSILON = 0.01


def compute_end_date(start_date: date, term_days: Optional[int]) -> date:
    """Calendar date the loan term ends: start_date + term_days calendar days"""
    if not term_days:
        return start_date
    return start_date + timedelta(days=term_days)


def derive_status(
    remaining_balance: float,
    start_date: date,
    term_days: Optional[int],
    today: date,
    epsilon: float = SETTLEMENT_EPSILON,
) -> LoanStatus:
    """
    Derive a loan's lifecycle status.

    Rules, in order:
    - remaining_balance <= epsilon: settled (absorbs float drift from many small payments)
    - today after the end date: overdue
    - otherwise: active

    Settlement is checked first, so a loan paid off on or after its due date
    is settled, never overdue.
    """
    if remaining_balance <= epsilon:
        return LoanStatus.SETTLED
    if today > compute_end_date(start_date, term_days):
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


def is_due_on(day: date, start_date: Optional[date], term_days: Optional[int]) -> bool:
    """True when day falls within [start_date, end_date] inclusive"""
    if start_date is None:
        return False
    return start_date <= day <= compute_end_date(start_date, term_days)
