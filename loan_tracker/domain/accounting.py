"""Loan accounting - total amount, edit locking and payment application"""

import math
from datetime import date
from typing import Any, Dict, Optional, Tuple, Union

from loan_tracker.domain.exceptions import ValidationError
from loan_tracker.domain.models import (
    InterestMode,
    Loan,
    LoanChanges,
    LoanQuote,
    LoanStatus,
    LoanTerms,
    PaymentOutcome,
)
from loan_tracker.domain.status import SETTLEMENT_EPSILON, derive_status
from loan_tracker.utils.date_utils import parse_calendar_date

# Fields an operator may still change once money has moved against a loan
UNLOCKED_FIELDS = ("status", "notes")


def _require_positive(value: Optional[float], field_name: str) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be a number") from e
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"{field_name} must be greater than zero")
    return number


def _require_term(value: Optional[int]) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError("term_days is required")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("term_days must be a whole number of days")
    try:
        days = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError("term_days must be a whole number of days") from e
    if days <= 0:
        raise ValidationError("term_days must be greater than zero")
    return days


def parse_interest_mode(value: Union[str, InterestMode, None]) -> InterestMode:
    try:
        return InterestMode(value)
    except ValueError as e:
        raise ValidationError(f"interest_mode must be one of: percentage, flat (got {value!r})") from e


def parse_status(value: Union[str, LoanStatus, None]) -> LoanStatus:
    try:
        return LoanStatus(value)
    except ValueError as e:
        raise ValidationError(f"status must be one of: active, overdue, settled (got {value!r})") from e


def compute_total_amount(
    principal: float,
    interest_mode: InterestMode,
    interest_value: float,
    term_days: int,
) -> float:
    """
    Total amount owed over the loan term.

    - percentage: principal + principal * (interest_value / 100) * term_days
      (simple daily interest on the original principal, no compounding)
    - flat: principal + interest_value * term_days
      (a fixed currency amount charged per day)

    Example:
        1000 at 1%/day for 30 days -> 1000 + 1000 * 0.01 * 30 = 1300
        500 flat 10/day for 20 days -> 500 + 10 * 20 = 700
    """
    if interest_mode == InterestMode.PERCENTAGE:
        return principal + principal * (interest_value / 100) * term_days
    return principal + interest_value * term_days


def quote_loan(
    principal: float,
    interest_mode: Union[str, InterestMode],
    interest_value: float,
    term_days: int,
) -> LoanQuote:
    """Total amount plus an evenly-spread daily installment, rounded to cents.

    The suggestion is advisory; a loan's daily installment is always entered
    by the operator.
    """
    principal = _require_positive(principal, "principal")
    mode = parse_interest_mode(interest_mode)
    interest_value = _require_positive(interest_value, "interest_value")
    term_days = _require_term(term_days)

    total = compute_total_amount(principal, mode, interest_value, term_days)
    return LoanQuote(total_amount=total, suggested_daily_installment=round(total / term_days, 2))


def build_terms(
    principal: Optional[float],
    start_date: Union[str, date, None],
    interest_mode: Union[str, InterestMode, None],
    interest_value: Optional[float],
    term_days: Optional[int],
    daily_installment: Optional[float],
) -> LoanTerms:
    """Validate raw loan input and derive the total amount.

    Raises:
        ValidationError: on any missing, malformed or non-positive field
    """
    principal = _require_positive(principal, "principal")
    start = parse_calendar_date(start_date, "start_date")
    mode = parse_interest_mode(interest_mode)
    interest_value = _require_positive(interest_value, "interest_value")
    term_days = _require_term(term_days)
    daily_installment = _require_positive(daily_installment, "daily_installment")

    return LoanTerms(
        principal=principal,
        start_date=start,
        interest_mode=mode,
        interest_value=interest_value,
        term_days=term_days,
        daily_installment=daily_installment,
        total_amount=compute_total_amount(principal, mode, interest_value, term_days),
    )


def merge_changes(loan: Loan, changes: LoanChanges) -> LoanTerms:
    """Overlay changes on a clean loan's current terms and re-validate"""

    def pick(new, current):
        return current if new is None else new

    return build_terms(
        principal=pick(changes.principal, loan.principal),
        start_date=pick(changes.start_date, loan.start_date),
        interest_mode=pick(changes.interest_mode, loan.interest_mode),
        interest_value=pick(changes.interest_value, loan.interest_value),
        term_days=pick(changes.term_days, loan.term_days),
        daily_installment=pick(changes.daily_installment, loan.daily_installment),
    )


def plan_loan_update(loan: Loan, changes: LoanChanges, has_payments: bool) -> Tuple[Dict[str, Any], Tuple[str, ...]]:
    """
    Decide which fields of a loan an edit may change.

    Once a loan has at least one payment its financial terms are frozen: only
    status and notes are applied, everything else is discarded. A loan with
    no payments takes every field, with total_amount recomputed and the
    payment summary reset to match.

    Returns:
        (fields to write, names of supplied fields that were discarded)
    """
    fields: Dict[str, Any] = {}
    if changes.status is not None:
        fields["status"] = parse_status(changes.status)
    if changes.notes is not None:
        fields["notes"] = changes.notes.strip()

    if has_payments:
        discarded = tuple(
            name
            for name, value in vars(changes).items()
            if value is not None and name not in UNLOCKED_FIELDS
        )
        return fields, discarded

    terms = merge_changes(loan, changes)
    fields.update(
        principal=terms.principal,
        start_date=terms.start_date,
        interest_mode=terms.interest_mode,
        interest_value=terms.interest_value,
        term_days=terms.term_days,
        daily_installment=terms.daily_installment,
        total_amount=terms.total_amount,
        remaining_balance=terms.total_amount,
        total_paid=0.0,
    )
    return fields, ()


def validate_payment(payment_date: Union[str, date, None], amount: Optional[float]) -> Tuple[date, float]:
    """Check a payment before it reaches the store"""
    return parse_calendar_date(payment_date, "payment_date"), _require_positive(amount, "amount")


def apply_payment(
    loan: Loan,
    amount: float,
    today: date,
    epsilon: float = SETTLEMENT_EPSILON,
) -> PaymentOutcome:
    """
    Compute a loan's summary after a payment.

    remaining_balance falls back to total_amount when missing, for records
    written before the summary fields existed. No overpayment cap: the
    balance may go negative.
    """
    total_paid = (loan.total_paid or 0.0) + amount
    if loan.remaining_balance is not None:
        current_remaining = loan.remaining_balance
    else:
        current_remaining = loan.total_amount or 0.0
    remaining = current_remaining - amount

    if loan.start_date is None:
        status = LoanStatus.SETTLED if remaining <= epsilon else LoanStatus.ACTIVE
    else:
        status = derive_status(remaining, loan.start_date, loan.term_days, today, epsilon)

    return PaymentOutcome(total_paid=total_paid, remaining_balance=remaining, status=status)
