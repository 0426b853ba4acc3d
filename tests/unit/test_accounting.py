"""Unit tests for loan accounting arithmetic and edit locking"""

import pytest
from datetime import date
from loan_tracker.domain.accounting import (
    apply_payment,
    build_terms,
    compute_total_amount,
    plan_loan_update,
    quote_loan,
    validate_payment,
)
from loan_tracker.domain.exceptions import ValidationError
from loan_tracker.domain.models import InterestMode, Loan, LoanChanges, LoanStatus


def make_loan(**overrides) -> Loan:
    fields = dict(
        id="loan-1",
        client_id="client-1",
        owner_id="owner-1",
        principal=1000.0,
        start_date=date(2024, 1, 1),
        interest_mode=InterestMode.PERCENTAGE,
        interest_value=1.0,
        term_days=30,
        total_amount=1300.0,
        daily_installment=43.33,
        remaining_balance=1300.0,
        total_paid=0.0,
        status=LoanStatus.ACTIVE,
    )
    fields.update(overrides)
    return Loan(**fields)


@pytest.mark.parametrize(
    "principal,rate,days",
    [(1000, 1, 30), (250.5, 2.5, 12), (80, 0.3, 1), (12000, 10, 90)],
)
def test_percentage_total_amount(principal, rate, days):
    """Simple daily interest on the original principal"""
    total = compute_total_amount(principal, InterestMode.PERCENTAGE, rate, days)
    assert total == pytest.approx(principal + principal * (rate / 100) * days)


@pytest.mark.parametrize("principal,flat,days", [(500, 10, 20), (100, 0.5, 7), (3000, 45, 60)])
def test_flat_total_amount(principal, flat, days):
    """Fixed currency amount per day"""
    assert compute_total_amount(principal, InterestMode.FLAT, flat, days) == pytest.approx(principal + flat * days)


def test_scenario_totals():
    assert compute_total_amount(1000, InterestMode.PERCENTAGE, 1, 30) == pytest.approx(1300)
    assert compute_total_amount(500, InterestMode.FLAT, 10, 20) == pytest.approx(700)


def test_build_terms_valid():
    terms = build_terms(1000, "2024-01-15", "percentage", 1, 30, 45)
    assert terms.start_date == date(2024, 1, 15)
    assert terms.interest_mode == InterestMode.PERCENTAGE
    assert terms.total_amount == pytest.approx(1300)
    assert terms.daily_installment == 45  # Operator-supplied, not derived


@pytest.mark.parametrize(
    "args",
    [
        (0, "2024-01-15", "percentage", 1, 30, 45),  # principal
        (-5, "2024-01-15", "percentage", 1, 30, 45),
        (None, "2024-01-15", "percentage", 1, 30, 45),
        (1000, "", "percentage", 1, 30, 45),  # start date
        (1000, "2024-02-30", "percentage", 1, 30, 45),
        (1000, "15/01/2024", "percentage", 1, 30, 45),
        (1000, "2024-01-15", "compound", 1, 30, 45),  # mode
        (1000, "2024-01-15", "percentage", 0, 30, 45),  # interest
        (1000, "2024-01-15", "percentage", 1, 0, 45),  # term
        (1000, "2024-01-15", "percentage", 1, 2.5, 45),
        (1000, "2024-01-15", "percentage", 1, 30, 0),  # installment
    ],
)
def test_build_terms_rejects_invalid_input(args):
    with pytest.raises(ValidationError):
        build_terms(*args)


def test_quote_loan_suggests_even_installment():
    """Total spread evenly over the term, rounded to cents"""
    quote = quote_loan(1000, "percentage", 1, 30)
    assert quote.total_amount == pytest.approx(1300)
    assert quote.suggested_daily_installment == 43.33

    flat = quote_loan(500, "flat", 10, 20)
    assert flat.total_amount == pytest.approx(700)
    assert flat.suggested_daily_installment == 35.0


def test_validate_payment():
    assert validate_payment("2024-01-20", 200) == (date(2024, 1, 20), 200.0)
    with pytest.raises(ValidationError):
        validate_payment("2024-01-20", 0)
    with pytest.raises(ValidationError):
        validate_payment("2024-01-20", -10)
    with pytest.raises(ValidationError):
        validate_payment("not-a-date", 10)
    with pytest.raises(ValidationError):
        validate_payment(None, 10)


def test_apply_payment_within_term():
    """1300 loan, pay 300 -> paid 300, remaining 1000, still active"""
    outcome = apply_payment(make_loan(), 300, today=date(2024, 1, 20))
    assert outcome.total_paid == pytest.approx(300)
    assert outcome.remaining_balance == pytest.approx(1000)
    assert outcome.status == LoanStatus.ACTIVE


def test_apply_payment_after_end_date_is_overdue():
    outcome = apply_payment(make_loan(), 300, today=date(2024, 2, 1))
    assert outcome.status == LoanStatus.OVERDUE


def test_apply_payment_settles_at_epsilon():
    loan = make_loan(remaining_balance=100.005, total_paid=1199.995)
    outcome = apply_payment(loan, 100.0, today=date(2024, 1, 20))
    assert outcome.remaining_balance == pytest.approx(0.005)
    assert outcome.status == LoanStatus.SETTLED


def test_apply_payment_settled_loan_stays_settled():
    """Further payments on a settled loan never resurrect it"""
    loan = make_loan(remaining_balance=0.0, total_paid=1300.0, status=LoanStatus.SETTLED)
    outcome = apply_payment(loan, 50, today=date(2024, 3, 1))
    assert outcome.remaining_balance == pytest.approx(-50)
    assert outcome.total_paid == pytest.approx(1350)
    assert outcome.status == LoanStatus.SETTLED


def test_apply_payment_overpayment_goes_negative():
    outcome = apply_payment(make_loan(), 1500, today=date(2024, 1, 20))
    assert outcome.remaining_balance == pytest.approx(-200)
    assert outcome.status == LoanStatus.SETTLED


def test_apply_payment_missing_summary_falls_back_to_total():
    """Partially-initialized records: remaining falls back to total_amount, paid to 0"""
    loan = make_loan(remaining_balance=None, total_paid=None)
    outcome = apply_payment(loan, 300, today=date(2024, 1, 20))
    assert outcome.total_paid == pytest.approx(300)
    assert outcome.remaining_balance == pytest.approx(1000)


def test_plan_loan_update_locked_keeps_only_status_and_notes():
    changes = LoanChanges(principal=5000, term_days=60, status="overdue", notes="called twice")
    fields, discarded = plan_loan_update(make_loan(), changes, has_payments=True)

    assert fields == {"status": LoanStatus.OVERDUE, "notes": "called twice"}
    assert set(discarded) == {"principal", "term_days"}


def test_plan_loan_update_clean_loan_recomputes_totals():
    loan = make_loan(remaining_balance=1300.0)
    fields, discarded = plan_loan_update(loan, LoanChanges(principal=2000), has_payments=False)

    assert discarded == ()
    assert fields["principal"] == 2000
    assert fields["total_amount"] == pytest.approx(2600)
    assert fields["remaining_balance"] == pytest.approx(2600)
    assert fields["total_paid"] == 0.0
    assert fields["term_days"] == 30  # Unchanged values carried over


def test_plan_loan_update_clean_loan_validates():
    with pytest.raises(ValidationError):
        plan_loan_update(make_loan(), LoanChanges(interest_value=-1), has_payments=False)


def test_plan_loan_update_rejects_unknown_status():
    with pytest.raises(ValidationError):
        plan_loan_update(make_loan(), LoanChanges(status="closed"), has_payments=True)
