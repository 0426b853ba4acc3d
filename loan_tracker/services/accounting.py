"""Loan accounting engine - create, edit and pay down loans against the store"""

from datetime import date
from typing import Optional

from loan_tracker.config import settings
from loan_tracker.domain.accounting import (
    apply_payment,
    build_terms,
    parse_status,
    plan_loan_update,
    validate_payment,
)
from loan_tracker.domain.models import Loan, LoanChanges, LoanStatus, Payment
from loan_tracker.infrastructure.observability.logging import log_loan_change, log_payment
from loan_tracker.infrastructure.observability.metrics import record_loan_created, record_payment
from loan_tracker.infrastructure.store import AtomicTransaction, HierarchyStore


class LoanAccountingService:
    """Keeps each loan's total_paid / remaining_balance / status consistent with its payments"""

    def __init__(self, store: HierarchyStore, settlement_epsilon: Optional[float] = None):
        self.store = store
        self.epsilon = settings.settlement_epsilon if settlement_epsilon is None else settlement_epsilon

    def create_loan(
        self,
        owner_id: str,
        client_id: str,
        principal: float,
        start_date: str,
        interest_mode: str,
        interest_value: float,
        term_days: int,
        daily_installment: float,
        status: str = LoanStatus.ACTIVE.value,
        notes: str = "",
    ) -> Loan:
        """
        Validate terms, derive total_amount and persist the loan under its client.

        Raises:
            ValidationError: on invalid input (nothing is written)
            NotFoundError: if the client does not exist
        """
        terms = build_terms(principal, start_date, interest_mode, interest_value, term_days, daily_installment)
        loan_status = parse_status(status)

        loan = self.store.create_loan(owner_id, client_id, terms, loan_status, (notes or "").strip())

        record_loan_created(terms.interest_mode.value)
        log_loan_change(owner_id, loan.id, "created")
        return loan

    def update_loan(self, owner_id: str, client_id: str, loan_id: str, changes: LoanChanges) -> Loan:
        """
        Apply an operator edit to a loan.

        Once a payment exists only status and notes change; other fields are
        silently discarded. A loan without payments takes every field and has
        its total and payment summary recomputed. The payment check and the
        write happen in one transaction, so a payment recorded concurrently
        cannot slip in between them.
        """

        def apply(tx: AtomicTransaction):
            loan = tx.get_loan(owner_id, client_id, loan_id)
            fields, discarded = plan_loan_update(loan, changes, tx.has_payments(loan_id))
            if not fields:
                return loan, discarded
            return tx.update_loan(loan_id, **fields), discarded

        loan, discarded = self.store.run_atomic_transaction(apply)

        log_loan_change(owner_id, loan_id, "updated", discarded)
        return loan

    def record_payment(
        self,
        owner_id: str,
        client_id: str,
        loan_id: str,
        payment_date: str,
        amount: float,
        notes: str = "",
        today: Optional[date] = None,
    ) -> Payment:
        """
        Append a payment and update the loan summary atomically.

        Flow (one transaction, re-run by the store on write conflict):
        1. Read the loan (NotFoundError if gone)
        2. new total_paid = total_paid + amount; new remaining = remaining - amount
        3. Derive status from today's date and the new remaining balance
        4. Append the payment
        5. Write the new summary to the loan

        Raises:
            ValidationError: amount <= 0 or malformed date (nothing is written)
            NotFoundError: loan does not exist
            StoreError: store failure or unresolved contention
        """
        paid_on, amount = validate_payment(payment_date, amount)
        notes = (notes or "").strip()

        def apply(tx: AtomicTransaction):
            # Evaluated per attempt so a retried transaction sees the current day
            current_day = today or date.today()
            loan = tx.get_loan(owner_id, client_id, loan_id)
            outcome = apply_payment(loan, amount, current_day, self.epsilon)
            payment = tx.add_payment(loan_id, paid_on, amount, notes)
            tx.update_loan(
                loan_id,
                total_paid=outcome.total_paid,
                remaining_balance=outcome.remaining_balance,
                status=outcome.status,
            )
            return payment, outcome

        payment, outcome = self.store.run_atomic_transaction(apply)

        record_payment(amount, settled=outcome.status == LoanStatus.SETTLED)
        log_payment(owner_id, loan_id, amount, outcome.remaining_balance, outcome.status.value)
        return payment
