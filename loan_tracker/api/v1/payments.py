"""/v1/clients/{client_id}/loans/{loan_id}/payments - payment history and recording"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Request

from loan_tracker.api.dependencies import (
    get_accounting_service,
    get_current_account,
    get_request_id,
    get_store,
)
from loan_tracker.api.errors import domain_errors
from loan_tracker.api.v1.schemas import PaymentRequest, PaymentResponse
from loan_tracker.domain.models import Account
from loan_tracker.infrastructure.store import HierarchyStore
from loan_tracker.services.accounting import LoanAccountingService

router = APIRouter()


@router.get("/clients/{client_id}/loans/{loan_id}/payments", response_model=List[PaymentResponse])
def list_payments(
    client_id: str,
    loan_id: str,
    request: Request,
    account: Account = Depends(get_current_account),
    store: HierarchyStore = Depends(get_store),
):
    """Payments of a loan, oldest first"""
    with domain_errors("list payments", get_request_id(request)):
        store.get_loan(account.id, client_id, loan_id)
        payments = store.list_payments(account.id, client_id, loan_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.post(
    "/clients/{client_id}/loans/{loan_id}/payments",
    response_model=PaymentResponse,
    status_code=201,
)
def record_payment(
    client_id: str,
    loan_id: str,
    body: PaymentRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    accounting: LoanAccountingService = Depends(get_accounting_service),
):
    """
    Record a payment against a loan.

    Flow:
    1. Validate amount and date (payment_date defaults to today)
    2. Append the payment and update the loan's total_paid, remaining_balance
       and status in one transaction
    3. Subscribers of the loan and payment collections receive fresh snapshots
    """
    with domain_errors("record payment", get_request_id(request)):
        payment = accounting.record_payment(
            account.id,
            client_id,
            loan_id,
            payment_date=body.payment_date or date.today().isoformat(),
            amount=body.amount,
            notes=body.notes,
        )
    return PaymentResponse.model_validate(payment)
