"""/v1/clients/{client_id}/loans - loan creation, edits and quotes"""

from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, Request

from loan_tracker.api.dependencies import (
    get_accounting_service,
    get_current_account,
    get_request_id,
    get_store,
)
from loan_tracker.api.errors import domain_errors
from loan_tracker.api.v1.schemas import (
    LoanCreateRequest,
    LoanQuoteRequest,
    LoanQuoteResponse,
    LoanResponse,
    LoanUpdateRequest,
)
from loan_tracker.domain.accounting import quote_loan
from loan_tracker.domain.models import Account, Loan, LoanChanges
from loan_tracker.domain.status import compute_end_date
from loan_tracker.infrastructure.store import HierarchyStore
from loan_tracker.services.accounting import LoanAccountingService

router = APIRouter()


def to_response(loan: Loan) -> LoanResponse:
    end_date = compute_end_date(loan.start_date, loan.term_days) if loan.start_date else None
    return LoanResponse(**asdict(loan), end_date=end_date)


@router.get("/clients/{client_id}/loans", response_model=List[LoanResponse])
def list_loans(
    client_id: str,
    request: Request,
    account: Account = Depends(get_current_account),
    store: HierarchyStore = Depends(get_store),
):
    """Loans of a client, newest start date first"""
    with domain_errors("list loans", get_request_id(request)):
        store.get_client(account.id, client_id)
        loans = store.list_loans(account.id, client_id)
    return [to_response(loan) for loan in loans]


@router.post("/clients/{client_id}/loans", response_model=LoanResponse, status_code=201)
def create_loan(
    client_id: str,
    body: LoanCreateRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    accounting: LoanAccountingService = Depends(get_accounting_service),
):
    """Create a loan; total_amount and the payment summary are derived from its terms"""
    with domain_errors("create loan", get_request_id(request)):
        loan = accounting.create_loan(account.id, client_id, **body.model_dump())
    return to_response(loan)


@router.put("/clients/{client_id}/loans/{loan_id}", response_model=LoanResponse)
def update_loan(
    client_id: str,
    loan_id: str,
    body: LoanUpdateRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    accounting: LoanAccountingService = Depends(get_accounting_service),
):
    """
    Edit a loan.

    Once any payment exists only status and notes are applied; the other
    fields in the body are ignored.
    """
    with domain_errors("update loan", get_request_id(request)):
        loan = accounting.update_loan(account.id, client_id, loan_id, LoanChanges(**body.model_dump()))
    return to_response(loan)


@router.post("/loans/quote", response_model=LoanQuoteResponse)
def quote(
    body: LoanQuoteRequest,
    request: Request,
    account: Account = Depends(get_current_account),
):
    """Total amount and a suggested daily installment, without saving anything"""
    with domain_errors("quote loan", get_request_id(request)):
        result = quote_loan(body.principal, body.interest_mode, body.interest_value, body.term_days)
    return LoanQuoteResponse.model_validate(result)
