"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from loan_tracker.domain.models import InterestMode, LoanStatus


class ORMModel(BaseModel):
    """Response model readable from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


# Auth


class CredentialsRequest(BaseModel):
    """Request body for register and login"""

    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Account password")


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirmRequest(BaseModel):
    reset_token: str
    new_password: str


class SessionResponse(ORMModel):
    """Bearer token for the Authorization header"""

    token: str
    owner_id: str
    email: str


class MessageResponse(BaseModel):
    message: str


# Clients


class ClientRequest(BaseModel):
    """Request body for creating or fully replacing a client"""

    name: str = Field(..., description="Client name, used for sorting and search")
    document: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""


class ClientResponse(ORMModel):
    id: str
    name: str
    document: str
    phone: str
    address: str
    notes: str
    created_at: Optional[datetime] = None


# Loans


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/clients/{client_id}/loans"""

    principal: Optional[float] = None
    start_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    interest_mode: str = Field("percentage", description="percentage | flat")
    interest_value: Optional[float] = Field(None, description="% per day, or currency per day when flat")
    term_days: Optional[int] = None
    daily_installment: Optional[float] = None
    status: str = "active"
    notes: str = ""


class LoanUpdateRequest(BaseModel):
    """Request body for PUT; omitted fields keep their value.

    Once a loan has payments only status and notes are applied.
    """

    principal: Optional[float] = None
    start_date: Optional[str] = None
    interest_mode: Optional[str] = None
    interest_value: Optional[float] = None
    term_days: Optional[int] = None
    daily_installment: Optional[float] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class LoanQuoteRequest(BaseModel):
    principal: Optional[float] = None
    interest_mode: str = "percentage"
    interest_value: Optional[float] = None
    term_days: Optional[int] = None


class LoanQuoteResponse(ORMModel):
    total_amount: float
    suggested_daily_installment: float


class LoanResponse(ORMModel):
    id: str
    client_id: str
    principal: Optional[float]
    start_date: Optional[date]
    end_date: Optional[date] = None
    interest_mode: InterestMode
    interest_value: Optional[float]
    term_days: Optional[int]
    total_amount: Optional[float]
    daily_installment: Optional[float]
    remaining_balance: Optional[float]
    total_paid: Optional[float]
    status: LoanStatus
    notes: str
    created_at: Optional[datetime] = None


# Payments


class PaymentRequest(BaseModel):
    """Request body for recording a payment; payment_date defaults to today"""

    payment_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    amount: Optional[float] = None
    notes: str = ""


class PaymentResponse(ORMModel):
    id: str
    loan_id: str
    client_id: str
    payment_date: date
    amount: Optional[float]
    notes: str
    created_at: Optional[datetime] = None


# Reports


class StatusCountsSchema(ORMModel):
    active: int
    overdue: int
    settled: int


class DueTodaySchema(ORMModel):
    client_id: str
    client_name: str
    loan_id: str
    installment_amount: float
    start_date: Optional[date]
    total_amount: float


class OverdueSchema(ORMModel):
    client_id: str
    client_name: str
    loan_id: str
    remaining_balance: float
    start_date: Optional[date]


class DashboardResponse(ORMModel):
    """Response for GET /v1/dashboard"""

    active_principal_outstanding: float
    due_today_total: float
    received_today_total: float
    counts_by_status: StatusCountsSchema
    due_today: List[DueTodaySchema]
    overdue_list: List[OverdueSchema]


class PeriodReportResponse(ORMModel):
    start_date: date
    end_date: date
    principal_disbursed: float
    amount_received: float
    net: float


class ClientReportResponse(ORMModel):
    client_id: str
    lifetime_disbursed: float
    lifetime_received: float
    current_balance: float
