"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


class InterestMode(str, Enum):
    """How daily interest is charged against the principal"""

    PERCENTAGE = "percentage"  # percentage points of principal per day
    FLAT = "flat"  # fixed currency amount per day


class LoanStatus(str, Enum):
    """Lifecycle status of a loan"""

    ACTIVE = "active"
    OVERDUE = "overdue"
    SETTLED = "settled"


def loan_key(client_id: str, loan_id: str) -> str:
    """Cache key for a loan's payment collection"""
    return f"{client_id}|{loan_id}"


@dataclass
class Client:
    """Borrower record owned by one account"""

    id: str
    owner_id: str
    name: str
    document: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""
    created_at: Optional[datetime] = None


@dataclass
class Loan:
    """One disbursement with its interest terms and materialized payment summary.

    Numeric summary fields are optional so partially-initialized records can
    still be read; consumers treat a missing value as 0.
    """

    id: str
    client_id: str
    owner_id: str
    principal: Optional[float]
    start_date: Optional[date]
    interest_mode: InterestMode
    interest_value: Optional[float]
    term_days: Optional[int]
    total_amount: Optional[float]
    daily_installment: Optional[float]
    remaining_balance: Optional[float]
    total_paid: Optional[float]
    status: LoanStatus
    notes: str = ""
    created_at: Optional[datetime] = None
    version: int = 1


@dataclass
class Payment:
    """Immutable receipt of money against a loan"""

    id: str
    loan_id: str
    client_id: str
    owner_id: str
    payment_date: date
    amount: Optional[float]
    notes: str = ""
    created_at: Optional[datetime] = None


@dataclass
class LoanTerms:
    """Validated financial terms of a loan, before persistence"""

    principal: float
    start_date: date
    interest_mode: InterestMode
    interest_value: float
    term_days: int
    daily_installment: float
    total_amount: float


@dataclass
class LoanChanges:
    """Operator edits to a loan; None means keep the current value"""

    principal: Optional[float] = None
    start_date: Optional[str] = None
    interest_mode: Optional[str] = None
    interest_value: Optional[float] = None
    term_days: Optional[int] = None
    daily_installment: Optional[float] = None
    status: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class PaymentOutcome:
    """New loan summary after a payment is applied"""

    total_paid: float
    remaining_balance: float
    status: LoanStatus


@dataclass
class LoanQuote:
    """Total due and suggested daily installment for a set of terms"""

    total_amount: float
    suggested_daily_installment: float


@dataclass
class Hierarchy:
    """Snapshot of an account's Client -> Loan -> Payment tree.

    loans are keyed by client id, payments by loan_key(client_id, loan_id).
    """

    clients: List[Client] = field(default_factory=list)
    loans: Dict[str, List[Loan]] = field(default_factory=dict)
    payments: Dict[str, List[Payment]] = field(default_factory=dict)


@dataclass
class StatusCounts:
    active: int = 0
    overdue: int = 0
    settled: int = 0


@dataclass
class DueTodayEntry:
    """Active loan whose installment falls due today"""

    client_id: str
    client_name: str
    loan_id: str
    installment_amount: float
    start_date: Optional[date]
    total_amount: float


@dataclass
class OverdueEntry:
    """Overdue loan with an outstanding balance"""

    client_id: str
    client_name: str
    loan_id: str
    remaining_balance: float
    start_date: Optional[date]


@dataclass
class DashboardSnapshot:
    """Today's figures across every loan of an account"""

    active_principal_outstanding: float = 0.0
    due_today_total: float = 0.0
    received_today_total: float = 0.0
    counts_by_status: StatusCounts = field(default_factory=StatusCounts)
    due_today: List[DueTodayEntry] = field(default_factory=list)
    overdue_list: List[OverdueEntry] = field(default_factory=list)


@dataclass
class PeriodReport:
    """Disbursed vs received within an inclusive date range"""

    start_date: date
    end_date: date
    principal_disbursed: float
    amount_received: float
    net: float


@dataclass
class ClientReport:
    """Lifetime totals for one client"""

    client_id: str
    lifetime_disbursed: float
    lifetime_received: float
    current_balance: float


@dataclass
class Account:
    """Identity account that owns a client hierarchy"""

    id: str
    email: str


@dataclass
class AuthSession:
    """Signed-in session for an account"""

    token: str
    owner_id: str
    email: str
