"""Data access layer for the client -> loan -> payment hierarchy"""

from datetime import date
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from loan_tracker.infrastructure.database.models import (
    AuthSessionRecord,
    ClientRecord,
    LoanRecord,
    PaymentRecord,
    UserAccount,
)
from loan_tracker.domain.models import (
    Client,
    InterestMode,
    Loan,
    LoanStatus,
    LoanTerms,
    Payment,
)
from loan_tracker.utils.date_utils import from_iso, to_iso


def to_client(record: ClientRecord) -> Client:
    return Client(
        id=record.id,
        owner_id=record.owner_id,
        name=record.name,
        document=record.document or "",
        phone=record.phone or "",
        address=record.address or "",
        notes=record.notes or "",
        created_at=record.created_at,
    )


def to_loan(record: LoanRecord) -> Loan:
    return Loan(
        id=record.id,
        client_id=record.client_id,
        owner_id=record.owner_id,
        principal=record.principal,
        start_date=from_iso(record.start_date),
        interest_mode=InterestMode(record.interest_mode),
        interest_value=record.interest_value,
        term_days=record.term_days,
        total_amount=record.total_amount,
        daily_installment=record.daily_installment,
        remaining_balance=record.remaining_balance,
        total_paid=record.total_paid,
        status=LoanStatus(record.status),
        notes=record.notes or "",
        created_at=record.created_at,
        version=record.version,
    )


def to_payment(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        loan_id=record.loan_id,
        client_id=record.client_id,
        owner_id=record.owner_id,
        payment_date=from_iso(record.payment_date),
        amount=record.amount,
        notes=record.notes or "",
        created_at=record.created_at,
    )


class ClientRepository:
    """Repository for clients"""

    def __init__(self, db: Session):
        self.db = db

    def create_client(self, owner_id: str, fields: Dict[str, str]) -> ClientRecord:
        db_client = ClientRecord(owner_id=owner_id, **fields)
        self.db.add(db_client)
        self.db.flush()  # Get ID without committing
        return db_client

    def get_client(self, owner_id: str, client_id: str) -> Optional[ClientRecord]:
        return (
            self.db.query(ClientRecord)
            .filter(ClientRecord.id == client_id, ClientRecord.owner_id == owner_id)
            .first()
        )

    def list_clients(self, owner_id: str) -> List[ClientRecord]:
        """Clients of an account, sorted by name"""
        return (
            self.db.query(ClientRecord)
            .filter(ClientRecord.owner_id == owner_id)
            .order_by(ClientRecord.name.asc(), ClientRecord.id.asc())
            .all()
        )


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        owner_id: str,
        client_id: str,
        terms: LoanTerms,
        status: LoanStatus,
        notes: str,
    ) -> LoanRecord:
        """Persist a new loan with a clean payment summary"""
        db_loan = LoanRecord(
            owner_id=owner_id,
            client_id=client_id,
            principal=terms.principal,
            start_date=to_iso(terms.start_date),
            interest_mode=terms.interest_mode.value,
            interest_value=terms.interest_value,
            term_days=terms.term_days,
            total_amount=terms.total_amount,
            daily_installment=terms.daily_installment,
            remaining_balance=terms.total_amount,
            total_paid=0.0,
            status=status.value,
            notes=notes,
        )
        self.db.add(db_loan)
        self.db.flush()
        return db_loan

    def get_loan(
        self,
        owner_id: str,
        client_id: str,
        loan_id: str,
        for_update: bool = False,
    ) -> Optional[LoanRecord]:
        """Point read; for_update locks the row where the database supports it"""
        query = self.db.query(LoanRecord).filter(
            LoanRecord.id == loan_id,
            LoanRecord.client_id == client_id,
            LoanRecord.owner_id == owner_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_loans(self, owner_id: str, client_id: str) -> List[LoanRecord]:
        """Loans of a client, newest start date first"""
        return (
            self.db.query(LoanRecord)
            .filter(LoanRecord.owner_id == owner_id, LoanRecord.client_id == client_id)
            .order_by(LoanRecord.start_date.desc(), LoanRecord.created_at.asc())
            .all()
        )

    def list_loans_by_owner(self, owner_id: str) -> List[LoanRecord]:
        return (
            self.db.query(LoanRecord)
            .filter(LoanRecord.owner_id == owner_id)
            .order_by(LoanRecord.start_date.desc(), LoanRecord.created_at.asc())
            .all()
        )

    def range_query(self, owner_id: str, start: date, end: date) -> List[LoanRecord]:
        """Loans started within [start, end]; ISO strings compare in date order"""
        return (
            self.db.query(LoanRecord)
            .filter(
                LoanRecord.owner_id == owner_id,
                LoanRecord.start_date >= to_iso(start),
                LoanRecord.start_date <= to_iso(end),
            )
            .order_by(LoanRecord.start_date.asc())
            .all()
        )

    def update_fields(self, db_loan: LoanRecord, fields: Dict[str, Any]) -> LoanRecord:
        for name, value in fields.items():
            if isinstance(value, date):
                value = to_iso(value)
            elif isinstance(value, (InterestMode, LoanStatus)):
                value = value.value
            setattr(db_loan, name, value)
        return db_loan


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def add_payment(
        self,
        db_loan: LoanRecord,
        payment_date: date,
        amount: float,
        notes: str,
    ) -> PaymentRecord:
        db_payment = PaymentRecord(
            loan_id=db_loan.id,
            client_id=db_loan.client_id,
            owner_id=db_loan.owner_id,
            payment_date=to_iso(payment_date),
            amount=amount,
            notes=notes,
        )
        self.db.add(db_payment)
        return db_payment

    def has_payments(self, loan_id: str) -> bool:
        """Existence check only: reads at most one row"""
        return (
            self.db.query(PaymentRecord.id)
            .filter(PaymentRecord.loan_id == loan_id)
            .limit(1)
            .first()
            is not None
        )

    def list_payments(self, owner_id: str, client_id: str, loan_id: str) -> List[PaymentRecord]:
        """Payments of a loan, oldest payment date first"""
        return (
            self.db.query(PaymentRecord)
            .filter(
                PaymentRecord.owner_id == owner_id,
                PaymentRecord.client_id == client_id,
                PaymentRecord.loan_id == loan_id,
            )
            .order_by(PaymentRecord.payment_date.asc(), PaymentRecord.created_at.asc())
            .all()
        )

    def list_payments_by_owner(self, owner_id: str) -> List[PaymentRecord]:
        return (
            self.db.query(PaymentRecord)
            .filter(PaymentRecord.owner_id == owner_id)
            .order_by(PaymentRecord.payment_date.asc(), PaymentRecord.created_at.asc())
            .all()
        )

    def range_query(self, owner_id: str, start: date, end: date) -> List[PaymentRecord]:
        """Payments dated within [start, end]"""
        return (
            self.db.query(PaymentRecord)
            .filter(
                PaymentRecord.owner_id == owner_id,
                PaymentRecord.payment_date >= to_iso(start),
                PaymentRecord.payment_date <= to_iso(end),
            )
            .order_by(PaymentRecord.payment_date.asc())
            .all()
        )


class AccountRepository:
    """Repository for identity accounts and their sessions"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, email: str, password_hash: str, password_salt: str) -> UserAccount:
        db_account = UserAccount(email=email, password_hash=password_hash, password_salt=password_salt)
        self.db.add(db_account)
        self.db.flush()
        return db_account

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        return self.db.query(UserAccount).filter(UserAccount.email == email).first()

    def get_by_reset_token(self, token: str) -> Optional[UserAccount]:
        return self.db.query(UserAccount).filter(UserAccount.reset_token == token).first()

    def create_session(self, db_account: UserAccount, token: str) -> AuthSessionRecord:
        db_session = AuthSessionRecord(token=token, account_id=db_account.id)
        self.db.add(db_session)
        return db_session

    def get_session(self, token: str) -> Optional[AuthSessionRecord]:
        return self.db.query(AuthSessionRecord).filter(AuthSessionRecord.token == token).first()

    def delete_session(self, token: str) -> bool:
        deleted = self.db.query(AuthSessionRecord).filter(AuthSessionRecord.token == token).delete()
        return deleted > 0

    def delete_sessions_for(self, db_account: UserAccount) -> None:
        self.db.query(AuthSessionRecord).filter(AuthSessionRecord.account_id == db_account.id).delete()
