"""SQLAlchemy ORM models for the account -> client -> loan -> payment hierarchy"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Float, DateTime, Integer, ForeignKey, Text, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserAccount(Base):
    """Identity account; every client hierarchy belongs to exactly one"""

    __tablename__ = "user_account"

    id = Column(String(32), primary_key=True, default=_new_id)
    email = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    password_salt = Column(Text, nullable=False)
    reset_token = Column(Text, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    sessions = relationship("AuthSessionRecord", back_populates="account", cascade="all, delete-orphan")


class AuthSessionRecord(Base):
    """Bearer token issued at sign-in"""

    __tablename__ = "auth_session"

    token = Column(String(64), primary_key=True)
    account_id = Column(String(32), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    account = relationship("UserAccount", back_populates="sessions")


class ClientRecord(Base):
    """Borrower owned by one account"""

    __tablename__ = "client"

    id = Column(String(32), primary_key=True, default=_new_id)
    owner_id = Column(String(32), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    document = Column(Text, nullable=False, default="")
    phone = Column(Text, nullable=False, default="")
    address = Column(Text, nullable=False, default="")
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    loans = relationship("LoanRecord", back_populates="client", cascade="all, delete-orphan")


class LoanRecord(Base):
    """Loan with its materialized payment summary.

    version is bumped on every update; a write against a stale version fails
    so concurrent payments cannot lose each other's update.
    """

    __tablename__ = "loan"

    id = Column(String(32), primary_key=True, default=_new_id)
    client_id = Column(String(32), ForeignKey("client.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(String(32), nullable=False, index=True)
    principal = Column(Float, nullable=True)
    start_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    interest_mode = Column(Text, nullable=False, default="percentage")
    interest_value = Column(Float, nullable=True)
    term_days = Column(Integer, nullable=True)
    total_amount = Column(Float, nullable=True)
    daily_installment = Column(Float, nullable=True)
    remaining_balance = Column(Float, nullable=True)
    total_paid = Column(Float, nullable=True)
    status = Column(Text, nullable=False, default="active")
    notes = Column(Text, nullable=False, default="")
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    client = relationship("ClientRecord", back_populates="loans")
    payments = relationship("PaymentRecord", back_populates="loan", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (Index("ix_loan_owner_start_date", "owner_id", "start_date"),)


class PaymentRecord(Base):
    """Append-only payment against a loan"""

    __tablename__ = "payment"

    id = Column(String(32), primary_key=True, default=_new_id)
    loan_id = Column(String(32), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(32), nullable=False)
    owner_id = Column(String(32), nullable=False)
    payment_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    amount = Column(Float, nullable=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    loan = relationship("LoanRecord", back_populates="payments")

    __table_args__ = (Index("ix_payment_owner_date", "owner_id", "payment_date"),)
