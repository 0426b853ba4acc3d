"""Hierarchy store - ordered reads, atomic transactions and live subscriptions"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from loan_tracker.config import settings
from loan_tracker.domain.exceptions import DomainException, NotFoundError, StoreError
from loan_tracker.domain.models import (
    Client,
    Hierarchy,
    Loan,
    LoanStatus,
    LoanTerms,
    Payment,
    loan_key,
)
from loan_tracker.infrastructure.database.models import LoanRecord
from loan_tracker.infrastructure.database.repositories import (
    ClientRepository,
    LoanRepository,
    PaymentRepository,
    to_client,
    to_loan,
    to_payment,
)
from loan_tracker.infrastructure.notifications import SnapshotBroker, Subscription
from loan_tracker.infrastructure.observability.metrics import (
    transaction_conflict_counter,
    transaction_failure_counter,
)

T = TypeVar("T")


def clients_topic(owner_id: str) -> Tuple[str, ...]:
    return ("clients", owner_id)


def loans_topic(owner_id: str, client_id: str) -> Tuple[str, ...]:
    return ("loans", owner_id, client_id)


def payments_topic(owner_id: str, client_id: str, loan_id: str) -> Tuple[str, ...]:
    return ("payments", owner_id, client_id, loan_id)


class AtomicTransaction:
    """
    Read-modify-write scope handed to a transaction body.

    Loans read here are locked where the database supports it and are written
    back with a version check, so the body always works against one
    consistent state of each loan.
    """

    def __init__(self, db: Session):
        self._db = db
        self._loans = LoanRepository(db)
        self._payments = PaymentRepository(db)
        self._records: Dict[str, LoanRecord] = {}
        self.touched: Set[Tuple[str, ...]] = set()

    def get_loan(self, owner_id: str, client_id: str, loan_id: str) -> Loan:
        """Read a loan inside the transaction.

        Raises:
            NotFoundError: if the loan does not exist (e.g. removed concurrently)
        """
        db_loan = self._loans.get_loan(owner_id, client_id, loan_id, for_update=True)
        if db_loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        self._records[loan_id] = db_loan
        return to_loan(db_loan)

    def has_payments(self, loan_id: str) -> bool:
        return self._payments.has_payments(loan_id)

    def add_payment(self, loan_id: str, payment_date: date, amount: float, notes: str = "") -> Payment:
        db_loan = self._record(loan_id)
        db_payment = self._payments.add_payment(db_loan, payment_date, amount, notes)
        self._db.flush()
        self.touched.add(payments_topic(db_loan.owner_id, db_loan.client_id, db_loan.id))
        return to_payment(db_payment)

    def update_loan(self, loan_id: str, **fields: Any) -> Loan:
        db_loan = self._record(loan_id)
        self._loans.update_fields(db_loan, fields)
        self._db.flush()  # Raises StaleDataError if another writer got there first
        self.touched.add(loans_topic(db_loan.owner_id, db_loan.client_id))
        return to_loan(db_loan)

    def _record(self, loan_id: str) -> LoanRecord:
        if loan_id not in self._records:
            raise StoreError(f"Loan {loan_id} must be read in this transaction before it is written")
        return self._records[loan_id]


class HierarchyStore:
    """Client -> Loan -> Payment collections of every account, backed by SQLAlchemy"""

    def __init__(
        self,
        session_factory: sessionmaker,
        broker: Optional[SnapshotBroker] = None,
        max_attempts: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self.broker = broker or SnapshotBroker()
        self.max_attempts = max_attempts or settings.transaction_max_attempts

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Session scope translating driver failures into StoreError"""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except DomainException:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Store operation failed: {e}") from e
        finally:
            db.close()

    # Reads

    def list_clients(self, owner_id: str, name_filter: Optional[str] = None) -> List[Client]:
        """Clients sorted by name, optionally narrowed by a case-insensitive name substring"""
        with self._session() as db:
            clients = [to_client(c) for c in ClientRepository(db).list_clients(owner_id)]
        if name_filter:
            needle = name_filter.strip().lower()
            clients = [c for c in clients if needle in c.name.lower()]
        return clients

    def get_client(self, owner_id: str, client_id: str) -> Client:
        with self._session() as db:
            db_client = ClientRepository(db).get_client(owner_id, client_id)
            if db_client is None:
                raise NotFoundError(f"Client {client_id} not found")
            return to_client(db_client)

    def list_loans(self, owner_id: str, client_id: str) -> List[Loan]:
        with self._session() as db:
            return [to_loan(loan) for loan in LoanRepository(db).list_loans(owner_id, client_id)]

    def get_loan(self, owner_id: str, client_id: str, loan_id: str) -> Loan:
        with self._session() as db:
            db_loan = LoanRepository(db).get_loan(owner_id, client_id, loan_id)
            if db_loan is None:
                raise NotFoundError(f"Loan {loan_id} not found")
            return to_loan(db_loan)

    def list_payments(self, owner_id: str, client_id: str, loan_id: str) -> List[Payment]:
        with self._session() as db:
            return [to_payment(p) for p in PaymentRepository(db).list_payments(owner_id, client_id, loan_id)]

    def range_query_loans(self, owner_id: str, start: date, end: date) -> List[Loan]:
        with self._session() as db:
            return [to_loan(loan) for loan in LoanRepository(db).range_query(owner_id, start, end)]

    def range_query_payments(self, owner_id: str, start: date, end: date) -> List[Payment]:
        with self._session() as db:
            return [to_payment(p) for p in PaymentRepository(db).range_query(owner_id, start, end)]

    def load_hierarchy(self, owner_id: str) -> Hierarchy:
        """Whole Client -> Loan -> Payment tree of an account, read in one session"""
        with self._session() as db:
            clients = [to_client(c) for c in ClientRepository(db).list_clients(owner_id)]
            loans = [to_loan(loan) for loan in LoanRepository(db).list_loans_by_owner(owner_id)]
            payments = [to_payment(p) for p in PaymentRepository(db).list_payments_by_owner(owner_id)]

        hierarchy = Hierarchy(clients=clients)
        for loan in loans:
            hierarchy.loans.setdefault(loan.client_id, []).append(loan)
        for payment in payments:
            hierarchy.payments.setdefault(loan_key(payment.client_id, payment.loan_id), []).append(payment)
        return hierarchy

    # Writes

    def create_client(self, owner_id: str, fields: Dict[str, str]) -> Client:
        with self._session() as db:
            client = to_client(ClientRepository(db).create_client(owner_id, fields))
        self.broker.publish(clients_topic(owner_id))
        return client

    def update_client(self, owner_id: str, client_id: str, fields: Dict[str, str]) -> Client:
        """Full-field update; created_at is preserved"""
        with self._session() as db:
            db_client = ClientRepository(db).get_client(owner_id, client_id)
            if db_client is None:
                raise NotFoundError(f"Client {client_id} not found")
            for name, value in fields.items():
                setattr(db_client, name, value)
            db.flush()
            client = to_client(db_client)
        self.broker.publish(clients_topic(owner_id))
        return client

    def create_loan(
        self,
        owner_id: str,
        client_id: str,
        terms: LoanTerms,
        status: LoanStatus,
        notes: str,
    ) -> Loan:
        with self._session() as db:
            if ClientRepository(db).get_client(owner_id, client_id) is None:
                raise NotFoundError(f"Client {client_id} not found")
            loan = to_loan(LoanRepository(db).create_loan(owner_id, client_id, terms, status, notes))
        self.broker.publish(loans_topic(owner_id, client_id))
        return loan

    def run_atomic_transaction(self, body: Callable[[AtomicTransaction], T]) -> T:
        """
        Run body(tx) as one all-or-nothing unit.

        If another writer commits against a loan the body read, the commit
        fails with a version conflict; the body is then re-run from scratch
        against fresh state, up to max_attempts times.

        Raises:
            DomainException: raised by the body (rolled back, not retried)
            StoreError: on driver failure or when attempts are exhausted
        """
        for attempt in range(1, self.max_attempts + 1):
            db = self._session_factory()
            tx = AtomicTransaction(db)
            try:
                result = body(tx)
                db.commit()
            except StaleDataError:
                db.rollback()
                transaction_conflict_counter.inc()
                logging.info(
                    "Transaction conflict, retrying",
                    extra={"attempt": attempt, "max_attempts": self.max_attempts},
                )
                continue
            except DomainException:
                db.rollback()
                raise
            except SQLAlchemyError as e:
                db.rollback()
                transaction_failure_counter.inc()
                raise StoreError(f"Transaction failed: {e}") from e
            finally:
                db.close()

            for topic in tx.touched:
                self.broker.publish(topic)
            return result

        transaction_failure_counter.inc()
        raise StoreError(f"Transaction aborted after {self.max_attempts} conflicting attempts")

    # Subscriptions

    def subscribe_clients(self, owner_id: str) -> Subscription:
        return self.broker.subscribe(clients_topic(owner_id), lambda: self.list_clients(owner_id))

    def subscribe_loans(self, owner_id: str, client_id: str) -> Subscription:
        return self.broker.subscribe(
            loans_topic(owner_id, client_id),
            lambda: self.list_loans(owner_id, client_id),
        )

    def subscribe_payments(self, owner_id: str, client_id: str, loan_id: str) -> Subscription:
        return self.broker.subscribe(
            payments_topic(owner_id, client_id, loan_id),
            lambda: self.list_payments(owner_id, client_id, loan_id),
        )
