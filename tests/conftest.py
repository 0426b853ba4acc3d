"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from loan_tracker.api.main import create_app
from loan_tracker.api.dependencies import get_identity, get_store
from loan_tracker.domain.models import Client, Loan
from loan_tracker.infrastructure.database.models import Base
from loan_tracker.infrastructure.database.session import build_engine, build_session_factory
from loan_tracker.infrastructure.store import HierarchyStore
from loan_tracker.services.accounting import LoanAccountingService
from loan_tracker.services.clients import ClientService
from loan_tracker.services.identity import IdentityService
from loan_tracker.services.reporting import ReportingService


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """File-backed SQLite so separate sessions really are separate transactions"""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory: sessionmaker) -> HierarchyStore:
    return HierarchyStore(session_factory)


@pytest.fixture
def identity(session_factory: sessionmaker) -> IdentityService:
    return IdentityService(session_factory)


@pytest.fixture
def accounting(store: HierarchyStore) -> LoanAccountingService:
    return LoanAccountingService(store)


@pytest.fixture
def client_service(store: HierarchyStore) -> ClientService:
    return ClientService(store)


@pytest.fixture
def reporting(store: HierarchyStore) -> ReportingService:
    return ReportingService(store)


@pytest.fixture
def owner_id(identity: IdentityService) -> str:
    """Id of a registered account that owns the test hierarchy"""
    return identity.register("owner@example.com", "owner-pass").owner_id


@pytest.fixture
def borrower(client_service: ClientService, owner_id: str) -> Client:
    """A client of the test account"""
    return client_service.create_client(owner_id, name="Maria Souza", phone="555-0101")


@pytest.fixture
def percentage_loan(accounting: LoanAccountingService, borrower: Client, owner_id: str) -> Loan:
    """1000 at 1%/day for 30 days from 2024-01-01: total 1300, ends 2024-01-31"""
    return accounting.create_loan(
        owner_id,
        borrower.id,
        principal=1000,
        start_date="2024-01-01",
        interest_mode="percentage",
        interest_value=1,
        term_days=30,
        daily_installment=43.33,
    )


@pytest.fixture
def today() -> date:
    return date(2024, 1, 15)


@pytest.fixture
def client(store: HierarchyStore, identity: IdentityService) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_identity] = lambda: identity
    return TestClient(app)


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    """Register an account and return its bearer header"""
    response = client.post(
        "/v1/auth/register",
        json={"email": "lender@example.com", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
