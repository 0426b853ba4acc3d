"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from loan_tracker.domain.exceptions import AuthenticationError, StoreError
from loan_tracker.domain.models import Account
from loan_tracker.infrastructure.clients.notifier import PasswordResetNotifier
from loan_tracker.infrastructure.database.session import SessionLocal
from loan_tracker.infrastructure.store import HierarchyStore
from loan_tracker.services.accounting import LoanAccountingService
from loan_tracker.services.clients import ClientService
from loan_tracker.services.identity import IdentityService
from loan_tracker.services.reporting import ReportingService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache(maxsize=1)
def get_store() -> HierarchyStore:
    """Shared hierarchy store; one broker so every writer reaches every subscriber"""
    return HierarchyStore(SessionLocal)


@lru_cache(maxsize=1)
def get_identity() -> IdentityService:
    return IdentityService(SessionLocal)


def get_notifier() -> PasswordResetNotifier:
    """Provide password reset webhook client instance"""
    return PasswordResetNotifier()


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Token from an 'Authorization: Bearer <token>' header"""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token.strip()


def get_current_account(
    token: str = Depends(get_bearer_token),
    identity: IdentityService = Depends(get_identity),
) -> Account:
    """Signed-in account; its id scopes every hierarchy call"""
    try:
        return identity.resolve(token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=503, detail="Identity service unavailable")


def get_client_service(store: HierarchyStore = Depends(get_store)) -> ClientService:
    return ClientService(store)


def get_accounting_service(store: HierarchyStore = Depends(get_store)) -> LoanAccountingService:
    return LoanAccountingService(store)


def get_reporting_service(store: HierarchyStore = Depends(get_store)) -> ReportingService:
    return ReportingService(store)
