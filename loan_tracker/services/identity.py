"""Identity - accounts, sign-in sessions and password reset"""

import hashlib
import hmac
import logging
import secrets
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from loan_tracker.domain.exceptions import (
    AuthenticationError,
    DomainException,
    NotFoundError,
    StoreError,
    ValidationError,
)
from loan_tracker.domain.models import Account, AuthSession
from loan_tracker.infrastructure.database.models import UserAccount
from loan_tracker.infrastructure.database.repositories import AccountRepository

MIN_PASSWORD_LENGTH = 6

AuthStateListener = Callable[[Optional[Account]], None]


def _generate_salt() -> str:
    return secrets.token_hex(16)


def _hash_password(password: str, salt: str) -> str:
    return hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1).hex()


def normalize_email(email: Optional[str]) -> str:
    """Trimmed, lowercased address; raises ValidationError when it is not an email"""
    email = (email or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("A valid email address is required")
    return email


def _check_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must have at least {MIN_PASSWORD_LENGTH} characters")
    return password


class IdentityService:
    """
    Email/password accounts that scope every hierarchy call.

    Each account owns exactly one client hierarchy; the account id is the
    owner id passed to the store.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._listeners: List[AuthStateListener] = []
        self._lock = threading.Lock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except DomainException:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(f"Identity store failed: {e}") from e
        finally:
            db.close()

    def on_auth_state_change(self, callback: AuthStateListener) -> Callable[[], None]:
        """Register a listener called with the account on sign-in and None on sign-out.

        Returns:
            A callable that removes the listener
        """
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, account: Optional[Account]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(account)

    def _open_session(self, repo: AccountRepository, db_account: UserAccount) -> AuthSession:
        token = secrets.token_urlsafe(32)
        repo.create_session(db_account, token)
        return AuthSession(token=token, owner_id=db_account.id, email=db_account.email)

    def register(self, email: str, password: str) -> AuthSession:
        """Create an account and sign it in"""
        email = normalize_email(email)
        password = _check_password(password)
        salt = _generate_salt()

        try:
            with self._session() as db:
                repo = AccountRepository(db)
                if repo.get_by_email(email) is not None:
                    raise ValidationError("An account with this email already exists")
                db_account = repo.create_account(email, _hash_password(password, salt), salt)
                session = self._open_session(repo, db_account)
        except StoreError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise ValidationError("An account with this email already exists") from e
            raise

        logging.info("Account registered", extra={"owner_id": session.owner_id})
        self._notify(Account(id=session.owner_id, email=session.email))
        return session

    def sign_in(self, email: str, password: str) -> AuthSession:
        email = normalize_email(email)
        with self._session() as db:
            repo = AccountRepository(db)
            db_account = repo.get_by_email(email)
            if db_account is None or not hmac.compare_digest(
                db_account.password_hash, _hash_password(password or "", db_account.password_salt)
            ):
                raise AuthenticationError("Invalid email or password")
            session = self._open_session(repo, db_account)

        logging.info("Signed in", extra={"owner_id": session.owner_id})
        self._notify(Account(id=session.owner_id, email=session.email))
        return session

    def sign_out(self, token: str) -> None:
        with self._session() as db:
            if not AccountRepository(db).delete_session(token):
                raise AuthenticationError("Session not found")
        self._notify(None)

    def resolve(self, token: Optional[str]) -> Account:
        """Account behind a bearer token"""
        if not token:
            raise AuthenticationError("Missing session token")
        with self._session() as db:
            db_session = AccountRepository(db).get_session(token)
            if db_session is None:
                raise AuthenticationError("Invalid or expired session token")
            return Account(id=db_session.account.id, email=db_session.account.email)

    def send_password_reset(self, email: str) -> str:
        """Issue a reset token for delivery to the account holder"""
        email = normalize_email(email)
        reset_token = secrets.token_urlsafe(32)
        with self._session() as db:
            db_account = AccountRepository(db).get_by_email(email)
            if db_account is None:
                raise NotFoundError("No account registered with this email")
            db_account.reset_token = reset_token

        logging.info("Password reset requested", extra={"email": email})
        return reset_token

    def reset_password(self, reset_token: str, new_password: str) -> None:
        """Set a new password and end every open session of the account"""
        new_password = _check_password(new_password)
        with self._session() as db:
            repo = AccountRepository(db)
            db_account = repo.get_by_reset_token(reset_token) if reset_token else None
            if db_account is None:
                raise AuthenticationError("Invalid or used reset token")
            db_account.password_salt = _generate_salt()
            db_account.password_hash = _hash_password(new_password, db_account.password_salt)
            db_account.reset_token = None
            repo.delete_sessions_for(db_account)
