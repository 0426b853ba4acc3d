"""/v1/auth - registration, sign-in, sign-out and password reset"""

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from loan_tracker.api.dependencies import get_bearer_token, get_identity, get_notifier, get_request_id
from loan_tracker.api.errors import domain_errors
from loan_tracker.api.v1.schemas import (
    CredentialsRequest,
    MessageResponse,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    SessionResponse,
)
from loan_tracker.infrastructure.clients.notifier import PasswordResetNotifier
from loan_tracker.services.identity import IdentityService, normalize_email

router = APIRouter()


@router.post("/auth/register", response_model=SessionResponse, status_code=201)
def register(
    body: CredentialsRequest,
    request: Request,
    identity: IdentityService = Depends(get_identity),
):
    """Create an account; the new account is signed in straight away"""
    with domain_errors("register", get_request_id(request)):
        session = identity.register(body.email, body.password)
    return SessionResponse.model_validate(session)


@router.post("/auth/login", response_model=SessionResponse)
def login(
    body: CredentialsRequest,
    request: Request,
    identity: IdentityService = Depends(get_identity),
):
    with domain_errors("login", get_request_id(request)):
        session = identity.sign_in(body.email, body.password)
    return SessionResponse.model_validate(session)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    identity: IdentityService = Depends(get_identity),
):
    with domain_errors("logout", get_request_id(request)):
        identity.sign_out(token)
    return MessageResponse(message="Signed out")


@router.post("/auth/password-reset", response_model=MessageResponse, status_code=202)
def send_password_reset(
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    identity: IdentityService = Depends(get_identity),
    notifier: PasswordResetNotifier = Depends(get_notifier),
):
    """Issue a reset token and hand it to the mail webhook in the background"""
    with domain_errors("password reset", get_request_id(request)):
        reset_token = identity.send_password_reset(body.email)

    background_tasks.add_task(notifier.send_password_reset, normalize_email(body.email), reset_token)
    return MessageResponse(message="Password reset email sent")


@router.post("/auth/password-reset/confirm", response_model=MessageResponse)
def confirm_password_reset(
    body: PasswordResetConfirmRequest,
    request: Request,
    identity: IdentityService = Depends(get_identity),
):
    with domain_errors("password reset confirmation", get_request_id(request)):
        identity.reset_password(body.reset_token, body.new_password)
    return MessageResponse(message="Password updated")
