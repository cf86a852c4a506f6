"""
API routes for authentication.

Endpoints:
- POST /login - Log in with email and password
- POST /logout - End the current session
- POST /register - Create a contributor account
- POST /forgot-password - Email a password reset link
- POST /reset-password - Set a new password from a reset token
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from sannu.api.dependencies.services import get_email_service
from sannu.api.schemas import CleanedModel, UserResponse
from sannu.auth.session_auth import (
    clear_session_cookie,
    client_ip,
    get_current_session,
    get_optional_user,
    set_session_cookie,
)
from sannu.db.database import get_db
from sannu.exceptions import ValidationError
from sannu.models.user import User
from sannu.models.user_session import UserSession
from sannu.services.audit_log_service import AuditLogService
from sannu.services.auth_service import AuthService, post_login_redirect
from sannu.services.email_service import EmailService
from sannu.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

RESET_LINK_SENT = "If that email address is registered, we have emailed a password reset link."
NAME_PATTERN = r"^[a-zA-Z\s\-\'\.]+$"


# ==================== Request/Response Models ====================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember: bool = False


class RegisterRequest(CleanedModel):
    name: str = Field(..., min_length=1, max_length=255, pattern=NAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8)
    password_confirmation: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    email: EmailStr
    password: str = Field(..., min_length=8)
    password_confirmation: str


class LoginResponse(BaseModel):
    user: UserResponse
    redirect: str


def _confirm_password(password: str, confirmation: str) -> None:
    if password != confirmation:
        raise ValidationError.single("password", "The password field confirmation does not match.")


# ==================== Endpoints ====================

@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Authenticate with email and password.

    Throttled to 5 attempts per email and IP per minute.
    """
    ip = client_ip(request)
    user_agent = request.headers.get("user-agent")

    service = AuthService(db)
    user = service.attempt_login(body.email, body.password, ip, user_agent)
    session = service.complete_login(user, ip, user_agent)
    set_session_cookie(response, session, remember=body.remember)

    return LoginResponse(user=UserResponse.model_validate(user), redirect=post_login_redirect(user))


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    session: Optional[UserSession] = Depends(get_current_session),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    # An expired session was already removed while resolving the user
    if session is not None and user is not None:
        AuditLogService(db).log_auth_event(
            "logout", user, client_ip(request), request.headers.get("user-agent")
        )
        SessionService(db).destroy_session(session, user)
    clear_session_cookie(response)
    return {"redirect": "/"}


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Create a contributor account and log it in."""
    _confirm_password(body.password, body.password_confirmation)

    service = AuthService(db)
    user = service.register(body.name, body.email, body.password)
    session = service.complete_login(user, client_ip(request), request.headers.get("user-agent"))
    set_session_cookie(response, session)

    return LoginResponse(user=UserResponse.model_validate(user), redirect="/dashboard")


@router.post("/forgot-password")
def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Always answers with the same message, whether or not the email exists."""
    token = AuthService(db).request_password_reset(body.email)
    if token is not None:
        background_tasks.add_task(email_service.send_password_reset, body.email.lower(), token)
    return {"message": RESET_LINK_SENT}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    _confirm_password(body.password, body.password_confirmation)
    AuthService(db).reset_password(body.email, body.token, body.password)
    return {"message": "Your password has been reset.", "redirect": "/login"}
