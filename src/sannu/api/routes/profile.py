"""
API routes for the signed-in user's own account.

Endpoints:
- GET /settings/profile - Show the profile
- PATCH /settings/profile - Change name and email
- PUT /settings/password - Change the password
- DELETE /settings/profile - Delete the account
"""
import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from sannu.api.routes.auth import NAME_PATTERN
from sannu.api.schemas import CleanedModel, UserResponse
from sannu.auth.session_auth import clear_session_cookie, client_ip, get_current_user
from sannu.db.database import get_db
from sannu.exceptions import ValidationError
from sannu.models.user import User
from sannu.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


# ==================== Request/Response Models ====================

class ProfileUpdateRequest(CleanedModel):
    name: str = Field(..., min_length=1, max_length=255, pattern=NAME_PATTERN)
    email: EmailStr


class PasswordUpdateRequest(BaseModel):
    current_password: str
    password: str = Field(..., min_length=8)
    password_confirmation: str


class DeleteAccountRequest(BaseModel):
    password: str


class ProfileResponse(BaseModel):
    user: UserResponse
    must_verify_email: bool
    message: str = ""


# ==================== Endpoints ====================

@router.get("/profile", response_model=ProfileResponse)
def show_profile(user: User = Depends(get_current_user)):
    return ProfileResponse(user=UserResponse.model_validate(user), must_verify_email=user.email_verified_at is None)


@router.patch("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdateRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name and email; a changed email has to be verified again."""
    email_changed = str(body.email).lower() != user.email
    user = AuthService(db).update_profile(user, body.name, str(body.email), client_ip(request))

    message = "Profile updated successfully."
    if email_changed:
        message = "Profile updated successfully. Please verify your new email address."
    return ProfileResponse(
        user=UserResponse.model_validate(user),
        must_verify_email=user.email_verified_at is None,
        message=message,
    )


@router.put("/password")
def update_password(
    body: PasswordUpdateRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Change the password; other devices are logged out, this one stays signed in."""
    if body.password != body.password_confirmation:
        raise ValidationError.single("password", "The password field confirmation does not match.")

    AuthService(db).change_password(
        user, body.current_password, body.password,
        ip_address=client_ip(request),
        keep_session_id=request.state.session.id,
    )
    return {"message": "Password updated successfully."}


@router.delete("/profile")
def delete_account(
    body: DeleteAccountRequest,
    request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete the account after confirming the password, and log out."""
    AuthService(db).delete_account(user, body.password, client_ip(request))
    clear_session_cookie(response)
    return {"message": "Your account has been successfully deleted.", "redirect": "/"}
