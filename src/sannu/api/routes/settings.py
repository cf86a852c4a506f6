"""
API routes for account session management.

Endpoints:
- GET /settings/sessions - List the user's sessions
- DELETE /settings/sessions/{session_id} - Revoke one session
- POST /settings/sessions/destroy-others - Log out other devices
- POST /settings/sessions/clear-tenant-context - Forget the selected tenant
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sannu.auth.passwords import verify_password
from sannu.auth.session_auth import client_ip, get_current_user
from sannu.db.database import get_db
from sannu.exceptions import ValidationError
from sannu.models.user import User
from sannu.services.session_service import SessionService

router = APIRouter(prefix="/settings/sessions", tags=["settings"])


# ==================== Request/Response Models ====================

class SessionInfo(BaseModel):
    id: str
    ip_address: str
    user_agent: str
    last_activity: Optional[datetime]
    is_current: bool
    location: str


class SessionsResponse(BaseModel):
    sessions: List[SessionInfo]
    tenant_context: Optional[dict] = None
    should_verify: bool


class DestroyOthersRequest(BaseModel):
    password: str


# ==================== Endpoints ====================

@router.get("", response_model=SessionsResponse)
def list_sessions(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = SessionService(db)
    current = request.state.session
    return SessionsResponse(
        sessions=service.get_user_active_sessions(user, current.id),
        tenant_context=service.get_tenant_context(current),
        should_verify=service.should_prompt_for_verification(current, client_ip(request)),
    )


@router.delete("/{session_id}")
def revoke_session(session_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if not SessionService(db).revoke_session(session_id, user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return {"message": "Session revoked successfully."}


@router.post("/destroy-others")
def destroy_other_sessions(
    body: DestroyOthersRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Log out every other session after confirming the password."""
    if not verify_password(body.password, user.password_hash):
        raise ValidationError.single("password", "The provided password is incorrect.")

    count = SessionService(db).invalidate_all_user_sessions(
        user, except_session_id=request.state.session.id, reason="user_request"
    )
    return {"message": "Other browser sessions have been logged out.", "count": count}


@router.post("/clear-tenant-context")
def clear_tenant_context(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    SessionService(db).clear_tenant_context(request.state.session, user)
    return {"message": "Tenant context cleared.", "redirect": "/select-tenant"}
