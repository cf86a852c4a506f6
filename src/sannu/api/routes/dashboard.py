"""
API routes for the global (non-tenant) user area.

Endpoints:
- GET /dashboard - Current user and their tenants
- GET /select-tenant - Tenants the user can work in
- POST /select-tenant - Store the selected tenant in the session
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sannu.api.schemas import TenantSummary, UserResponse
from sannu.auth.rbac import forbid
from sannu.auth.session_auth import get_current_session, get_current_user
from sannu.db.database import get_db
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.models.user_session import UserSession
from sannu.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


# ==================== Request/Response Models ====================

class TenantChoice(TenantSummary):
    role: Optional[str] = None


class DashboardResponse(BaseModel):
    user: UserResponse
    tenants: List[TenantChoice]
    tenant_context: Optional[dict] = None
    needs_tenant_selection: bool


class SelectTenantRequest(BaseModel):
    tenant_id: int


class SelectTenantResponse(BaseModel):
    tenant: TenantSummary
    redirect: str


def _available_tenants(user: User, db: Session) -> List[TenantChoice]:
    if user.is_system_admin():
        tenants = db.query(Tenant).order_by(Tenant.name).all()
        return [
            TenantChoice.model_validate(t).model_copy(update={"role": "system_admin"})
            for t in tenants if t.is_active_tenant()
        ]
    return [
        TenantChoice.model_validate(t).model_copy(update={"role": user.get_role_in_tenant(t.id)})
        for t in user.tenants()
    ]


# ==================== Endpoints ====================

@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    user: User = Depends(get_current_user),
    session: Optional[UserSession] = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return DashboardResponse(
        user=UserResponse.model_validate(user),
        tenants=_available_tenants(user, db),
        tenant_context=SessionService(db).get_tenant_context(session),
        needs_tenant_selection=user.needs_tenant_selection(),
    )


@router.get("/select-tenant", response_model=List[TenantChoice])
def list_selectable_tenants(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _available_tenants(user, db)


@router.post("/select-tenant", response_model=SelectTenantResponse, status_code=status.HTTP_200_OK)
def select_tenant(
    body: SelectTenantRequest,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Select the tenant to work in for this session.

    Returns the tenant and the redirect to its dashboard.
    """
    session = request.state.session
    if not SessionService(db).set_tenant_context(session, user, body.tenant_id):
        raise forbid("You do not have access to this tenant.")

    tenant = db.get(Tenant, body.tenant_id)
    return SelectTenantResponse(
        tenant=TenantSummary.model_validate(tenant),
        redirect=f"/{tenant.slug}/dashboard",
    )
