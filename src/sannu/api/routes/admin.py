"""
API routes for system administration.

Endpoints:
- GET /admin/dashboard - Platform counts
- GET /admin/tenant-applications - List applications (status, search)
- GET /admin/tenant-applications/{id} - Show one application
- POST /admin/tenant-applications/{id}/approve - Approve and provision tenant
- POST /admin/tenant-applications/{id}/reject - Reject with a reason
- GET /admin/tenants - List tenants with metrics
- POST /admin/tenants/{id}/suspend - Suspend a tenant
- POST /admin/tenants/{id}/activate - Re-activate a tenant
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from sannu.api.dependencies.services import get_email_service
from sannu.api.errors import service_errors
from sannu.api.schemas import TenantResponse, UserResponse, serialize_page
from sannu.auth.permissions import Gate
from sannu.auth.rbac import require_gate
from sannu.db.database import get_db
from sannu.models.enums import ProjectStatus, TenantApplicationStatus, TenantStatus
from sannu.models.project import Project
from sannu.models.tenant import Tenant
from sannu.models.tenant_application import TenantApplication
from sannu.models.user import User
from sannu.services.email_service import EmailService
from sannu.services.tenant_application_service import TenantApplicationService
from sannu.services.tenant_service import TenantService
from sannu.tenancy.scoping import without_tenant_scope
from sannu.utils.pagination import DEFAULT_PER_PAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

require_platform_admin = require_gate(Gate.MANAGE_PLATFORM)
require_application_admin = require_gate(Gate.MANAGE_TENANT_APPLICATIONS)


# ==================== Request/Response Models ====================

class TenantApplicationResponse(BaseModel):
    id: int
    reference_number: str
    organization_name: str
    business_description: str
    industry_type: str
    contact_person_name: str
    contact_person_email: str
    contact_person_phone: Optional[str] = None
    business_registration_number: Optional[str] = None
    website_url: Optional[str] = None
    status: str
    status_label: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewer_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TenantApplicationPage(BaseModel):
    data: List[TenantApplicationResponse]
    total: int
    page: int
    per_page: int
    last_page: int
    status_counts: Dict[str, int]


class ApproveRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class RejectRequest(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class SuspendRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class TenantWithMetrics(TenantResponse):
    metrics: Dict[str, Any] = {}


class AdminDashboardResponse(BaseModel):
    user: UserResponse
    stats: Dict[str, int]


def _get_application(db: Session, application_id: int) -> TenantApplication:
    application = db.get(TenantApplication, application_id)
    if application is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    return application


def _get_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


# ==================== Dashboard ====================

@router.get("/dashboard", response_model=AdminDashboardResponse)
def admin_dashboard(admin: User = Depends(require_platform_admin), db: Session = Depends(get_db)):
    projects = without_tenant_scope(db.query(func.count(Project.id)))
    stats = {
        "total_tenants": db.query(func.count(Tenant.id)).scalar(),
        "active_tenants": db.query(func.count(Tenant.id)).filter(Tenant.status == TenantStatus.ACTIVE.value).scalar(),
        "pending_applications": db.query(func.count(TenantApplication.id)).filter(
            TenantApplication.status == TenantApplicationStatus.PENDING.value
        ).scalar(),
        "total_users": db.query(func.count(User.id)).scalar(),
        "total_projects": projects.scalar(),
        "active_projects": projects.filter(Project.status == ProjectStatus.ACTIVE.value).scalar(),
    }
    return AdminDashboardResponse(user=UserResponse.model_validate(admin), stats=stats)


# ==================== Tenant Applications ====================

@router.get("/tenant-applications", response_model=TenantApplicationPage)
def list_tenant_applications(
    status_filter: Optional[TenantApplicationStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
    admin: User = Depends(require_application_admin),
    db: Session = Depends(get_db),
):
    service = TenantApplicationService(db)
    result = service.list_applications(
        status=status_filter.value if status_filter else None,
        search=search,
        page=page,
        per_page=per_page,
    )
    result["status_counts"] = service.status_counts()
    return serialize_page(result, TenantApplicationResponse)


@router.get("/tenant-applications/{application_id}", response_model=TenantApplicationResponse)
def show_tenant_application(
    application_id: int,
    admin: User = Depends(require_application_admin),
    db: Session = Depends(get_db),
):
    return _get_application(db, application_id)


@router.post("/tenant-applications/{application_id}/approve")
def approve_tenant_application(
    application_id: int,
    body: ApproveRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_application_admin),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Approve the application, create the tenant and its first admin."""
    application = _get_application(db, application_id)
    service = TenantApplicationService(db, email_service, dispatch=background_tasks.add_task)
    with service_errors():
        tenant = service.approve_application(application, admin, body.notes)

    return {
        "message": f"Application approved. Tenant '{tenant.name}' has been created.",
        "tenant": TenantResponse.model_validate(tenant),
    }


@router.post("/tenant-applications/{application_id}/reject")
def reject_tenant_application(
    application_id: int,
    body: RejectRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_application_admin),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    application = _get_application(db, application_id)
    service = TenantApplicationService(db, email_service, dispatch=background_tasks.add_task)
    with service_errors():
        service.reject_application(application, body.rejection_reason, admin, body.notes)

    return {"message": "Application rejected.", "reference_number": application.reference_number}


# ==================== Tenants ====================

@router.get("/tenants", response_model=List[TenantWithMetrics])
def list_tenants(
    status_filter: Optional[TenantStatus] = Query(None, alias="status"),
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Tenant)
    if status_filter is not None:
        query = query.filter(Tenant.status == status_filter.value)
    tenants = query.order_by(Tenant.created_at.desc(), Tenant.id.desc()).all()
    return [
        TenantWithMetrics.model_validate(t).model_copy(update={"metrics": t.get_metrics()})
        for t in tenants
    ]


@router.post("/tenants/{tenant_id}/suspend", response_model=TenantResponse)
def suspend_tenant(
    tenant_id: int,
    body: SuspendRequest,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    tenant = _get_tenant(db, tenant_id)
    with service_errors():
        return TenantService(db).suspend(tenant, body.reason, admin)


@router.post("/tenants/{tenant_id}/activate", response_model=TenantResponse)
def activate_tenant(
    tenant_id: int,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    return TenantService(db).activate(_get_tenant(db, tenant_id), admin)
