"""
API routes inside a tenant (`/{tenant}` prefix, or the tenant subdomain).

Endpoints:
- GET /{tenant}/dashboard - Tenant summary for a member
- GET /{tenant}/projects - List the tenant's projects (filters)
- POST /{tenant}/projects - Create a draft project
- GET /{tenant}/projects/{id} - Show a project with products and permissions
- PUT /{tenant}/projects/{id} - Update a project
- DELETE /{tenant}/projects/{id} - Delete a project without contributions
- POST /{tenant}/projects/{id}/activate|pause|resume|complete|cancel - Status changes
- POST /{tenant}/projects/{id}/products - Add a product (multipart, optional image)
- POST /{tenant}/projects/{id}/products/reorder - Reorder products
- PUT /{tenant}/projects/{id}/products/{product_id} - Update a product
- DELETE /{tenant}/projects/{id}/products/{product_id} - Delete a product
- POST /{tenant}/projects/{id}/invitations - Invite someone to a restricted project
- GET /{tenant}/projects/{id}/audit-logs - Recent audit entries for a project
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from sannu.api import project_actions
from sannu.api.dependencies.services import get_email_service, get_image_service
from sannu.api.dependencies.tenant import identify_tenant
from sannu.api.errors import service_errors
from sannu.api.schemas import (
    AuditLogResponse,
    CancelProjectRequest,
    InvitationRequest,
    InvitationResponse,
    ProjectCreateRequest,
    ProjectPage,
    ProjectResponse,
    ProjectUpdateRequest,
    ReorderProductsRequest,
    TenantSummary,
    UserResponse,
    serialize_page,
)
from sannu.auth.permissions import Gate, can_access_tenant
from sannu.auth.policies import ProjectInvitationPolicy, ProjectPolicy
from sannu.auth.rbac import authorize, require_gate, require_roles
from sannu.auth.session_auth import get_current_user
from sannu.db.database import get_db
from sannu.models.enums import ProjectStatus, ProjectVisibility, Role
from sannu.models.project import Project
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.services.audit_log_service import AuditLogService
from sannu.services.email_service import EmailService
from sannu.services.image_service import ImageService
from sannu.services.invitation_service import InvitationService
from sannu.services.project_service import ProjectService
from sannu.utils.pagination import DEFAULT_PER_PAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{tenant}", tags=["tenant"], dependencies=[Depends(identify_tenant)])


def _project_filters(
    search: Optional[str] = None,
    status_filter: Optional[List[ProjectStatus]] = Query(None, alias="status"),
    visibility: Optional[ProjectVisibility] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    created_by: Optional[int] = None,
    sort_by: Optional[str] = None,
    sort_direction: Optional[str] = Query(None, pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
) -> dict:
    filters = {
        "search": search,
        "status": [s.value for s in status_filter] if status_filter else None,
        "visibility": visibility.value if visibility else None,
        "min_amount": min_amount,
        "max_amount": max_amount,
        "start_date": start_date,
        "end_date": end_date,
        "created_by": created_by,
        "sort_by": sort_by,
        "sort_direction": sort_direction,
        "page": page,
        "per_page": per_page,
    }
    return {key: value for key, value in filters.items() if value is not None}


# ==================== Dashboard ====================

@router.get("/dashboard")
def tenant_dashboard(
    request: Request,
    user: User = Depends(require_gate(Gate.ACCESS_TENANT)),
    db: Session = Depends(get_db),
):
    tenant: Tenant = request.state.tenant
    counts = dict(
        db.query(Project.status, func.count(Project.id)).group_by(Project.status).all()
    )
    return {
        "user": UserResponse.model_validate(user),
        "tenant": TenantSummary.model_validate(tenant),
        "role": "system_admin" if user.is_system_admin() else user.get_role_in_tenant(tenant.id),
        "project_counts": {s.value: counts.get(s.value, 0) for s in ProjectStatus},
        "can_create_projects": ProjectPolicy.create(user, tenant.id),
    }


# ==================== Projects ====================

@router.get("/projects", response_model=ProjectPage)
def list_projects(
    request: Request,
    filters: dict = Depends(_project_filters),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Members see every project of the tenant; other users only its public ones."""
    tenant: Tenant = request.state.tenant
    authorize(ProjectPolicy.view_any(user))
    if not can_access_tenant(user, tenant):
        filters["visibility"] = ProjectVisibility.PUBLIC.value
    return serialize_page(ProjectService(db).get_tenant_projects(tenant, filters), ProjectResponse)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    body: ProjectCreateRequest,
    request: Request,
    user: User = Depends(require_roles(Role.SYSTEM_ADMIN, Role.TENANT_ADMIN)),
    db: Session = Depends(get_db),
):
    tenant: Tenant = request.state.tenant
    authorize(ProjectPolicy.create(user, tenant.id))
    with service_errors():
        return ProjectService(db).create_project(body.model_dump(exclude_unset=True), tenant, user)


@router.get("/projects/{project_id}")
def show_project(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = project_actions.find_project(db, project_id)
    authorize(ProjectPolicy.view(user, project))
    return project_actions.project_detail(user, project)


@router.put("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    body: ProjectUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = project_actions.find_project(db, project_id)
    return project_actions.update_project(db, user, project, body.model_dump(exclude_unset=True))


@router.delete("/projects/{project_id}")
def delete_project(
    project_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_service: ImageService = Depends(get_image_service),
):
    project = project_actions.find_project(db, project_id)
    return project_actions.delete_project(db, user, project, image_service)


# ==================== Status changes ====================

@router.post("/projects/{project_id}/activate")
def activate_project(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return project_actions.change_status(db, user, project_actions.find_project(db, project_id), "activate")


@router.post("/projects/{project_id}/pause")
def pause_project(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return project_actions.change_status(db, user, project_actions.find_project(db, project_id), "pause")


@router.post("/projects/{project_id}/resume")
def resume_project(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return project_actions.change_status(db, user, project_actions.find_project(db, project_id), "resume")


@router.post("/projects/{project_id}/complete")
def complete_project(project_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return project_actions.change_status(db, user, project_actions.find_project(db, project_id), "complete")


@router.post("/projects/{project_id}/cancel")
def cancel_project(
    project_id: int,
    body: Optional[CancelProjectRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = project_actions.find_project(db, project_id)
    return project_actions.change_status(db, user, project, "cancel", reason=body.reason if body else None)


# ==================== Products ====================

@router.post("/projects/{project_id}/products", status_code=status.HTTP_201_CREATED)
def add_product(
    project_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_service: ImageService = Depends(get_image_service),
):
    """Add a product. The image is optional; prices are validated by the service."""
    project = project_actions.find_project(db, project_id)
    data = project_actions.product_form_data(name, description, price)
    return project_actions.add_product(db, user, project, data, image, image_service)


@router.post("/projects/{project_id}/products/reorder")
def reorder_products(
    project_id: int,
    body: ReorderProductsRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = project_actions.find_project(db, project_id)
    return project_actions.reorder_products(db, user, project, body.order)


@router.put("/projects/{project_id}/products/{product_id}")
def update_product(
    project_id: int,
    product_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    remove_image: bool = Form(False),
    image: Optional[UploadFile] = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_service: ImageService = Depends(get_image_service),
):
    project = project_actions.find_project(db, project_id)
    data = project_actions.product_form_data(name, description, price)
    return project_actions.update_product(db, user, project, product_id, data, image, remove_image, image_service)


@router.delete("/projects/{project_id}/products/{product_id}")
def delete_product(
    project_id: int,
    product_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    image_service: ImageService = Depends(get_image_service),
):
    project = project_actions.find_project(db, project_id)
    return project_actions.delete_product(db, user, project, product_id, image_service)


# ==================== Invitations ====================

@router.post(
    "/projects/{project_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
def invite_to_project(
    project_id: int,
    body: InvitationRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Invite an email address; the invitation email is sent in the background."""
    project = project_actions.find_project(db, project_id)
    authorize(ProjectInvitationPolicy.create(user, project))

    service = InvitationService(db, email_service, dispatch=background_tasks.add_task)
    with service_errors():
        return service.create_invitation(project, str(body.email), user)


# ==================== Audit logs ====================

@router.get("/projects/{project_id}/audit-logs", response_model=List[AuditLogResponse])
def project_audit_logs(
    project_id: int,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_roles(Role.SYSTEM_ADMIN, Role.TENANT_ADMIN, Role.PROJECT_MANAGER)),
    db: Session = Depends(get_db),
):
    project = project_actions.find_project(db, project_id)
    authorize(ProjectPolicy.view_audit_logs(user, project))
    return AuditLogService(db).get_project_events(project, limit=limit)
