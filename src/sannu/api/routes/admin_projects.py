"""
API routes for system admins managing projects across every tenant.

Endpoints:
- GET /admin/projects - List projects across tenants (filters, tenant_id)
- POST /admin/projects - Create a project for a tenant
- GET /admin/projects/{id} - Show any project
- PUT /admin/projects/{id} - Update a project (optionally moving it to another tenant)
- DELETE /admin/projects/{id} - Delete a project without contributions
- POST /admin/projects/{id}/activate|pause|resume|complete|cancel - Status changes
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from sannu.api import project_actions
from sannu.api.dependencies.services import get_image_service
from sannu.api.errors import service_errors
from sannu.api.schemas import (
    AdminProjectCreateRequest,
    CancelProjectRequest,
    ProjectPage,
    ProjectResponse,
    ProjectUpdateRequest,
    TenantSummary,
    serialize_page,
)
from sannu.auth.permissions import Gate
from sannu.auth.policies import ProjectPolicy
from sannu.auth.rbac import authorize, require_gate
from sannu.db.database import get_db
from sannu.models.enums import ProjectStatus, ProjectVisibility
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.services.audit_log_service import AuditLogService
from sannu.services.image_service import ImageService
from sannu.services.project_service import ProjectService
from sannu.utils.pagination import DEFAULT_PER_PAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/projects", tags=["admin-projects"])

require_platform_admin = require_gate(Gate.MANAGE_PLATFORM)


class AdminProjectUpdateRequest(ProjectUpdateRequest):
    tenant_id: Optional[int] = None


def _admin_filters(
    search: Optional[str] = None,
    status_filter: Optional[List[ProjectStatus]] = Query(None, alias="status"),
    visibility: Optional[ProjectVisibility] = None,
    tenant_id: Optional[int] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: Optional[str] = None,
    sort_direction: Optional[str] = Query(None, pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
) -> dict:
    filters = {
        "search": search,
        "status": [s.value for s in status_filter] if status_filter else None,
        "visibility": visibility.value if visibility else None,
        "tenant_id": tenant_id,
        "min_amount": min_amount,
        "max_amount": max_amount,
        "start_date": start_date,
        "end_date": end_date,
        "sort_by": sort_by,
        "sort_direction": sort_direction,
        "page": page,
        "per_page": per_page,
    }
    return {key: value for key, value in filters.items() if value is not None}


def _get_tenant(db: Session, tenant_id: int) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def _active_tenants(db: Session) -> List[TenantSummary]:
    tenants = db.query(Tenant).filter(Tenant.is_active.is_(True)).order_by(Tenant.name).all()
    return [TenantSummary.model_validate(t) for t in tenants]


# ==================== Projects ====================

@router.get("")
def list_all_projects(
    filters: dict = Depends(_admin_filters),
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    authorize(ProjectPolicy.view_cross_tenant(admin))
    page = ProjectService(db).get_all_projects(filters)
    return {
        "projects": ProjectPage(**serialize_page(page, ProjectResponse)),
        "tenants": _active_tenants(db),
    }


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project_for_tenant(
    body: AdminProjectCreateRequest,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    """Create a project on behalf of a tenant; the admin is recorded as creator."""
    tenant = _get_tenant(db, body.tenant_id)
    authorize(ProjectPolicy.create_for_tenant(admin, tenant.id))
    data = body.model_dump(exclude_unset=True, exclude={"tenant_id"})

    with service_errors():
        project = ProjectService(db).create_project(data, tenant, admin)

    AuditLogService(db).log_project_event(
        "project_created_by_admin", project, admin,
        extra={"tenant_name": tenant.name, "admin_override": True},
    )
    db.commit()
    logger.info(f"Admin {admin.id} created project {project.id} for tenant {tenant.slug}")
    return project


@router.get("/{project_id}")
def show_any_project(
    project_id: int,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    authorize(ProjectPolicy.view_cross_tenant(admin))
    project = project_actions.find_project(db, project_id, cross_tenant=True)
    detail = project_actions.project_detail(admin, project)
    detail["tenant"] = TenantSummary.model_validate(project.tenant)
    return detail


@router.put("/{project_id}", response_model=ProjectResponse)
def update_any_project(
    project_id: int,
    body: AdminProjectUpdateRequest,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    """Update any project; a new tenant_id moves it (and its products) in the same commit."""
    project = project_actions.find_project(db, project_id, cross_tenant=True)
    move_to = _get_tenant(db, body.tenant_id) if body.tenant_id else None
    if move_to is not None:
        authorize(ProjectPolicy.override_restrictions(admin))

    data = body.model_dump(exclude_unset=True, exclude={"tenant_id"})
    updated = project_actions.update_project(db, admin, project, data, move_to=move_to)

    AuditLogService(db).log_project_event("project_updated_by_admin", project, admin, extra={"admin_override": True})
    db.commit()
    return updated


@router.delete("/{project_id}")
def delete_any_project(
    project_id: int,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
    image_service: ImageService = Depends(get_image_service),
):
    project = project_actions.find_project(db, project_id, cross_tenant=True)
    project_name, tenant_name = project.name, project.tenant.name
    project_actions.delete_project(db, admin, project, image_service)
    return {"message": f"Project '{project_name}' from tenant '{tenant_name}' deleted successfully."}


# ==================== Status changes ====================

@router.post("/{project_id}/{action}")
def change_any_project_status(
    project_id: int,
    action: str,
    body: Optional[CancelProjectRequest] = None,
    admin: User = Depends(require_platform_admin),
    db: Session = Depends(get_db),
):
    """Run activate, pause, resume, complete or cancel on any project."""
    if action not in project_actions.LIFECYCLE_ACTIONS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    project = project_actions.find_project(db, project_id, cross_tenant=True)
    reason = body.reason if body and action == "cancel" else None
    return project_actions.change_status(db, admin, project, action, reason=reason)
