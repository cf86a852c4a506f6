"""
API routes for public project discovery (no tenant context, no login).

Endpoints:
- GET /projects - Public, active projects across tenants
- GET /projects/search - Search public projects
- GET /projects/{tenant_slug}/{project_slug} - Show one public project
"""
import logging
import re
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from sannu.api.schemas import ProjectDetailResponse, ProjectPage, ProjectResponse, serialize_page
from sannu.config import get_app_url
from sannu.db.database import get_db
from sannu.models.enums import ProjectStatus
from sannu.models.project import Project
from sannu.models.tenant import Tenant
from sannu.services.image_service import ImageService
from sannu.services.project_service import ProjectService
from sannu.tenancy.scoping import without_tenant_scope
from sannu.utils.pagination import DEFAULT_PER_PAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["public-projects"])

TAG_RE = re.compile(r"<[^>]+>")


def _public_filters(
    search: Optional[str] = Query(None, max_length=255),
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: Optional[str] = None,
    sort_direction: Optional[str] = Query(None, pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
) -> dict:
    filters = {
        "search": search,
        "status": status_filter.value if status_filter else None,
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


def _json_filters(filters: dict) -> dict:
    return {key: str(value) if isinstance(value, (Decimal, date)) else value for key, value in filters.items()}


# ==================== Endpoints ====================

@router.get("")
def discover_projects(filters: dict = Depends(_public_filters), db: Session = Depends(get_db)):
    page = ProjectService(db).get_public_projects(filters)
    return {
        "projects": ProjectPage(**serialize_page(page, ProjectResponse)),
        "filters": _json_filters(filters),
        "meta": {
            "title": "Discover Projects",
            "description": "Browse and discover contribution-based projects from organizations across the platform.",
            "keywords": "projects, contributions, crowdfunding, community projects",
        },
    }


@router.get("/search")
def search_projects(filters: dict = Depends(_public_filters), db: Session = Depends(get_db)):
    term = filters.get("search", "")
    page = ProjectService(db).search_projects(term, filters)
    return {
        "projects": ProjectPage(**serialize_page(page, ProjectResponse)),
        "search_term": term,
        "filters": _json_filters(filters),
        "meta": {
            "title": f"Search Results for '{term}'" if term else "Search Projects",
            "description": "Search and filter contribution-based projects to find ones that interest you.",
            "noindex": True,
        },
    }


@router.get("/{tenant_slug}/{project_slug}")
def show_public_project(tenant_slug: str, project_slug: str, db: Session = Depends(get_db)):
    """
    Show a project that is public and active, with SEO meta data.

    Anything else (private, draft, paused, unknown) is a 404.
    """
    project = without_tenant_scope(db.query(Project)).join(Tenant, Project.tenant_id == Tenant.id).filter(
        Tenant.slug == tenant_slug,
        Project.slug == project_slug,
    ).first()
    if project is None or not project.is_publicly_discoverable():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")

    tenant = project.tenant
    url = f"{get_app_url().rstrip('/')}/projects/{tenant.slug}/{project.slug}"
    if project.description:
        description = TAG_RE.sub("", project.description)[:160]
    else:
        description = f"Join the {project.name} project by {tenant.name}"

    meta = {
        "title": f"{project.name} - {tenant.name}",
        "description": description,
        "keywords": ", ".join([project.name, tenant.name, "project", "contribution", "community"]),
        "og:title": project.name,
        "og:description": project.description,
        "og:type": "website",
        "og:url": url,
        "canonical": url,
    }
    if project.products and project.products[0].image_url:
        meta["og:image"] = ImageService().get_image_url(project.products[0].image_url)

    return {
        "project": ProjectDetailResponse.model_validate(project),
        "statistics": project.get_statistics(),
        "meta": meta,
    }
