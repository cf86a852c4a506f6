"""
Project operations shared by the tenant and admin route modules.

Each helper authorizes through ProjectPolicy, calls the service inside
`service_errors()` and returns a response payload.
"""
import logging
from typing import Callable, Dict, Optional

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from sannu.api.errors import service_errors
from sannu.api.schemas import ProductResponse, ProjectDetailResponse, ProjectResponse
from sannu.auth.policies import ProjectPolicy
from sannu.auth.rbac import authorize
from sannu.models.product import Product
from sannu.models.project import Project
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.services.image_service import ImageService, UploadedImage
from sannu.services.product_service import ProductService
from sannu.services.project_service import ProjectService
from sannu.tenancy.scoping import without_tenant_scope

logger = logging.getLogger(__name__)

LIFECYCLE_ACTIONS: Dict[str, Callable] = {
    "activate": ProjectPolicy.activate,
    "pause": ProjectPolicy.pause,
    "resume": ProjectPolicy.resume,
    "complete": ProjectPolicy.complete,
    "cancel": ProjectPolicy.cancel,
}

LIFECYCLE_MESSAGES = {
    "activate": "Project activated successfully.",
    "pause": "Project paused successfully.",
    "resume": "Project resumed successfully.",
    "complete": "Project completed successfully.",
    "cancel": "Project cancelled successfully.",
}


def find_project(db: Session, project_id: int, cross_tenant: bool = False) -> Project:
    """Load a project, subject to the tenant scope unless `cross_tenant`. 404 when missing."""
    query = db.query(Project).filter(Project.id == project_id)
    if cross_tenant:
        query = without_tenant_scope(query)
    project = query.first()
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def find_product(db: Session, project: Project, product_id: int) -> Product:
    product = without_tenant_scope(db.query(Product)).filter(
        Product.id == product_id, Product.project_id == project.id
    ).first()
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedImage]:
    if upload is None or not upload.filename:
        return None
    return UploadedImage(
        filename=upload.filename,
        content_type=upload.content_type or "",
        content=upload.file.read(),
    )


def project_permissions(user: User, project: Project) -> dict:
    return {
        "update": ProjectPolicy.update(user, project),
        "delete": ProjectPolicy.delete(user, project),
        "manage_products": ProjectPolicy.manage_products(user, project),
        "invite_users": ProjectPolicy.invite_users(user, project),
        **{action: check(user, project) for action, check in LIFECYCLE_ACTIONS.items()},
    }


def project_detail(user: User, project: Project) -> dict:
    statistics = project.get_statistics() if ProjectPolicy.view_statistics(user, project) else None
    return {
        "project": ProjectDetailResponse.model_validate(project),
        "statistics": statistics,
        "can": project_permissions(user, project),
        "valid_transitions": [s.value for s in project.status_enum.valid_transitions()],
    }


# ==================== Project CRUD ====================

def update_project(
    db: Session,
    user: User,
    project: Project,
    data: dict,
    move_to: Optional[Tenant] = None,
) -> ProjectResponse:
    authorize(ProjectPolicy.update(user, project))
    with service_errors():
        project = ProjectService(db).update_project(project, data, user, move_to=move_to)
    return ProjectResponse.model_validate(project)


def delete_project(db: Session, user: User, project: Project, image_service: ImageService) -> dict:
    authorize(ProjectPolicy.delete(user, project))
    with service_errors():
        ProjectService(db, image_service).delete_project(project, user)
    return {"message": "Project deleted successfully."}


def change_status(db: Session, user: User, project: Project, action: str, reason: Optional[str] = None) -> dict:
    """Run one lifecycle action: activate, pause, resume, complete or cancel."""
    authorize(LIFECYCLE_ACTIONS[action](user, project))

    service = ProjectService(db)
    with service_errors():
        if action == "cancel":
            project = service.cancel_project(project, user, reason)
        else:
            project = getattr(service, f"{action}_project")(project, user)

    return {"message": LIFECYCLE_MESSAGES[action], "project": ProjectResponse.model_validate(project)}


# ==================== Products ====================

def add_product(
    db: Session,
    user: User,
    project: Project,
    data: dict,
    image: Optional[UploadFile],
    image_service: ImageService,
) -> ProductResponse:
    authorize(ProjectPolicy.manage_products(user, project))
    with service_errors():
        product = ProductService(db, image_service).add_product(project, data, read_upload(image))
    return ProductResponse.model_validate(product)


def update_product(
    db: Session,
    user: User,
    project: Project,
    product_id: int,
    data: dict,
    image: Optional[UploadFile],
    remove_image: bool,
    image_service: ImageService,
) -> ProductResponse:
    authorize(ProjectPolicy.manage_products(user, project))
    product = find_product(db, project, product_id)
    with service_errors():
        product = ProductService(db, image_service).update_product(
            product, data, read_upload(image), remove_image=remove_image
        )
    return ProductResponse.model_validate(product)


def delete_product(db: Session, user: User, project: Project, product_id: int, image_service: ImageService) -> dict:
    authorize(ProjectPolicy.manage_products(user, project))
    product = find_product(db, project, product_id)
    with service_errors():
        ProductService(db, image_service).delete_product(product)
    return {"message": "Product deleted successfully."}


def reorder_products(db: Session, user: User, project: Project, order: list) -> dict:
    authorize(ProjectPolicy.manage_products(user, project))
    with service_errors():
        ProductService(db).reorder_products(project, order)
    return {"message": "Products reordered successfully."}


def product_form_data(name: Optional[str], description: Optional[str], price: Optional[str]) -> dict:
    """Collect submitted multipart fields, leaving out the ones not sent."""
    data = {}
    if name is not None:
        data["name"] = name
    if description is not None:
        data["description"] = description
    if price is not None:
        data["price"] = price
    return data
