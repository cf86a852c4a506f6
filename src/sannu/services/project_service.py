"""
Project service.

Handles:
- Creating, updating and deleting a tenant's projects
- Lifecycle transitions (activate, pause, resume, complete, cancel)
- Listings with filters for the public catalogue, tenants and admins
- Date-driven status updates run by the scheduler
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, NamedTuple, Optional, Tuple

from opentelemetry import trace
from sqlalchemy.orm import Session, selectinload

from sannu.metrics import project_status_transitions_total
from sannu.models.enums import InstallmentFrequency, PaymentType, ProjectStatus, ProjectVisibility
from sannu.models.product import Product
from sannu.models.project import Project
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.services.audit_log_service import AuditLogService
from sannu.services.image_service import ImageService
from sannu.tenancy.scoping import without_tenant_scope
from sannu.utils.clock import today, utcnow
from sannu.utils.pagination import DEFAULT_PER_PAGE, paginate
from sannu.utils.slug_utils import unique_slug

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SORTABLE_FIELDS = ["created_at", "updated_at", "name", "start_date", "end_date", "total_amount"]
PROTECTED_FIELDS = ["total_amount", "minimum_contribution", "payment_options"]
EDITABLE_FIELDS = [
    "name", "description", "visibility", "requires_approval", "max_contributors",
    "total_amount", "minimum_contribution", "payment_options", "installment_frequency",
    "custom_installment_months", "start_date", "end_date", "registration_deadline",
    "managed_by", "settings",
]

StatusChange = Tuple[Project, ProjectStatus, ProjectStatus]


class StatusSweep(NamedTuple):
    changes: List[StatusChange]
    failures: List[Tuple[Project, str]]


def _to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value}")


def _to_date(value) -> Optional[date]:
    if value is None or value == "" or isinstance(value, date):
        return value or None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValueError(f"Invalid date: {value}")


def _normalise(data: dict) -> dict:
    """Coerce incoming values to column types; unknown keys are dropped."""
    values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    for field in ("total_amount", "minimum_contribution"):
        if field in values:
            values[field] = _to_decimal(values[field])
    for field in ("start_date", "end_date", "registration_deadline"):
        if field in values:
            values[field] = _to_date(values[field])
    if isinstance(values.get("visibility"), ProjectVisibility):
        values["visibility"] = values["visibility"].value
    return values


class ProjectService:
    """Service for the project lifecycle. Raises ValueError on rule violations."""

    def __init__(self, db: Session, image_service: Optional[ImageService] = None):
        self.db = db
        self.image_service = image_service if image_service is not None else ImageService()
        self.audit = AuditLogService(db)

    # ==================== CRUD ====================

    def create_project(self, data: dict, tenant: Tenant, user: User) -> Project:
        """
        Create a draft project for `tenant`.

        Args:
            data: Project fields (name, dates, amounts, visibility, ...)
            tenant: Owning tenant
            user: Creator

        Returns:
            The new Project
        """
        values = _normalise(data)
        self.validate_project_data(values)

        project = Project(
            tenant_id=tenant.id,
            name=values["name"],
            slug=self._unique_slug(values["name"], tenant.id),
            description=values.get("description"),
            visibility=values.get("visibility") or ProjectVisibility.PUBLIC.value,
            requires_approval=bool(values.get("requires_approval", False)),
            max_contributors=values.get("max_contributors"),
            total_amount=values.get("total_amount") or Decimal("0.00"),
            minimum_contribution=values.get("minimum_contribution"),
            payment_options=values.get("payment_options") or [PaymentType.FULL.value],
            installment_frequency=values.get("installment_frequency") or InstallmentFrequency.MONTHLY.value,
            custom_installment_months=values.get("custom_installment_months"),
            start_date=values.get("start_date"),
            end_date=values.get("end_date"),
            registration_deadline=values.get("registration_deadline"),
            created_by=user.id,
            managed_by=values.get("managed_by"),
            status=ProjectStatus.DRAFT.value,
            settings=values.get("settings"),
        )
        self.db.add(project)
        self.db.flush()
        self.audit.log_project_event(
            "project_created", project, user,
            extra={"tenant_name": tenant.name},
        )
        self.db.commit()
        self.db.refresh(project)

        logger.info(f"Created project {project.id} ({project.slug}) for tenant {tenant.slug}")
        return project

    def update_project(
        self,
        project: Project,
        data: dict,
        user: User,
        move_to: Optional[Tenant] = None,
    ) -> Project:
        """
        Update project fields. Null values are ignored.

        `move_to` reassigns the project and its products to another tenant
        in the same transaction as the field changes.

        Raises:
            ValueError: Invalid data, a change to a financial field on a
                project that already has contributions, or a move of a
                project with contributions
        """
        values = _normalise(data)
        self.validate_project_data(values, project)

        has_contributions = project.has_contributions()
        if has_contributions:
            for field in PROTECTED_FIELDS:
                if values.get(field) is not None and values[field] != getattr(project, field):
                    raise ValueError(f"Cannot modify {field} for projects with existing contributions")

        moving = move_to is not None and move_to.id != project.tenant_id
        if moving and has_contributions:
            raise ValueError("Cannot move project with existing contributions to another tenant")

        if moving:
            self._move_to_tenant(project, move_to, user)

        if values.get("name") and values["name"] != project.name:
            project.slug = self._unique_slug(values["name"], project.tenant_id, exclude_id=project.id)
        elif moving:
            project.slug = self._unique_slug(project.name, project.tenant_id, exclude_id=project.id)

        changed = []
        for field, value in values.items():
            if value is None or getattr(project, field) == value:
                continue
            setattr(project, field, value)
            changed.append(field)

        self.audit.log_project_event(
            "project_updated", project, user,
            extra={"changes": changed, "changed_fields_count": len(changed)},
        )
        self.db.commit()
        self.db.refresh(project)
        return project

    def _move_to_tenant(self, project: Project, tenant: Tenant, user: User) -> None:
        original_tenant_id = project.tenant_id
        project.tenant_id = tenant.id
        products = without_tenant_scope(self.db.query(Product)).filter(Product.project_id == project.id).all()
        for product in products:
            product.tenant_id = tenant.id

        self.audit.log_project_event(
            "project_tenant_changed_by_admin", project, user,
            extra={
                "original_tenant_id": original_tenant_id,
                "new_tenant_id": tenant.id,
                "new_tenant_name": tenant.name,
                "admin_override": True,
            },
        )
        logger.info(f"Moving project {project.id} from tenant {original_tenant_id} to {tenant.id}")

    def delete_project(self, project: Project, user: User) -> bool:
        """
        Delete a project with its products and their images.

        Raises:
            ValueError: If the project has contributions
        """
        if project.has_contributions():
            raise ValueError("Cannot delete project with existing contributions")

        project_id = project.id
        images = [p.image_url for p in project.products if p.image_url]
        self.audit.log_project_event("project_deleted", project, user)
        self.db.delete(project)
        self.db.commit()

        for path in images:
            self.image_service.delete_image(path)
        logger.info(f"Deleted project {project_id} ({len(images)} product images removed)")
        return True

    def validate_project_data(self, data: dict, existing: Optional[Project] = None) -> None:
        if "name" in data and data["name"] is not None and not str(data["name"]).strip():
            raise ValueError("Project name cannot be empty")
        if existing is None and not (data.get("name") or "").strip():
            raise ValueError("Project name is required")

        start, end = data.get("start_date"), data.get("end_date")
        if start and end and end <= start:
            raise ValueError("End date must be after start date")

        if data.get("total_amount") is not None and data["total_amount"] < 0:
            raise ValueError("Total amount must be positive")
        if data.get("minimum_contribution") is not None and data["minimum_contribution"] < 0:
            raise ValueError("Minimum contribution must be positive")
        if data.get("max_contributors") is not None and int(data["max_contributors"]) < 1:
            raise ValueError("Maximum contributors must be at least 1")

        visibility = data.get("visibility")
        if visibility is not None and visibility not in [v.value for v in ProjectVisibility]:
            raise ValueError("Invalid visibility option")

    # ==================== Lifecycle ====================

    def activate_project(self, project: Project, user: User) -> Project:
        return self._transition(project, ProjectStatus.ACTIVE, user, "project_activated")

    def pause_project(self, project: Project, user: User) -> Project:
        return self._transition(project, ProjectStatus.PAUSED, user, "project_paused")

    def resume_project(self, project: Project, user: User) -> Project:
        return self._transition(project, ProjectStatus.ACTIVE, user, "project_resumed")

    def complete_project(self, project: Project, user: User) -> Project:
        return self._transition(project, ProjectStatus.COMPLETED, user, "project_completed")

    def cancel_project(self, project: Project, user: User, reason: Optional[str] = None) -> Project:
        return self._transition(project, ProjectStatus.CANCELLED, user, "project_cancelled", reason=reason)

    def _transition(
        self,
        project: Project,
        target: ProjectStatus,
        user: User,
        event: str,
        reason: Optional[str] = None,
    ) -> Project:
        self.validate_status_transition(project, target)
        previous = project.status_enum

        with tracer.start_as_current_span("project.transition") as span:
            span.set_attribute("project.id", project.id)
            span.set_attribute("project.from_status", previous.value)
            span.set_attribute("project.to_status", target.value)

            project.status = target.value
            extra = {"previous_status": previous.value}
            if target is ProjectStatus.CANCELLED:
                settings = dict(project.settings or {})
                settings.update({
                    "cancellation_reason": reason,
                    "cancelled_at": utcnow().isoformat(),
                    "cancelled_by": user.id,
                })
                project.settings = settings
                extra["reason"] = reason
            self.audit.log_project_event(event, project, user, extra=extra)
            self.db.commit()

        project_status_transitions_total.labels(to_status=target.value).inc()
        logger.info(f"Project {project.id}: {previous.value} -> {target.value} by user {user.id}")
        self.db.refresh(project)
        return project

    def validate_status_transition(self, project: Project, target: ProjectStatus) -> None:
        """
        Raises:
            ValueError: With the transition description when not allowed, or
                the first failing activation rule
        """
        current = project.status_enum
        target = ProjectStatus(target)
        if not current.can_transition_to(target):
            raise ValueError(current.transition_description(target))

        if target is ProjectStatus.ACTIVE:
            self.validate_project_for_activation(project)

        if target is ProjectStatus.CANCELLED and project.has_contributions():
            logger.warning(f"Project {project.id} with contributions is being cancelled")

    def validate_project_for_activation(self, project: Project) -> None:
        if not project.name:
            raise ValueError("Project name is required for activation")
        if not project.description:
            raise ValueError("Project description is required for activation")
        if not project.start_date or not project.end_date:
            raise ValueError("Start and end dates are required for activation")
        if project.end_date <= project.start_date:
            raise ValueError("End date must be after start date")
        if project.end_date < today():
            raise ValueError("Cannot activate project that has already ended")

        if not project.products:
            raise ValueError("At least one product is required for activation")
        product_total = project.calculate_total_amount()
        if product_total <= 0:
            raise ValueError("Project must have products with positive total amount for activation")

        total = Decimal(str(project.total_amount or 0))
        if total > 0 and abs(total - product_total) > Decimal("0.01"):
            raise ValueError("Project total amount must match sum of product prices")
        if project.minimum_contribution and Decimal(str(project.minimum_contribution)) > product_total:
            raise ValueError("Minimum contribution cannot exceed total project amount")

        options = project.payment_options
        if not options or not isinstance(options, list):
            raise ValueError("At least one payment option must be specified")
        if (
            PaymentType.INSTALLMENTS.value in options
            and project.installment_frequency == InstallmentFrequency.CUSTOM.value
            and not project.custom_installment_months
        ):
            raise ValueError("Custom installment months must be specified when using custom frequency")

        if project.registration_deadline and project.registration_deadline >= project.end_date:
            raise ValueError("Registration deadline must be before project end date")
        if project.max_contributors is not None and project.max_contributors < 1:
            raise ValueError("Maximum contributors must be at least 1")

    def is_ready_for_activation(self, project: Project) -> bool:
        try:
            self.validate_project_for_activation(project)
        except ValueError:
            return False
        return True

    # ==================== Totals and statistics ====================

    def calculate_project_total(self, project: Project) -> Decimal:
        """Write the product sum into total_amount and return it."""
        total = project.calculate_total_amount()
        project.total_amount = total
        self.db.commit()
        return total

    def get_project_statistics(self, project: Project) -> dict:
        return project.get_statistics()

    # ==================== Listings ====================

    def get_public_projects(self, filters: Optional[dict] = None) -> dict:
        filters = filters or {}
        query = Project.publicly_discoverable(self._base_query(cross_tenant=True))
        return self._paginate_with_statistics(self.apply_filters(query, filters), filters)

    def search_projects(self, term: str, filters: Optional[dict] = None, tenant: Optional[Tenant] = None) -> dict:
        filters = filters or {}
        query = self._base_query(cross_tenant=tenant is None)
        if tenant is not None:
            query = query.filter(Project.tenant_id == tenant.id)
        else:
            query = Project.publicly_discoverable(query)
        if term:
            query = Project.search(query, term)
        return self._paginate_with_statistics(self.apply_filters(query, filters), filters)

    def get_tenant_projects(self, tenant: Tenant, filters: Optional[dict] = None) -> dict:
        filters = filters or {}
        query = self._base_query().filter(Project.tenant_id == tenant.id)
        return paginate(self.apply_filters(query, filters), filters.get("page", 1), filters.get("per_page", DEFAULT_PER_PAGE))

    def get_all_projects(self, filters: Optional[dict] = None) -> dict:
        filters = filters or {}
        query = self._base_query(cross_tenant=True)
        return paginate(self.apply_filters(query, filters), filters.get("page", 1), filters.get("per_page", DEFAULT_PER_PAGE))

    def apply_filters(self, query, filters: dict):
        if filters.get("search"):
            query = Project.search(query, filters["search"])

        for field in ("status", "visibility"):
            value = filters.get(field)
            if not value:
                continue
            column = getattr(Project, field)
            query = query.filter(column.in_(value) if isinstance(value, (list, tuple)) else column == value)

        if filters.get("tenant_id"):
            query = query.filter(Project.tenant_id == int(filters["tenant_id"]))
        if filters.get("min_amount"):
            query = query.filter(Project.total_amount >= _to_decimal(filters["min_amount"]))
        if filters.get("max_amount"):
            query = query.filter(Project.total_amount <= _to_decimal(filters["max_amount"]))
        if filters.get("start_date"):
            query = query.filter(Project.start_date >= _to_date(filters["start_date"]))
        if filters.get("end_date"):
            query = query.filter(Project.end_date <= _to_date(filters["end_date"]))
        if filters.get("created_by"):
            query = query.filter(Project.created_by == int(filters["created_by"]))

        sort_by = filters.get("sort_by") or "created_at"
        if sort_by in SORTABLE_FIELDS:
            column = getattr(Project, sort_by)
            direction = (filters.get("sort_direction") or "desc").lower()
            query = query.order_by(column.asc() if direction == "asc" else column.desc(), Project.id.desc())
        return query

    def _base_query(self, cross_tenant: bool = False):
        query = self.db.query(Project).options(
            selectinload(Project.tenant),
            selectinload(Project.creator),
            selectinload(Project.products),
        )
        return without_tenant_scope(query) if cross_tenant else query

    def _paginate_with_statistics(self, query, filters: dict) -> dict:
        page = paginate(query, filters.get("page", 1), filters.get("per_page", DEFAULT_PER_PAGE))
        page["statistics"] = {p.id: p.get_statistics() for p in page["data"]}
        return page

    # ==================== Scheduled updates ====================

    def update_project_status_by_date(self, dry_run: bool = False) -> StatusSweep:
        """
        Complete active projects past their end date and activate drafts
        whose start date has arrived and that are ready.

        Returns:
            StatusSweep with a (project, from_status, to_status) entry for
            every change made (or that would be made on a dry run) and a
            (project, error) entry for every project that failed
        """
        sweep = StatusSweep([], [])
        current_day = today()

        with tracer.start_as_current_span("project.status_sweep") as span:
            span.set_attribute("sweep.dry_run", dry_run)

            expired = without_tenant_scope(self.db.query(Project)).filter(
                Project.status == ProjectStatus.ACTIVE.value,
                Project.end_date < current_day,
            ).all()
            for project in expired:
                try:
                    if not dry_run:
                        project.status = ProjectStatus.COMPLETED.value
                        self.db.commit()
                        project_status_transitions_total.labels(to_status=ProjectStatus.COMPLETED.value).inc()
                        logger.info(f"Project {project.id} automatically completed: end date {project.end_date} reached")
                    sweep.changes.append((project, ProjectStatus.ACTIVE, ProjectStatus.COMPLETED))
                except Exception as e:
                    self.db.rollback()
                    logger.error(f"Failed to auto-complete project {project.id}: {e}")
                    sweep.failures.append((project, str(e)))

            starting = without_tenant_scope(self.db.query(Project)).filter(
                Project.status == ProjectStatus.DRAFT.value,
                Project.start_date.isnot(None),
                Project.start_date <= current_day,
            ).all()
            for project in starting:
                try:
                    if not self.is_ready_for_activation(project):
                        continue
                    if not dry_run:
                        project.status = ProjectStatus.ACTIVE.value
                        self.db.commit()
                        project_status_transitions_total.labels(to_status=ProjectStatus.ACTIVE.value).inc()
                        logger.info(f"Project {project.id} automatically activated: start date {project.start_date} reached")
                    sweep.changes.append((project, ProjectStatus.DRAFT, ProjectStatus.ACTIVE))
                except Exception as e:
                    self.db.rollback()
                    logger.error(f"Failed to auto-activate project {project.id}: {e}")
                    sweep.failures.append((project, str(e)))

            span.set_attribute("sweep.changes", len(sweep.changes))
            span.set_attribute("sweep.failures", len(sweep.failures))

        logger.info(
            f"Date-based status update: {len(sweep.changes)} projects {'would change' if dry_run else 'changed'}, "
            f"{len(sweep.failures)} failed"
        )
        return sweep

    def _unique_slug(self, name: str, tenant_id: int, exclude_id: Optional[int] = None) -> str:
        def exists(slug: str) -> bool:
            query = without_tenant_scope(self.db.query(Project.id)).filter(
                Project.tenant_id == tenant_id, Project.slug == slug
            )
            if exclude_id is not None:
                query = query.filter(Project.id != exclude_id)
            return query.first() is not None

        return unique_slug(name, exists, fallback="project")
