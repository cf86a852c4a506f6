"""
Model policies.

Each policy is a plain class of predicates taking the acting user and the
model instance. Routes call them through `rbac.authorize(...)`.
"""
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import object_session

from sannu.models.contribution import Contribution
from sannu.models.enums import ApprovalStatus, ContributionStatus, InvitationStatus, ProjectStatus, ProjectVisibility, Role
from sannu.models.project import Project
from sannu.models.project_invitation import ProjectInvitation
from sannu.tenancy.context import current_tenant_id
from sannu.tenancy.scoping import without_tenant_scope
from sannu.utils.clock import today


def _contributions(project: Project):
    db = object_session(project)
    return without_tenant_scope(db.query(Contribution)).filter(Contribution.project_id == project.id)


class ProjectPolicy:

    @staticmethod
    def can_manage(user, project: Project) -> bool:
        """Creator, listed manager, or tenant admin / project manager of the project's tenant."""
        if user is None:
            return False
        if project.created_by == user.id or user.id in project.managers():
            return True
        return user.get_role_in_tenant(project.tenant_id) in (
            Role.TENANT_ADMIN.value,
            Role.PROJECT_MANAGER.value,
        )

    @staticmethod
    def has_accepted_invitation(user, project: Project) -> bool:
        db = object_session(project)
        return db.query(ProjectInvitation.id).filter(
            ProjectInvitation.project_id == project.id,
            ProjectInvitation.email == user.email,
            ProjectInvitation.status == InvitationStatus.ACCEPTED.value,
        ).first() is not None

    @classmethod
    def view_any(cls, user) -> bool:
        return user is not None

    @classmethod
    def view(cls, user, project: Project) -> bool:
        if user is None:
            return project.visibility == ProjectVisibility.PUBLIC.value
        if user.is_system_admin() or cls.can_manage(user, project):
            return True

        visibility = project.visibility_enum
        if visibility is ProjectVisibility.PUBLIC:
            return True
        has_tenant_role = user.get_role_in_tenant(project.tenant_id) is not None
        if visibility is ProjectVisibility.PRIVATE:
            return has_tenant_role
        return has_tenant_role or cls.has_accepted_invitation(user, project)

    @classmethod
    def create(cls, user, tenant_id: Optional[int] = None) -> bool:
        tenant_id = tenant_id if tenant_id is not None else current_tenant_id()
        if user.is_system_admin():
            return True
        return tenant_id is not None and user.is_tenant_admin(tenant_id)

    @classmethod
    def update(cls, user, project: Project) -> bool:
        return user.is_system_admin() or cls.can_manage(user, project)

    @classmethod
    def delete(cls, user, project: Project) -> bool:
        if not cls.update(user, project):
            return False
        open_contributions = _contributions(project).filter(
            (Contribution.status == ContributionStatus.ACTIVE.value)
            | (Contribution.approval_status == ApprovalStatus.PENDING.value)
        )
        return open_contributions.first() is None

    # ---- lifecycle ----

    @classmethod
    def activate(cls, user, project: Project) -> bool:
        return cls.update(user, project) and project.status in (
            ProjectStatus.DRAFT.value, ProjectStatus.PAUSED.value
        )

    @classmethod
    def pause(cls, user, project: Project) -> bool:
        return cls.update(user, project) and project.status == ProjectStatus.ACTIVE.value

    @classmethod
    def resume(cls, user, project: Project) -> bool:
        return cls.update(user, project) and project.status == ProjectStatus.PAUSED.value

    @classmethod
    def complete(cls, user, project: Project) -> bool:
        return cls.update(user, project) and project.status in (
            ProjectStatus.ACTIVE.value, ProjectStatus.PAUSED.value
        )

    @classmethod
    def cancel(cls, user, project: Project) -> bool:
        return cls.update(user, project) and not project.status_enum.is_final()

    # ---- products, statistics, invitations ----

    @classmethod
    def manage_products(cls, user, project: Project) -> bool:
        if not cls.update(user, project):
            return False
        return project.status == ProjectStatus.DRAFT.value or not project.has_contributions()

    @classmethod
    def view_statistics(cls, user, project: Project) -> bool:
        return cls.update(user, project)

    @classmethod
    def invite_users(cls, user, project: Project) -> bool:
        return cls.update(user, project) and project.visibility_enum.is_restricted()

    @classmethod
    def contribute(cls, user, project: Project) -> bool:
        if user is None or project.created_by == user.id:
            return False
        if not project.accepts_contributions() or not cls.view(user, project):
            return False

        contributions = _contributions(project)
        if project.max_contributors:
            contributors = contributions.with_entities(
                func.count(func.distinct(Contribution.user_id))
            ).scalar()
            if contributors >= project.max_contributors:
                return False
        if project.registration_deadline and today() > project.registration_deadline:
            return False
        return contributions.filter(Contribution.user_id == user.id).first() is None

    # ---- platform ----

    @staticmethod
    def view_cross_tenant(user) -> bool:
        return user.is_system_admin()

    @staticmethod
    def create_for_tenant(user, tenant_id: int) -> bool:
        return user.is_system_admin() or user.has_role_in_tenant(Role.TENANT_ADMIN, tenant_id)

    @staticmethod
    def override_restrictions(user) -> bool:
        return user.is_system_admin()

    @classmethod
    def view_audit_logs(cls, user, project: Project) -> bool:
        return user.is_system_admin() or cls.can_manage(user, project)


class TenantPolicy:

    @staticmethod
    def _admin_of(user, tenant) -> bool:
        return user.is_system_admin() or user.has_role_in_tenant(Role.TENANT_ADMIN, tenant.id)

    @classmethod
    def view(cls, user, tenant) -> bool:
        return cls._admin_of(user, tenant)

    @classmethod
    def update(cls, user, tenant) -> bool:
        return cls._admin_of(user, tenant)

    @classmethod
    def manage_users(cls, user, tenant) -> bool:
        return cls._admin_of(user, tenant)

    @staticmethod
    def suspend(user, tenant=None) -> bool:
        return user.is_system_admin()

    @staticmethod
    def view_platform_analytics(user) -> bool:
        return user.is_system_admin()


class ProjectInvitationPolicy:

    @staticmethod
    def create(user, project: Project) -> bool:
        return ProjectPolicy.update(user, project)

    @staticmethod
    def accept(user, invitation: ProjectInvitation) -> bool:
        return invitation.is_pending and invitation.email.lower() == user.email.lower()

    @staticmethod
    def decline(user, invitation: ProjectInvitation) -> bool:
        return ProjectInvitationPolicy.accept(user, invitation)


class ContributionPolicy:

    @staticmethod
    def _manages(user, contribution: Contribution) -> bool:
        return contribution.project is not None and ProjectPolicy.can_manage(user, contribution.project)

    @classmethod
    def view(cls, user, contribution: Contribution) -> bool:
        return (
            user.is_system_admin()
            or contribution.user_id == user.id
            or cls._manages(user, contribution)
        )

    @staticmethod
    def create(user) -> bool:
        return user is not None

    @classmethod
    def update(cls, user, contribution: Contribution) -> bool:
        return contribution.user_id == user.id or cls._manages(user, contribution)

    @classmethod
    def delete(cls, user, contribution: Contribution) -> bool:
        return cls.update(user, contribution)

    @classmethod
    def approve(cls, user, contribution: Contribution) -> bool:
        return cls._manages(user, contribution)
