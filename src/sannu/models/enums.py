"""
Enumerations shared by models, services and policies.

All enums are `str` subclasses so they compare equal to the raw column
values stored in the database.
"""
import enum
from typing import List


class ProjectStatus(str, enum.Enum):
    """Project lifecycle states."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def valid_transitions(self) -> List["ProjectStatus"]:
        return list(_PROJECT_TRANSITIONS[self])

    def can_transition_to(self, target: "ProjectStatus") -> bool:
        return ProjectStatus(target) in _PROJECT_TRANSITIONS[self]

    def label(self) -> str:
        return self.value.capitalize()

    def css_class(self) -> str:
        return _PROJECT_CSS[self]

    def accepts_contributions(self) -> bool:
        return self is ProjectStatus.ACTIVE

    def is_active(self) -> bool:
        return self in (ProjectStatus.DRAFT, ProjectStatus.ACTIVE, ProjectStatus.PAUSED)

    def is_final(self) -> bool:
        return self in (ProjectStatus.COMPLETED, ProjectStatus.CANCELLED)

    def transition_description(self, target: "ProjectStatus") -> str:
        target = ProjectStatus(target)
        if not self.can_transition_to(target):
            return f"Invalid transition from {self.label()} to {target.label()}"
        if target is ProjectStatus.ACTIVE:
            if self is ProjectStatus.PAUSED:
                return "Resuming project to accept contributions"
            return "Activating project to accept contributions"
        return {
            ProjectStatus.PAUSED: "Pausing project temporarily",
            ProjectStatus.COMPLETED: "Marking project as completed",
            ProjectStatus.CANCELLED: "Cancelling project permanently",
        }[target]


_PROJECT_TRANSITIONS = {
    ProjectStatus.DRAFT: (ProjectStatus.ACTIVE, ProjectStatus.CANCELLED),
    ProjectStatus.ACTIVE: (ProjectStatus.PAUSED, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED),
    ProjectStatus.PAUSED: (ProjectStatus.ACTIVE, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED),
    ProjectStatus.COMPLETED: (),
    ProjectStatus.CANCELLED: (),
}

_PROJECT_CSS = {
    ProjectStatus.DRAFT: "bg-gray-100 text-gray-800",
    ProjectStatus.ACTIVE: "bg-green-100 text-green-800",
    ProjectStatus.PAUSED: "bg-yellow-100 text-yellow-800",
    ProjectStatus.COMPLETED: "bg-blue-100 text-blue-800",
    ProjectStatus.CANCELLED: "bg-red-100 text-red-800",
}


class ProjectVisibility(str, enum.Enum):
    """Who can discover and view a project."""
    PUBLIC = "public"
    PRIVATE = "private"
    INVITE_ONLY = "invite_only"

    def label(self) -> str:
        return {
            ProjectVisibility.PUBLIC: "Public",
            ProjectVisibility.PRIVATE: "Private",
            ProjectVisibility.INVITE_ONLY: "Invite Only",
        }[self]

    def description(self) -> str:
        return {
            ProjectVisibility.PUBLIC: "Visible to everyone and discoverable in public listings",
            ProjectVisibility.PRIVATE: "Visible only to members of the organization",
            ProjectVisibility.INVITE_ONLY: "Visible only to invited users",
        }[self]

    def icon(self) -> str:
        return {
            ProjectVisibility.PUBLIC: "globe",
            ProjectVisibility.PRIVATE: "lock",
            ProjectVisibility.INVITE_ONLY: "user-plus",
        }[self]

    def is_publicly_discoverable(self) -> bool:
        return self is ProjectVisibility.PUBLIC

    def is_restricted(self) -> bool:
        return self in (ProjectVisibility.PRIVATE, ProjectVisibility.INVITE_ONLY)


class Role(str, enum.Enum):
    """Platform roles. Global roles live on the user, tenant roles on UserTenantRole."""
    SYSTEM_ADMIN = "system_admin"
    TENANT_ADMIN = "tenant_admin"
    PROJECT_MANAGER = "project_manager"
    CONTRIBUTOR = "contributor"

    def label(self) -> str:
        return self.value.replace("_", " ").title()

    def is_global_role(self) -> bool:
        return self in (Role.SYSTEM_ADMIN, Role.CONTRIBUTOR)

    def is_tenant_role(self) -> bool:
        return self in (Role.TENANT_ADMIN, Role.PROJECT_MANAGER)


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"

    def label(self) -> str:
        return self.value.capitalize()

    def color(self) -> str:
        return {
            TenantStatus.ACTIVE: "green",
            TenantStatus.SUSPENDED: "red",
            TenantStatus.INACTIVE: "gray",
        }[self]


class TenantApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def label(self) -> str:
        return {
            TenantApplicationStatus.PENDING: "Pending Review",
            TenantApplicationStatus.APPROVED: "Approved",
            TenantApplicationStatus.REJECTED: "Rejected",
        }[self]


class IndustryType(str, enum.Enum):
    TECHNOLOGY = "technology"
    HEALTHCARE = "healthcare"
    FINANCE = "finance"
    EDUCATION = "education"
    RETAIL = "retail"
    MANUFACTURING = "manufacturing"
    CONSULTING = "consulting"
    NONPROFIT = "nonprofit"
    MEDIA = "media"
    REAL_ESTATE = "real_estate"
    OTHER = "other"


class PaymentType(str, enum.Enum):
    FULL = "full"
    INSTALLMENTS = "installments"


class InstallmentFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    CUSTOM = "custom"


class ContributionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
