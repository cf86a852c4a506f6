"""
Gate definitions.

Gates are named, user-level abilities that are not tied to one model:

- manage-platform / view-all-tenants / manage-tenant-applications:
  system admins only
- manage-tenant: system admin, or tenant admin of the given tenant
- access-tenant: system admin, or any active role in the given tenant

Model-level checks live in `sannu.auth.policies`.
"""
from enum import Enum
from typing import Optional

from sannu.models.enums import Role


class Gate(str, Enum):
    """Named abilities checked with `allows()`."""
    MANAGE_PLATFORM = "manage-platform"
    VIEW_ALL_TENANTS = "view-all-tenants"
    MANAGE_TENANT_APPLICATIONS = "manage-tenant-applications"
    MANAGE_TENANT = "manage-tenant"
    ACCESS_TENANT = "access-tenant"


PLATFORM_GATES = {
    Gate.MANAGE_PLATFORM,
    Gate.VIEW_ALL_TENANTS,
    Gate.MANAGE_TENANT_APPLICATIONS,
}


def can_manage_tenant(user, tenant) -> bool:
    if user is None or tenant is None:
        return False
    return user.is_system_admin() or user.has_role_in_tenant(Role.TENANT_ADMIN, tenant.id)


def can_access_tenant(user, tenant) -> bool:
    if user is None or tenant is None:
        return False
    return user.is_system_admin() or user.get_role_in_tenant(tenant.id) is not None


def allows(user, gate: Gate, tenant: Optional[object] = None) -> bool:
    """
    Check a gate for `user`.

    Args:
        user: The acting user (None is always denied)
        gate: Gate name
        tenant: Required for manage-tenant and access-tenant

    Returns:
        True if the user passes the gate
    """
    if user is None:
        return False

    gate = Gate(gate)
    if gate in PLATFORM_GATES:
        return user.is_system_admin()
    if gate is Gate.MANAGE_TENANT:
        return can_manage_tenant(user, tenant)
    if gate is Gate.ACCESS_TENANT:
        return can_access_tenant(user, tenant)
    return False


def role_matches(user, roles, tenant_id: Optional[int]) -> bool:
    """
    True when the user's global role, or their role in `tenant_id`, is one
    of `roles`.
    """
    wanted = {Role(r).value for r in roles}
    if user.role in wanted:
        return True
    if tenant_id is None:
        return False
    return user.get_role_in_tenant(tenant_id) in wanted
