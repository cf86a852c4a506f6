"""
Authentication and Authorization module for Sannu-Sannu.

This module provides:
- Password hashing (passwords.py)
- Login throttling (rate_limit.py)
- Cookie session authentication (session_auth.py)
- Gates (permissions.py) and model policies (policies.py)
- RBAC dependencies for FastAPI (rbac.py)

Usage:
    from sannu.auth import (
        get_current_user,
        get_optional_user,
        Gate,
        require_gate,
        require_roles,
        authorize,
        ProjectPolicy,
    )
"""

from sannu.auth.passwords import (
    hash_password,
    verify_password,
    generate_temporary_password,
)

from sannu.auth.session_auth import (
    get_current_session,
    get_current_user,
    get_optional_user,
    set_session_cookie,
    clear_session_cookie,
)

from sannu.auth.permissions import (
    Gate,
    allows,
    can_access_tenant,
    can_manage_tenant,
)

from sannu.auth.policies import (
    ProjectPolicy,
    TenantPolicy,
    ProjectInvitationPolicy,
    ContributionPolicy,
)

from sannu.auth.rbac import (
    authorize,
    forbid,
    get_context_tenant_id,
    require_gate,
    require_roles,
    require_system_admin,
)

__all__ = [
    # Passwords
    "hash_password",
    "verify_password",
    "generate_temporary_password",

    # Sessions
    "get_current_session",
    "get_current_user",
    "get_optional_user",
    "set_session_cookie",
    "clear_session_cookie",

    # Gates
    "Gate",
    "allows",
    "can_access_tenant",
    "can_manage_tenant",

    # Policies
    "ProjectPolicy",
    "TenantPolicy",
    "ProjectInvitationPolicy",
    "ContributionPolicy",

    # RBAC
    "authorize",
    "forbid",
    "get_context_tenant_id",
    "require_gate",
    "require_roles",
    "require_system_admin",
]
