"""
Role-Based Access Control dependencies for FastAPI.

Usage:
    @router.get("/admin/dashboard")
    def dashboard(user: User = Depends(require_gate(Gate.MANAGE_PLATFORM))):
        ...

    @router.post("/{tenant}/projects")
    def create(user: User = Depends(require_roles(Role.TENANT_ADMIN, Role.PROJECT_MANAGER))):
        ...
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from sannu.auth.permissions import Gate, allows, role_matches
from sannu.auth.session_auth import get_current_user
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.tenancy.context import current_tenant

logger = logging.getLogger(__name__)

UNAUTHORIZED = "This action is unauthorized."


def forbid(message: str = UNAUTHORIZED) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


def authorize(allowed: bool, message: str = UNAUTHORIZED) -> None:
    """Raise 403 unless `allowed`."""
    if not allowed:
        raise forbid(message)


def get_context_tenant_id(request: Request) -> Optional[int]:
    """
    Tenant the request is working in: the resolved request tenant, or
    else the tenant selected in the session.
    """
    tenant = current_tenant()
    if tenant is not None:
        return tenant.id
    session = getattr(request.state, "session", None)
    if session is not None:
        return session.get("selected_tenant_id")
    return None


def require_roles(*roles) -> Callable:
    """
    Dependency requiring one of `roles`, checked against the global role
    first and then the role in the current tenant context.

    Returns the authenticated User.
    """
    def check_roles(request: Request, user: User = Depends(get_current_user)) -> User:
        if role_matches(user, roles, get_context_tenant_id(request)):
            return user

        names = ", ".join(getattr(r, "value", r) for r in roles)
        logger.warning(f"User {user.id} lacks roles [{names}] for {request.url.path}")
        raise forbid(f"Insufficient permissions. Required roles: {names}")

    return check_roles


def require_gate(gate: Gate) -> Callable:
    """
    Dependency requiring a gate. Tenant gates are checked against the
    current request tenant.
    """
    def check_gate(user: User = Depends(get_current_user)) -> User:
        tenant: Optional[Tenant] = current_tenant()
        if not allows(user, gate, tenant):
            logger.warning(f"User {user.id} denied gate {Gate(gate).value}")
            raise forbid()
        return user

    return check_gate


require_system_admin = require_gate(Gate.MANAGE_PLATFORM)
