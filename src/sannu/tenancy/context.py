"""
Request-scoped "current tenant".

The tenant resolved for a request is stored in a context variable so that
the query scope, services and the mailer can see it without threading it
through every call.
"""
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

_current_tenant: ContextVar = ContextVar("sannu_current_tenant", default=None)


def current_tenant():
    return _current_tenant.get()


def current_tenant_id() -> Optional[int]:
    tenant = _current_tenant.get()
    return tenant.id if tenant is not None else None


def has_tenant() -> bool:
    return _current_tenant.get() is not None


def set_current_tenant(tenant):
    """Set the tenant for the rest of the current context. Returns a reset token."""
    return _current_tenant.set(tenant)


def reset_current_tenant(token) -> None:
    _current_tenant.reset(token)


@contextmanager
def tenant_context(tenant):
    """Make `tenant` current inside the block (None clears it)."""
    token = _current_tenant.set(tenant)
    try:
        yield tenant
    finally:
        _current_tenant.reset(token)
