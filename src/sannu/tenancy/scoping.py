"""
Global tenant query scope.

When a tenant is current (see `sannu.tenancy.context`), every ORM SELECT
that touches a `BelongsToTenant` model is filtered to that tenant, and new
tenant-owned rows flushed without a tenant_id receive the current one.

Usage:
    with tenant_context(tenant):
        db.query(Project).all()                          # tenant's projects only
        without_tenant_scope(db.query(Project)).all()    # every tenant
"""
import logging

from sqlalchemy import event
from sqlalchemy.orm import Session, with_loader_criteria

from sannu.models.mixins import BelongsToTenant
from sannu.tenancy.context import current_tenant_id

logger = logging.getLogger(__name__)

SKIP_TENANT_SCOPE = "skip_tenant_scope"


def without_tenant_scope(query):
    """Return `query` (Query or Select) with the tenant filter disabled."""
    return query.execution_options(**{SKIP_TENANT_SCOPE: True})


def belongs_to_current_tenant(obj) -> bool:
    tenant_id = current_tenant_id()
    return tenant_id is not None and getattr(obj, "tenant_id", None) == tenant_id


def belongs_to_tenant(obj, tenant_id) -> bool:
    return getattr(obj, "tenant_id", None) == tenant_id


@event.listens_for(Session, "do_orm_execute")
def _apply_tenant_scope(execute_state):
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.is_relationship_load
        or execute_state.execution_options.get(SKIP_TENANT_SCOPE, False)
    ):
        return

    tenant_id = current_tenant_id()
    if tenant_id is None:
        return

    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(
            BelongsToTenant,
            lambda cls: cls.tenant_id == tenant_id,
            include_aliases=True,
        )
    )


@event.listens_for(Session, "before_flush")
def _fill_tenant_id(session, flush_context, instances):
    tenant_id = current_tenant_id()
    if tenant_id is None:
        return

    for obj in session.new:
        if isinstance(obj, BelongsToTenant) and obj.tenant_id is None:
            obj.tenant_id = tenant_id
            logger.debug(f"Assigned tenant {tenant_id} to new {type(obj).__name__}")
