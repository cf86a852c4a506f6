"""
Mixins for SQLAlchemy models.
Provides reusable column sets for timestamps and tenant ownership.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import declared_attr

from sannu.utils.clock import utcnow


class AuditMixin:
    """
    Adds timestamp columns to any model.

    Provides:
    - created_at: UTC timestamp when the record is created
    - updated_at: UTC timestamp when the record is modified

    Usage:
        class MyModel(Base, AuditMixin):
            __tablename__ = "my_table"
            id = int_pk()
    """

    created_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
        comment="UTC timestamp when record was created"
    )

    updated_at = Column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        comment="UTC timestamp when record was last updated"
    )


class BelongsToTenant:
    """
    Marks a model as tenant-owned.

    Rows are filtered by the current tenant on every ORM select and receive
    the current tenant's id on insert (see `sannu.tenancy.scoping`).
    """

    @declared_attr
    def tenant_id(cls):
        return Column(
            Integer,
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )

    def belongs_to_tenant(self, tenant_id) -> bool:
        return self.tenant_id is not None and self.tenant_id == tenant_id
