"""create initial tables

Users, tenant applications, tenants and their role assignments, projects
with products, contributions and invitations, plus the audit log, session
and password reset tables.

Revision ID: 3a9c1e2f7b10
Revises:
Create Date: 2026-10-17 09:12:44.118203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3a9c1e2f7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def _fk(name, table, nullable=False, ondelete="CASCADE"):
    return sa.Column(name, sa.Integer(), sa.ForeignKey(f"{table}.id", ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="contributor"),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("email_verified_at", sa.DateTime(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_is_active", "users", ["is_active"])

    op.create_table(
        "tenant_applications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reference_number", sa.String(40), nullable=False),
        sa.Column("organization_name", sa.String(255), nullable=False),
        sa.Column("business_description", sa.Text(), nullable=False),
        sa.Column("industry_type", sa.String(100), nullable=False),
        sa.Column("contact_person_name", sa.String(255), nullable=False),
        sa.Column("contact_person_email", sa.String(255), nullable=False),
        sa.Column("contact_person_phone", sa.String(20), nullable=True),
        sa.Column("business_registration_number", sa.String(100), nullable=True),
        sa.Column("website_url", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        _fk("reviewer_id", "users", nullable=True, ondelete="SET NULL"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tenant_applications_reference_number", "tenant_applications", ["reference_number"], unique=True)
    op.create_index("ix_tenant_applications_status", "tenant_applications", ["status"])
    op.create_index("ix_tenant_applications_submitted_at", "tenant_applications", ["submitted_at"])

    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255), nullable=True, unique=True),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("primary_color", sa.String(7), nullable=False, server_default="#3B82F6"),
        sa.Column("secondary_color", sa.String(7), nullable=False, server_default="#10B981"),
        sa.Column("platform_fee_percentage", sa.Numeric(5, 2), nullable=False, server_default="5.00"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("trial_ends_at", sa.DateTime(), nullable=True),
        sa.Column("max_projects", sa.Integer(), nullable=True),
        sa.Column("max_users", sa.Integer(), nullable=True),
        sa.Column("max_storage_mb", sa.Integer(), nullable=False, server_default="10000"),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(20), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _fk("application_id", "tenant_applications", nullable=True, ondelete="SET NULL"),
        sa.Column("suspended_at", sa.DateTime(), nullable=True),
        sa.Column("suspended_reason", sa.Text(), nullable=True),
        _fk("suspended_by", "users", nullable=True, ondelete="SET NULL"),
        *_timestamps(),
    )
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True)
    op.create_index("ix_tenants_status", "tenants", ["status"])
    op.create_index("ix_tenants_is_active", "tenants", ["is_active"])
    op.create_index("ix_tenants_application_id", "tenants", ["application_id"])

    op.create_table(
        "user_tenant_roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user_id", "users"),
        _fk("tenant_id", "tenants"),
        sa.Column("role", sa.String(50), nullable=False, server_default="project_manager"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_user_tenant_roles_user_id", "user_tenant_roles", ["user_id"])
    op.create_index("ix_user_tenant_roles_tenant_id", "user_tenant_roles", ["tenant_id"])
    op.create_index("ix_user_tenant_roles_user_tenant", "user_tenant_roles", ["user_id", "tenant_id"], unique=True)
    op.create_index("ix_user_tenant_roles_tenant_role", "user_tenant_roles", ["tenant_id", "role"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("tenant_id", "tenants"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="public"),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("max_contributors", sa.Integer(), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("minimum_contribution", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_options", sa.JSON(), nullable=False),
        sa.Column("installment_frequency", sa.String(20), nullable=False, server_default="monthly"),
        sa.Column("custom_installment_months", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("registration_deadline", sa.Date(), nullable=True),
        _fk("created_by", "users", nullable=True, ondelete="SET NULL"),
        sa.Column("managed_by", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("settings", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])
    op.create_index("ix_projects_created_by", "projects", ["created_by"])
    op.create_index("ix_projects_status", "projects", ["status"])
    op.create_index("ix_projects_tenant_slug", "projects", ["tenant_id", "slug"], unique=True)
    op.create_index("ix_projects_tenant_status", "projects", ["tenant_id", "status"])
    op.create_index("ix_projects_visibility_status", "projects", ["visibility", "status"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("tenant_id", "tenants"),
        _fk("project_id", "projects"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_products_tenant_id", "products", ["tenant_id"])
    op.create_index("ix_products_project_id", "products", ["project_id"])

    op.create_table(
        "contributions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("tenant_id", "tenants"),
        _fk("user_id", "users"),
        _fk("project_id", "projects"),
        sa.Column("total_committed", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_type", sa.String(20), nullable=False, server_default="full"),
        sa.Column("installment_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("installment_frequency", sa.String(20), nullable=True),
        sa.Column("total_installments", sa.Integer(), nullable=True),
        sa.Column("arrears_amount", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("arrears_paid", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("total_paid", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("next_payment_due", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("joined_date", sa.Date(), nullable=False),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="approved"),
        _fk("approved_by", "users", nullable=True, ondelete="SET NULL"),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_contributions_tenant_id", "contributions", ["tenant_id"])
    op.create_index("ix_contributions_user_id", "contributions", ["user_id"])
    op.create_index("ix_contributions_project_id", "contributions", ["project_id"])
    op.create_index("ix_contributions_next_payment_due", "contributions", ["next_payment_due"])
    op.create_index("ix_contributions_status", "contributions", ["status"])
    op.create_index("ix_contributions_approval_status", "contributions", ["approval_status"])
    op.create_index("ix_contributions_user_project", "contributions", ["user_id", "project_id"], unique=True)

    op.create_table(
        "project_invitations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("project_id", "projects"),
        sa.Column("email", sa.String(255), nullable=False),
        _fk("invited_by", "users", nullable=True, ondelete="SET NULL"),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_project_invitations_project_id", "project_invitations", ["project_id"])
    op.create_index("ix_project_invitations_email", "project_invitations", ["email"])
    op.create_index("ix_project_invitations_token", "project_invitations", ["token"], unique=True)
    op.create_index("ix_project_invitations_project_email", "project_invitations", ["project_id", "email"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event", sa.String(100), nullable=False),
        sa.Column("message", sa.String(255), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False, server_default="info"),
        _fk("user_id", "users", nullable=True, ondelete="SET NULL"),
        _fk("tenant_id", "tenants", nullable=True, ondelete="SET NULL"),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_event", "audit_logs", ["event"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"])
    op.create_index("ix_audit_logs_event_created", "audit_logs", ["event", "created_at"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        _fk("user_id", "users", nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("last_activity", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])
    op.create_index("ix_sessions_last_activity", "sessions", ["last_activity"])

    op.create_table(
        "password_reset_tokens",
        sa.Column("email", sa.String(255), primary_key=True),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("password_reset_tokens")
    op.drop_table("sessions")
    op.drop_table("audit_logs")
    op.drop_table("project_invitations")
    op.drop_table("contributions")
    op.drop_table("products")
    op.drop_table("projects")
    op.drop_table("user_tenant_roles")
    op.drop_table("tenants")
    op.drop_table("tenant_applications")
    op.drop_table("users")
