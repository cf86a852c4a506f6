from decimal import Decimal

from sannu.models.enums import Role, TenantStatus
from sannu.models.tenant_application import TenantApplication


def test_user_roles(make_user, make_tenant, grant_role):
    acme = make_tenant("acme")
    other = make_tenant("other", name="Other Org")
    admin = make_user(role=Role.SYSTEM_ADMIN)
    member = grant_role(make_user(), acme, Role.PROJECT_MANAGER)

    assert admin.is_system_admin()
    assert not admin.needs_tenant_selection()

    assert member.get_role_in_tenant(acme.id) == "project_manager"
    assert member.get_role_in_tenant(other.id) is None
    assert member.is_project_manager(acme.id)
    assert not member.is_tenant_admin(acme.id)
    assert member.needs_tenant_selection()
    assert [t.slug for t in member.tenants()] == ["acme"]


def test_suspended_tenants_are_not_listed_for_members(make_user, make_tenant, grant_role):
    tenant = make_tenant(status=TenantStatus.SUSPENDED)
    user = grant_role(make_user(), tenant)

    assert tenant.is_suspended()
    assert not tenant.is_active_tenant()
    assert user.tenants() == []


def test_tenant_metrics_count_members_and_projects(make_tenant, make_user, grant_role, make_project):
    tenant = make_tenant()
    grant_role(make_user(), tenant)
    grant_role(make_user(), tenant, Role.PROJECT_MANAGER)
    make_project(tenant, name="One", status="active")
    make_project(tenant, name="Two")

    metrics = tenant.get_metrics()

    assert metrics["total_users"] == 2
    assert metrics["total_projects"] == 2
    assert metrics["active_projects"] == 1
    assert metrics["total_revenue"] == Decimal("0")


def test_reference_number_format(db):
    reference = TenantApplication.generate_reference_number(db)

    assert reference.startswith("TA-")
    assert len(reference.split("-")) == 4
