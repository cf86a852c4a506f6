import pytest

from sannu.models.enums import Role
from sannu.models.tenant import Tenant
from sannu.services.tenant_application_service import TenantApplicationService

JSON = {"Accept": "application/json"}


@pytest.fixture
def admin(make_user, login):
    user = make_user(email="root@sannu.io", role=Role.SYSTEM_ADMIN)
    login(user)
    return user


@pytest.fixture
def application(db, email_service):
    return TenantApplicationService(db, email_service).create_application({
        "organization_name": "Kano Farmers Union",
        "business_description": "A cooperative of smallholder farmers pooling money for inputs.",
        "industry_type": "nonprofit",
        "contact_person_name": "Amina Bello",
        "contact_person_email": "amina@kanofarmers.org",
    })


def test_admin_routes_require_system_admin(client, make_user, login):
    login(make_user())

    for path in ("/admin/dashboard", "/admin/tenant-applications", "/admin/tenants"):
        assert client.get(path, headers=JSON).status_code == 403


def test_admin_dashboard_counts(client, admin, application, make_tenant, make_project):
    make_project(make_tenant(), status="active")

    stats = client.get("/admin/dashboard").json()["stats"]

    assert stats["pending_applications"] == 1
    assert stats["total_tenants"] == 1
    assert stats["active_projects"] == 1
    assert stats["total_users"] == 1


def test_list_applications_with_counts(client, admin, application):
    body = client.get("/admin/tenant-applications", params={"status": "pending"}).json()

    assert body["total"] == 1
    assert body["data"][0]["reference_number"] == application.reference_number
    assert body["status_counts"] == {"pending": 1, "approved": 0, "rejected": 0}


def test_show_application(client, admin, application):
    assert client.get(f"/admin/tenant-applications/{application.id}").json()["organization_name"] == "Kano Farmers Union"
    assert client.get("/admin/tenant-applications/999").status_code == 404


def test_approve_application(client, db, admin, application, mail):
    response = client.post(f"/admin/tenant-applications/{application.id}/approve", json={"notes": "ok"})

    assert response.status_code == 200
    assert response.json()["tenant"]["slug"] == "kano-farmers-union"
    assert db.query(Tenant).count() == 1
    assert mail.subjects()[-1] == "Your organization Kano Farmers Union has been approved"

    again = client.post(f"/admin/tenant-applications/{application.id}/approve", json={})
    assert again.status_code == 400
    assert again.json()["detail"] == "Application cannot be reviewed in its current state."


def test_reject_application(client, admin, application):
    response = client.post(
        f"/admin/tenant-applications/{application.id}/reject",
        json={"rejection_reason": "Incomplete"},
    )

    assert response.status_code == 200
    status = client.get(f"/tenant-application/status/{application.reference_number}").json()
    assert status["status"] == "rejected"
    assert status["rejection_reason"] == "Incomplete"


def test_reject_requires_reason(client, admin, application):
    response = client.post(f"/admin/tenant-applications/{application.id}/reject", json={})

    assert response.status_code == 422
    assert "rejection_reason" in response.json()["errors"]


def test_list_tenants_with_metrics(client, admin, make_tenant, make_project):
    tenant = make_tenant()
    make_project(tenant)

    body = client.get("/admin/tenants").json()

    assert body[0]["slug"] == "acme"
    assert body[0]["metrics"]["total_projects"] == 1


def test_suspend_and_activate_tenant(client, admin, make_tenant):
    tenant = make_tenant()

    suspended = client.post(f"/admin/tenants/{tenant.id}/suspend", json={"reason": "Unpaid"})
    assert suspended.json()["status"] == "suspended"
    assert client.get("/acme/projects", headers=JSON).status_code == 404

    twice = client.post(f"/admin/tenants/{tenant.id}/suspend", json={"reason": "Unpaid"})
    assert twice.status_code == 400

    activated = client.post(f"/admin/tenants/{tenant.id}/activate")
    assert activated.json()["status"] == "active"
    assert client.get("/acme/projects", headers=JSON).status_code == 200
