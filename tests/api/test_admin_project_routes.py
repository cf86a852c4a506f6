from datetime import date, timedelta
from decimal import Decimal

import pytest

from sannu.models.audit_log import AuditLog
from sannu.models.contribution import Contribution
from sannu.models.enums import Role
from sannu.models.product import Product
from sannu.models.project import Project
from sannu.tenancy.context import tenant_context
from sannu.tenancy.scoping import without_tenant_scope


@pytest.fixture
def acme(make_tenant):
    return make_tenant("acme")


@pytest.fixture
def globex(make_tenant):
    return make_tenant("globex", name="Globex")


@pytest.fixture
def admin(make_user, login):
    user = make_user(email="root@sannu.io", role=Role.SYSTEM_ADMIN, name="Root")
    login(user)
    return user


def _events(db):
    return [row.event for row in db.query(AuditLog).order_by(AuditLog.id)]


def test_requires_system_admin(client, acme, make_user, grant_role, login):
    login(grant_role(make_user(), acme))

    assert client.get("/admin/projects").status_code == 403


def test_list_projects_across_tenants(client, admin, acme, globex, make_project):
    make_project(acme, name="Acme Rice")
    make_project(globex, name="Globex Beans", visibility="private")

    body = client.get("/admin/projects").json()

    assert body["projects"]["total"] == 2
    assert [t["slug"] for t in body["tenants"]] == ["acme", "globex"]

    filtered = client.get("/admin/projects", params={"tenant_id": globex.id}).json()
    assert [p["name"] for p in filtered["projects"]["data"]] == ["Globex Beans"]


def test_create_project_for_tenant(client, db, admin, acme):
    response = client.post("/admin/projects", json={
        "tenant_id": acme.id,
        "name": "Water Borehole",
        "description": "A borehole for the village.",
        "start_date": str(date.today()),
        "end_date": str(date.today() + timedelta(days=90)),
    })

    assert response.status_code == 201
    assert response.json()["tenant_id"] == acme.id
    assert response.json()["created_by"] == admin.id
    assert "project_created_by_admin" in _events(db)


def test_create_for_unknown_tenant(client, admin):
    response = client.post("/admin/projects", json={"tenant_id": 999, "name": "Nowhere"})

    assert response.status_code == 404
    assert response.json() == {"detail": "Tenant not found"}


def test_show_includes_tenant(client, admin, acme, make_project):
    project = make_project(acme)

    body = client.get(f"/admin/projects/{project.id}").json()

    assert body["tenant"]["slug"] == "acme"
    assert body["can"]["activate"] is True
    assert body["statistics"] is not None


def test_show_missing_project(client, admin):
    assert client.get("/admin/projects/42").status_code == 404


def test_move_project_to_another_tenant(client, db, admin, acme, globex, make_project):
    project = make_project(acme)

    response = client.put(f"/admin/projects/{project.id}", json={"tenant_id": globex.id, "name": "Moved Rice"})

    assert response.status_code == 200
    assert response.json()["tenant_id"] == globex.id
    assert response.json()["name"] == "Moved Rice"
    events = _events(db)
    assert "project_tenant_changed_by_admin" in events
    assert "project_updated_by_admin" in events


def test_invalid_update_does_not_move_project(client, db, admin, acme, globex, make_project):
    project = make_project(acme)

    response = client.put(f"/admin/projects/{project.id}", json={
        "tenant_id": globex.id,
        "start_date": "2030-05-01",
        "end_date": "2030-04-01",
    })

    assert response.status_code == 400
    assert response.json() == {"detail": "End date must be after start date"}
    db.expire_all()
    assert without_tenant_scope(db.query(Project)).one().tenant_id == acme.id
    assert "project_tenant_changed_by_admin" not in _events(db)


def test_moved_project_takes_its_products(client, db, admin, acme, globex, make_project):
    project = make_project(acme, products=[("Panel", "300.00"), ("Battery", "200.00")])

    client.put(f"/admin/projects/{project.id}", json={"tenant_id": globex.id})

    db.expire_all()
    products = without_tenant_scope(db.query(Product)).all()
    assert {p.tenant_id for p in products} == {globex.id}
    with tenant_context(globex):
        assert db.query(Product).count() == 2
        assert db.query(Project).one().calculate_total_amount() == Decimal("500.00")


def test_project_with_contributions_cannot_move(client, db, admin, acme, globex, make_project, make_user):
    project = make_project(acme)
    db.add(Contribution(
        tenant_id=acme.id, user_id=make_user().id, project_id=project.id,
        total_committed=Decimal("120.00"),
    ))
    db.commit()

    response = client.put(f"/admin/projects/{project.id}", json={"tenant_id": globex.id})

    assert response.status_code == 400
    assert response.json() == {"detail": "Cannot move project with existing contributions to another tenant"}
    db.expire_all()
    assert without_tenant_scope(db.query(Project)).one().tenant_id == acme.id


def test_update_without_moving(client, db, admin, acme, make_project):
    project = make_project(acme)

    client.put(f"/admin/projects/{project.id}", json={"description": "Updated."})

    assert "project_tenant_changed_by_admin" not in _events(db)


def test_delete_project(client, db, admin, acme, make_project):
    project = make_project(acme, name="Old Rice")

    response = client.delete(f"/admin/projects/{project.id}")

    assert response.json() == {"message": "Project 'Old Rice' from tenant 'Acme Cooperative' deleted successfully."}
    assert without_tenant_scope(db.query(Project)).count() == 0


def test_status_actions(client, admin, acme, make_project):
    project = make_project(acme)

    activated = client.post(f"/admin/projects/{project.id}/activate")
    assert activated.json()["project"]["status"] == "active"

    cancelled = client.post(f"/admin/projects/{project.id}/cancel", json={"reason": "Duplicate"})
    assert cancelled.json()["message"] == "Project cancelled successfully."
    assert cancelled.json()["project"]["settings"]["cancellation_reason"] == "Duplicate"


def test_unknown_action(client, admin, acme, make_project):
    project = make_project(acme)

    assert client.post(f"/admin/projects/{project.id}/explode").status_code == 404


def test_invalid_transition(client, admin, acme, make_project):
    project = make_project(acme)

    # Draft projects cannot be paused, even by an admin
    assert client.post(f"/admin/projects/{project.id}/pause").status_code == 403
