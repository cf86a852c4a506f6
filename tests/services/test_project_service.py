from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from sannu.models.audit_log import AuditLog
from sannu.models.contribution import Contribution
from sannu.models.enums import ProjectStatus
from sannu.models.project import Project
from sannu.services.project_service import ProjectService


def _contribute(db, project, user, paid="0.00"):
    db.add(Contribution(
        tenant_id=project.tenant_id,
        user_id=user.id,
        project_id=project.id,
        total_committed=Decimal("100.00"),
        total_paid=Decimal(paid),
    ))
    db.commit()


# ==================== create / update / delete ====================

def test_create_project_starts_as_draft_with_unique_slug(db, make_tenant, make_user):
    tenant = make_tenant()
    user = make_user()
    service = ProjectService(db)

    first = service.create_project({"name": "Water Project"}, tenant, user)
    second = service.create_project({"name": "Water Project"}, tenant, user)

    assert first.status == ProjectStatus.DRAFT.value
    assert first.slug == "water-project"
    assert second.slug == "water-project-1"
    assert first.created_by == user.id
    assert db.query(AuditLog).filter(AuditLog.event == "project_created").count() == 2


def test_create_project_rejects_bad_dates(db, make_tenant, make_user):
    data = {
        "name": "Late Project",
        "start_date": "2025-05-01",
        "end_date": "2025-04-01",
    }

    with pytest.raises(ValueError, match="End date must be after start date"):
        ProjectService(db).create_project(data, make_tenant(), make_user())


def test_create_project_requires_name(db, make_tenant, make_user):
    with pytest.raises(ValueError, match="Project name is required"):
        ProjectService(db).create_project({}, make_tenant(), make_user())


def test_create_project_rejects_blank_name(db, make_tenant, make_user):
    with pytest.raises(ValueError, match="Project name cannot be empty"):
        ProjectService(db).create_project({"name": "  "}, make_tenant(), make_user())


def test_update_project_changes_slug_with_name(db, make_tenant, make_user, make_project):
    tenant = make_tenant()
    user = make_user()
    project = make_project(tenant, creator=user)

    updated = ProjectService(db).update_project(project, {"name": "Maize Purchase", "description": None}, user)

    assert updated.slug == "maize-purchase"
    assert updated.description == "Bulk purchase of rice for members."


def test_financial_fields_locked_once_contributions_exist(db, make_tenant, make_user, make_project):
    tenant = make_tenant()
    user = make_user()
    project = make_project(tenant, creator=user)
    _contribute(db, project, make_user())

    with pytest.raises(ValueError, match="Cannot modify total_amount"):
        ProjectService(db).update_project(project, {"total_amount": "500.00"}, user)


def test_delete_project_with_contributions_fails(db, make_tenant, make_user, make_project):
    tenant = make_tenant()
    project = make_project(tenant)
    _contribute(db, project, make_user())

    with pytest.raises(ValueError, match="Cannot delete project with existing contributions"):
        ProjectService(db).delete_project(project, make_user())


def test_delete_project_removes_products(db, make_tenant, make_user, make_project):
    tenant = make_tenant()
    project = make_project(tenant, products=[("A", "1.00"), ("B", "2.00")])

    assert ProjectService(db).delete_project(project, make_user()) is True
    assert db.query(Project).count() == 0


# ==================== lifecycle ====================

def test_activate_ready_project(db, make_tenant, make_user, make_project):
    project = make_project(make_tenant())

    activated = ProjectService(db).activate_project(project, make_user())

    assert activated.status == ProjectStatus.ACTIVE.value
    assert db.query(AuditLog).filter(AuditLog.event == "project_activated").count() == 1


@pytest.mark.parametrize(
    "fields,products,message",
    [
        ({}, [], "At least one product is required for activation"),
        ({"description": ""}, [("Rice", "10.00")], "Project description is required for activation"),
        ({"total_amount": Decimal("999.00")}, [("Rice", "10.00")], "Project total amount must match sum of product prices"),
        ({"minimum_contribution": Decimal("50.00")}, [("Rice", "10.00")], "Minimum contribution cannot exceed total project amount"),
        (
            {"start_date": date.today() - timedelta(days=30), "end_date": date.today() - timedelta(days=1)},
            [("Rice", "10.00")],
            "Cannot activate project that has already ended",
        ),
        (
            {"payment_options": ["installments"], "installment_frequency": "custom"},
            [("Rice", "10.00")],
            "Custom installment months must be specified when using custom frequency",
        ),
    ],
)
def test_activation_rules(db, make_tenant, make_user, make_project, fields, products, message):
    project = make_project(make_tenant(), products=products, **fields)

    with pytest.raises(ValueError, match=message):
        ProjectService(db).activate_project(project, make_user())


def test_invalid_transition_message(db, make_tenant, make_user, make_project):
    project = make_project(make_tenant())

    with pytest.raises(ValueError, match="Invalid transition from Draft to Paused"):
        ProjectService(db).pause_project(project, make_user())


def test_pause_resume_complete(db, make_tenant, make_user, make_project):
    user = make_user()
    project = make_project(make_tenant(), status=ProjectStatus.ACTIVE.value)
    service = ProjectService(db)

    assert service.pause_project(project, user).status == "paused"
    assert service.resume_project(project, user).status == "active"
    assert service.complete_project(project, user).status == "completed"

    with pytest.raises(ValueError):
        service.cancel_project(project, user)


def test_cancel_records_reason(db, make_tenant, make_user, make_project):
    user = make_user()
    project = make_project(make_tenant())

    cancelled = ProjectService(db).cancel_project(project, user, "Supplier closed")

    assert cancelled.status == ProjectStatus.CANCELLED.value
    assert cancelled.settings["cancellation_reason"] == "Supplier closed"
    assert cancelled.settings["cancelled_by"] == user.id


def test_calculate_project_total_writes_product_sum(db, make_tenant, make_project):
    project = make_project(make_tenant(), products=[("A", "10.00"), ("B", "5.25")], total_amount=Decimal("0"))

    assert ProjectService(db).calculate_project_total(project) == Decimal("15.25")
    db.refresh(project)
    assert project.total_amount == Decimal("15.25")


# ==================== listings ====================

def test_public_projects_only_lists_public_active(db, make_tenant, make_project):
    acme = make_tenant("acme")
    globex = make_tenant("globex", name="Globex")
    make_project(acme, name="Acme Open", status="active")
    make_project(globex, name="Globex Open", status="active")
    make_project(acme, name="Acme Draft")
    make_project(acme, name="Acme Private", status="active", visibility="private")

    page = ProjectService(db).get_public_projects({"sort_by": "name", "sort_direction": "asc"})

    assert [p.name for p in page["data"]] == ["Acme Open", "Globex Open"]
    assert page["total"] == 2
    assert set(page["statistics"]) == {p.id for p in page["data"]}


def test_tenant_projects_filters(db, make_tenant, make_project):
    acme = make_tenant("acme")
    make_project(acme, name="Cheap", products=[("A", "10.00")])
    make_project(acme, name="Pricey", products=[("A", "900.00")], status="active")
    make_project(make_tenant("globex", name="Globex"), name="Elsewhere")

    service = ProjectService(db)
    assert service.get_tenant_projects(acme)["total"] == 2
    assert [p.name for p in service.get_tenant_projects(acme, {"min_amount": "100"})["data"]] == ["Pricey"]
    assert [p.name for p in service.get_tenant_projects(acme, {"status": ["draft"]})["data"]] == ["Cheap"]
    assert service.get_tenant_projects(acme, {"search": "pric"})["total"] == 1


def test_all_projects_pagination(db, make_tenant, make_project):
    acme = make_tenant()
    for n in range(5):
        make_project(acme, name=f"Project {n}")

    page = ProjectService(db).get_all_projects({"per_page": 2, "page": 3})

    assert page["total"] == 5
    assert page["last_page"] == 3
    assert len(page["data"]) == 1


def test_search_projects_in_public_catalogue(db, make_tenant, make_project):
    acme = make_tenant()
    make_project(acme, name="Borehole", status="active")
    make_project(acme, name="Bore Draft")

    page = ProjectService(db).search_projects("bore")

    assert [p.name for p in page["data"]] == ["Borehole"]


# ==================== scheduled updates ====================

def test_update_status_by_date(db, make_tenant, make_project):
    tenant = make_tenant()
    expired = make_project(
        tenant, name="Expired", status="active",
        start_date=date.today() - timedelta(days=30), end_date=date.today() - timedelta(days=1),
    )
    starting = make_project(tenant, name="Starting")
    not_ready = make_project(tenant, name="No Products", products=[])
    future = make_project(tenant, name="Future", start_date=date.today() + timedelta(days=3))

    changes = ProjectService(db).update_project_status_by_date().changes

    assert {(p.name, to.value) for p, _, to in changes} == {("Expired", "completed"), ("Starting", "active")}
    for project in (expired, starting, not_ready, future):
        db.refresh(project)
    assert expired.status == "completed"
    assert starting.status == "active"
    assert not_ready.status == "draft"
    assert future.status == "draft"


def test_update_status_by_date_dry_run(db, make_tenant, make_project):
    project = make_project(make_tenant(), name="Starting")

    changes = ProjectService(db).update_project_status_by_date(dry_run=True).changes

    assert len(changes) == 1
    db.refresh(project)
    assert project.status == "draft"


def test_update_status_by_date_reports_failures(db, make_tenant, make_project, monkeypatch):
    tenant = make_tenant()
    broken = make_project(tenant, name="Broken")
    expired = make_project(
        tenant, name="Expired", status="active",
        start_date=date.today() - timedelta(days=30), end_date=date.today() - timedelta(days=1),
    )

    def fail(self, project):
        raise RuntimeError("db down")

    monkeypatch.setattr(ProjectService, "is_ready_for_activation", fail)

    sweep = ProjectService(db).update_project_status_by_date()

    assert [(p.id, to.value) for p, _, to in sweep.changes] == [(expired.id, "completed")]
    assert [(p.id, error) for p, error in sweep.failures] == [(broken.id, "db down")]
    db.refresh(broken)
    assert broken.status == "draft"


def test_update_status_by_date_is_traced(db, make_tenant, make_project):
    make_project(make_tenant(), name="Starting")

    with patch("sannu.services.project_service.tracer") as tracer:
        ProjectService(db).update_project_status_by_date(dry_run=True)

    tracer.start_as_current_span.assert_called_once_with("project.status_sweep")
    span = tracer.start_as_current_span.return_value.__enter__.return_value
    span.set_attribute.assert_any_call("sweep.changes", 1)
    span.set_attribute.assert_any_call("sweep.failures", 0)
