from datetime import date
from decimal import Decimal

from sannu.models.audit_log import AuditLog
from sannu.services.audit_log_service import AuditLogService
from sannu.tenancy.context import tenant_context


def test_auth_event_records_user_and_context(db, make_user):
    user = make_user(email="ada@example.com")

    entry = AuditLogService(db).log_auth_event(
        "login_success", user, "127.0.0.1", "pytest",
        extra={"redirect": "/dashboard", "reason": None},
    )
    db.commit()

    assert entry.message == "Authentication: Login successful"
    assert entry.user_id == user.id
    assert entry.context == {"redirect": "/dashboard", "email": "ada@example.com"}


def test_unknown_auth_event_gets_generic_message(db):
    entry = AuditLogService(db).log_auth_event("weird_thing")

    assert entry.message == "Authentication: weird_thing"
    assert entry.context is None


def test_context_values_are_json_safe(db):
    entry = AuditLogService(db).log_security_event(
        "suspicious_login", severity="high",
        extra={"amount": Decimal("1.50"), "day": date(2025, 1, 2)},
    )
    db.commit()

    assert entry.context == {"amount": "1.50", "day": "2025-01-02"}
    assert entry.severity == "high"


def test_current_tenant_is_recorded(db, make_tenant):
    tenant = make_tenant()

    with tenant_context(tenant):
        entry = AuditLogService(db).log_rate_limit_event("a@b.c|1.2.3.4")

    assert entry.tenant_id == tenant.id
    assert entry.event == "rate_limit_exceeded"


def test_project_event(db, make_tenant, make_user, make_project):
    project = make_project(make_tenant())
    user = make_user()

    AuditLogService(db).log_project_event("project_paused", project, user, extra={"previous_status": "active"})
    db.commit()

    entry = db.query(AuditLog).one()
    assert entry.message == "Project: Paused"
    assert entry.tenant_id == project.tenant_id
    assert entry.context["project_id"] == project.id
    assert entry.context["previous_status"] == "active"
