from datetime import timedelta

from sannu.models.enums import Role
from sannu.models.user_session import UserSession
from sannu.services.session_service import SessionService, describe_location
from sannu.utils.clock import utcnow


def test_create_global_session(db, make_user):
    user = make_user()

    session = SessionService(db).create_global_session(user, "10.0.0.1", "pytest")

    assert session.user_id == user.id
    assert session.get("global_role") == "contributor"
    assert session.get("ip_address") == "10.0.0.1"
    assert user.last_login_at is not None


def test_set_tenant_context_requires_role(db, make_user, make_tenant, grant_role):
    acme = make_tenant("acme")
    other = make_tenant("other", name="Other")
    user = grant_role(make_user(), acme, Role.PROJECT_MANAGER)
    service = SessionService(db)
    session = service.create_global_session(user)

    assert service.set_tenant_context(session, user, acme.id)
    assert service.get_tenant_context(session)["tenant_role"] == "project_manager"
    assert not service.set_tenant_context(session, user, other.id)
    assert session.get("selected_tenant_slug") == "acme"


def test_set_tenant_context_for_plain_contributor_fails(db, make_user, make_tenant):
    user = make_user()
    service = SessionService(db)
    session = service.create_global_session(user)

    assert not service.set_tenant_context(session, user, make_tenant().id)


def test_system_admin_can_select_any_tenant(db, make_user, make_tenant):
    admin = make_user(role=Role.SYSTEM_ADMIN)
    service = SessionService(db)
    session = service.create_global_session(admin)

    assert service.set_tenant_context(session, admin, make_tenant().id)
    assert session.get("tenant_role") == "system_admin"


def test_clear_tenant_context(db, make_user, make_tenant, grant_role):
    tenant = make_tenant()
    user = grant_role(make_user(), tenant)
    service = SessionService(db)
    session = service.create_global_session(user)
    service.set_tenant_context(session, user, tenant.id)

    service.clear_tenant_context(session, user)

    assert service.get_tenant_context(session) is None


def test_expiry_and_cleanup(db, make_user):
    user = make_user()
    service = SessionService(db)
    fresh = service.create_global_session(user)
    stale = service.create_global_session(user)
    stale.last_activity = utcnow() - timedelta(minutes=121)
    db.commit()

    assert service.is_session_expired(stale)
    assert not service.is_session_expired(fresh)
    assert service.cleanup_expired_sessions() == 1
    assert db.query(UserSession).count() == 1


def test_cleanup_ages_idle_sessions_from_creation(db, make_user):
    user = make_user()
    service = SessionService(db)
    abandoned = service.create_global_session(user)
    abandoned.last_activity = None
    abandoned.created_at = utcnow() - timedelta(minutes=121)
    recent = service.create_global_session(user)
    recent.last_activity = None
    db.commit()

    assert service.is_session_expired(abandoned)
    assert not service.is_session_expired(recent)
    assert service.cleanup_expired_sessions() == 1
    assert [s.id for s in db.query(UserSession).all()] == [recent.id]


def test_invalidate_other_sessions(db, make_user):
    user = make_user()
    service = SessionService(db)
    current = service.create_global_session(user)
    service.create_global_session(user)
    service.create_global_session(user)

    assert service.invalidate_all_user_sessions(user, except_session_id=current.id) == 2
    assert [s["id"] for s in service.get_user_active_sessions(user, current.id)] == [current.id]


def test_revoke_only_own_sessions(db, make_user):
    owner = make_user()
    intruder = make_user()
    service = SessionService(db)
    session = service.create_global_session(owner)

    assert not service.revoke_session(session.id, intruder)
    assert service.revoke_session(session.id, owner)


def test_verification_prompt(db, make_user):
    service = SessionService(db)
    session = service.create_global_session(make_user(), "10.0.0.1")

    assert not service.should_prompt_for_verification(session, "10.0.0.1")
    assert service.should_prompt_for_verification(session, "10.0.0.2")

    session.put(login_time=(utcnow() - timedelta(hours=25)).isoformat())
    assert service.should_prompt_for_verification(session, "10.0.0.1")


def test_describe_location():
    assert describe_location("8.8.8.8") == "External Location"
    assert describe_location("192.168.1.5") == "Local Network"
    assert describe_location(None) == "Local Network"
