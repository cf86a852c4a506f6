from sannu.auth.passwords import verify_password
from sannu.models.audit_log import AuditLog
from sannu.models.user import User
from sannu.models.user_session import UserSession
from sannu.services.session_service import SessionService
from sannu.utils.clock import utcnow

PASSWORD = "secret-password"
JSON = {"Accept": "application/json"}


def _events(db, *names):
    return [e.event for e in db.query(AuditLog).filter(AuditLog.event.in_(names)).order_by(AuditLog.id)]


# ==================== Profile ====================

def test_show_profile(client, make_user, login):
    login(make_user(name="Ada Lovelace", email="ada@acme.io"))

    body = client.get("/settings/profile").json()

    assert body["user"]["email"] == "ada@acme.io"
    assert body["must_verify_email"] is True


def test_update_profile_resets_email_verification(client, db, make_user, login):
    user = make_user(email="ada@acme.io")
    user.email_verified_at = utcnow()
    db.commit()
    login(user)

    response = client.patch("/settings/profile", json={"name": "  Ada   King ", "email": "Ada.King@acme.io"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Profile updated successfully. Please verify your new email address."
    assert body["user"]["name"] == "Ada King"
    db.refresh(user)
    assert user.email == "ada.king@acme.io"
    assert user.email_verified_at is None
    assert _events(db, "profile_updated", "email_changed") == ["profile_updated", "email_changed"]


def test_update_name_keeps_email_verification(client, db, make_user, login):
    user = make_user(email="ada@acme.io")
    user.email_verified_at = utcnow()
    db.commit()
    login(user)

    response = client.patch("/settings/profile", json={"name": "Ada King", "email": "ada@acme.io"})

    assert response.json()["message"] == "Profile updated successfully."
    db.refresh(user)
    assert user.email_verified_at is not None
    assert _events(db, "profile_updated", "email_changed") == ["profile_updated"]


def test_update_profile_email_must_be_unique(client, make_user, login):
    make_user(email="taken@acme.io")
    login(make_user())

    response = client.patch("/settings/profile", json={"name": "Ada", "email": "taken@acme.io"})

    assert response.status_code == 422
    assert response.json()["errors"] == {"email": ["The email has already been taken."]}


def test_update_profile_requires_valid_data(client, make_user, login):
    login(make_user())

    response = client.patch("/settings/profile", json={"name": "", "email": "not-an-email"})

    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"name", "email"}


def test_profile_requires_login(client):
    response = client.get("/settings/profile", headers=JSON)

    assert response.status_code == 401


# ==================== Password ====================

def test_update_password_logs_out_other_devices(client, db, make_user, login):
    user = make_user()
    login(user)
    SessionService(db).create_global_session(user, "8.8.8.8", "other-browser")

    response = client.put("/settings/password", json={
        "current_password": PASSWORD,
        "password": "new-secret-password",
        "password_confirmation": "new-secret-password",
    })

    assert response.status_code == 200
    db.refresh(user)
    assert verify_password("new-secret-password", user.password_hash)
    assert db.query(UserSession).filter(UserSession.user_id == user.id).count() == 1
    assert client.get("/settings/profile").status_code == 200
    assert _events(db, "password_changed") == ["password_changed"]


def test_update_password_checks_current_password(client, db, make_user, login):
    user = make_user()
    login(user)

    response = client.put("/settings/password", json={
        "current_password": "wrong-password",
        "password": "new-secret-password",
        "password_confirmation": "new-secret-password",
    })

    assert response.status_code == 422
    assert response.json()["errors"] == {"current_password": ["The password is incorrect."]}
    db.refresh(user)
    assert verify_password(PASSWORD, user.password_hash)


def test_update_password_requires_confirmation(client, make_user, login):
    login(make_user())

    response = client.put("/settings/password", json={
        "current_password": PASSWORD,
        "password": "new-secret-password",
        "password_confirmation": "something-else",
    })

    assert response.status_code == 422
    assert response.json()["errors"] == {"password": ["The password field confirmation does not match."]}


# ==================== Account deletion ====================

def test_delete_account(client, db, make_user, login):
    user = make_user(email="leaving@acme.io")
    user_id = user.id
    login(user)

    response = client.request("DELETE", "/settings/profile", json={"password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["redirect"] == "/"
    db.expire_all()
    assert db.get(User, user_id) is None
    assert db.query(UserSession).filter(UserSession.user_id == user_id).count() == 0
    entry = db.query(AuditLog).filter(AuditLog.event == "account_deleted").one()
    assert entry.context["email"] == "leaving@acme.io"
    assert client.get("/settings/profile", headers=JSON).status_code == 401


def test_delete_account_requires_correct_password(client, db, make_user, login):
    user = make_user()
    login(user)

    response = client.request("DELETE", "/settings/profile", json={"password": "wrong-password"})

    assert response.status_code == 422
    assert response.json()["errors"] == {"password": ["The password is incorrect."]}
    assert db.get(User, user.id) is not None
    assert client.get("/settings/profile").status_code == 200
