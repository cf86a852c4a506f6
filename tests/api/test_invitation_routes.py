from datetime import timedelta

import pytest

from sannu.models.enums import Role
from sannu.services.invitation_service import InvitationService
from sannu.utils.clock import utcnow


@pytest.fixture
def acme(make_tenant):
    return make_tenant("acme")


@pytest.fixture
def project(acme, make_project, make_user, grant_role):
    owner = grant_role(make_user(name="Ada Admin"), acme, Role.TENANT_ADMIN)
    return make_project(acme, creator=owner, name="Members Only", visibility="invite_only", status="active")


@pytest.fixture
def invitation(db, project, email_service):
    return InvitationService(db, email_service).create_invitation(project, "guest@example.com", project.creator)


@pytest.fixture
def guest(make_user, login):
    user = make_user(email="guest@example.com", name="Guest")
    login(user)
    return user


def test_accept_invitation(client, project, invitation, guest):
    response = client.post(f"/invitations/{invitation.token}/accept")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Invitation accepted."
    assert body["invitation"]["status"] == "accepted"
    assert body["redirect"] == f"/acme/projects/{project.id}"


def test_accepted_invitation_grants_access(client, project, invitation, guest):
    assert client.get(f"/acme/projects/{project.id}").status_code == 403

    client.post(f"/invitations/{invitation.token}/accept")

    assert client.get(f"/acme/projects/{project.id}").status_code == 200


def test_decline_invitation(client, invitation, guest):
    response = client.post(f"/invitations/{invitation.token}/decline")

    assert response.json()["message"] == "Invitation declined."
    assert response.json()["invitation"]["status"] == "declined"


def test_unknown_token(client, guest):
    response = client.post("/invitations/nope/accept")

    assert response.status_code == 404
    assert response.json() == {"detail": "Invitation not found"}


def test_invitation_cannot_be_reused(client, invitation, guest):
    client.post(f"/invitations/{invitation.token}/accept")

    response = client.post(f"/invitations/{invitation.token}/decline")

    assert response.status_code == 400
    assert response.json() == {"detail": "This invitation has already been used."}


def test_expired_invitation(client, db, invitation, guest):
    invitation.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.post(f"/invitations/{invitation.token}/accept")

    assert response.status_code == 400
    assert response.json() == {"detail": "This invitation has expired."}


def test_invitation_for_someone_else(client, invitation, make_user, login):
    login(make_user(email="stranger@example.com"))

    assert client.post(f"/invitations/{invitation.token}/accept").status_code == 403


def test_requires_login(client, invitation):
    response = client.post(f"/invitations/{invitation.token}/accept", headers={"Accept": "application/json"})

    assert response.status_code == 401
