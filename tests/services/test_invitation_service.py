from datetime import timedelta

import pytest

from sannu.exceptions import ValidationError
from sannu.models.enums import InvitationStatus
from sannu.services.invitation_service import InvitationService
from sannu.utils.clock import utcnow


@pytest.fixture
def private_project(make_tenant, make_project):
    return make_project(make_tenant(), name="Members Only", visibility="private")


def test_create_invitation_sends_email(db, email_service, mail, make_user, private_project):
    inviter = make_user(name="Ada Admin")

    invitation = InvitationService(db, email_service).create_invitation(private_project, " Guest@Example.com ", inviter)

    assert invitation.email == "guest@example.com"
    assert invitation.is_pending
    assert len(invitation.token) == 40
    assert invitation.expires_at > utcnow() + timedelta(days=6)
    assert mail.subjects() == ["Ada Admin invited you to Members Only on Acme Cooperative"]
    assert f"/invitations/{invitation.token}/accept" in mail.sent[0]["html_body"]


def test_dispatch_is_used_for_the_email(db, email_service, mail, make_user, private_project):
    queued = []
    service = InvitationService(db, email_service, dispatch=lambda func, *args: queued.append((func, args)))

    service.create_invitation(private_project, "guest@example.com", make_user())

    assert mail.sent == []
    assert len(queued) == 1


def test_duplicate_pending_invitation_rejected(db, email_service, make_user, private_project):
    service = InvitationService(db, email_service)
    inviter = make_user()
    service.create_invitation(private_project, "guest@example.com", inviter)

    with pytest.raises(ValidationError) as exc:
        service.create_invitation(private_project, "GUEST@example.com", inviter)

    assert "email" in exc.value.errors


def test_accept_and_reuse(db, email_service, make_user, private_project):
    service = InvitationService(db, email_service)
    guest = make_user(email="guest@example.com")
    invitation = service.create_invitation(private_project, guest.email, make_user())

    accepted = service.accept(invitation, guest)

    assert accepted.status == InvitationStatus.ACCEPTED.value
    assert accepted.accepted_at is not None
    assert service.has_accepted_invitation(private_project, guest)
    with pytest.raises(ValueError, match="This invitation has already been used."):
        service.decline(invitation, guest)


def test_expired_invitation(db, email_service, make_user, private_project):
    service = InvitationService(db, email_service)
    guest = make_user(email="guest@example.com")
    invitation = service.create_invitation(private_project, guest.email, make_user())
    invitation.expires_at = utcnow() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(ValueError, match="This invitation has expired."):
        service.accept(invitation, guest)


def test_find_by_token(db, email_service, make_user, private_project):
    service = InvitationService(db, email_service)
    invitation = service.create_invitation(private_project, "guest@example.com", make_user())

    assert service.find_by_token(invitation.token).id == invitation.id
    assert service.find_by_token("missing") is None
