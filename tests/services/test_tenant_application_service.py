import pytest

from sannu.exceptions import ValidationError
from sannu.models.enums import Role, TenantApplicationStatus
from sannu.models.tenant import Tenant
from sannu.models.user import User
from sannu.services.tenant_application_service import NOT_REVIEWABLE, TenantApplicationService

APPLICATION = {
    "organization_name": "Kano Farmers Union",
    "business_description": "A cooperative of smallholder farmers pooling money for inputs and equipment.",
    "industry_type": "nonprofit",
    "contact_person_name": "Amina Bello",
    "contact_person_email": "Amina@KanoFarmers.org",
    "contact_person_phone": "+234 800 000 0000",
}


@pytest.fixture
def service(db, email_service):
    return TenantApplicationService(db, email_service)


@pytest.fixture
def admin(make_user):
    return make_user(email="root@sannu.io", role=Role.SYSTEM_ADMIN)


def test_create_application_is_pending_and_emails(service, mail):
    application = service.create_application(dict(APPLICATION))

    assert application.status == TenantApplicationStatus.PENDING.value
    assert application.reference_number.startswith("TA-")
    assert application.contact_person_email == "amina@kanofarmers.org"
    assert mail.subjects() == [
        f"Application received - {application.reference_number}",
        "New tenant application: Kano Farmers Union",
    ]
    assert mail.sent[1]["to"] == "admin@sannu-sannu.com"


def test_duplicate_organization_name(service):
    service.create_application(dict(APPLICATION))

    with pytest.raises(ValidationError) as exc:
        service.create_application(dict(APPLICATION, organization_name="KANO FARMERS UNION"))

    assert "organization_name" in exc.value.errors


def test_approve_provisions_tenant_and_admin(db, service, mail, admin):
    application = service.create_application(dict(APPLICATION))

    tenant = service.approve_application(application, admin, notes="Looks good")

    assert tenant.slug == "kano-farmers-union"
    assert tenant.is_active_tenant()
    assert tenant.application_id == application.id
    assert application.status == TenantApplicationStatus.APPROVED.value
    assert application.reviewer_id == admin.id

    user = db.query(User).filter(User.email == "amina@kanofarmers.org").one()
    assert user.is_tenant_admin(tenant.id)
    assert mail.subjects()[-1] == "Your organization Kano Farmers Union has been approved"
    assert "Temporary password" in mail.sent[-1]["html_body"]


def test_approve_reuses_existing_user(db, service, mail, admin, make_user):
    existing = make_user(email="amina@kanofarmers.org")
    application = service.create_application(dict(APPLICATION))

    tenant = service.approve_application(application, admin)

    db.refresh(existing)
    assert existing.is_tenant_admin(tenant.id)
    assert "Temporary password" not in mail.sent[-1]["html_body"]


def test_approve_picks_free_slug(db, service, admin, make_tenant):
    make_tenant("kano-farmers-union", name="Someone Else")

    tenant = service.approve_application(service.create_application(dict(APPLICATION)), admin)

    assert tenant.slug == "kano-farmers-union-1"
    assert db.query(Tenant).count() == 2


def test_reviewed_application_cannot_be_reviewed_again(service, admin):
    application = service.create_application(dict(APPLICATION))
    service.reject_application(application, "Incomplete details", admin)

    with pytest.raises(ValueError, match=NOT_REVIEWABLE):
        service.approve_application(application, admin)


def test_reject_application(service, mail, admin):
    application = service.create_application(dict(APPLICATION))

    rejected = service.reject_application(application, "Incomplete details", admin, notes="Missing website")

    assert rejected.status == TenantApplicationStatus.REJECTED.value
    assert rejected.rejection_reason == "Incomplete details"
    assert rejected.status_label == "Rejected"
    assert "Incomplete details" in mail.sent[-1]["html_body"]


def test_list_and_count_applications(service, admin):
    first = service.create_application(dict(APPLICATION))
    service.create_application(dict(APPLICATION, organization_name="Lagos Traders", contact_person_email="t@lagos.ng"))
    service.reject_application(first, "Duplicate", admin)

    assert service.status_counts() == {"pending": 1, "approved": 0, "rejected": 1}
    assert service.list_applications(status="pending")["total"] == 1
    assert [a.organization_name for a in service.list_applications(search="lagos")["data"]] == ["Lagos Traders"]
    assert service.find_by_reference(first.reference_number).id == first.id
