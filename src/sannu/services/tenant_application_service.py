"""
Tenant application service.

Handles:
- Submitting applications from prospective organizations
- Admin review (approve / reject)
- Provisioning the tenant and its first tenant admin on approval
"""
import logging
from typing import Callable, Optional

from opentelemetry import trace
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from sannu.auth.passwords import generate_temporary_password, hash_password
from sannu.exceptions import ValidationError
from sannu.metrics import tenant_applications_reviewed_total, tenant_applications_submitted_total
from sannu.models.enums import Role, TenantApplicationStatus, TenantStatus
from sannu.models.tenant import Tenant
from sannu.models.tenant_application import TenantApplication
from sannu.models.user import User
from sannu.models.user_tenant_role import UserTenantRole
from sannu.services.audit_log_service import AuditLogService
from sannu.services.email_service import EmailService
from sannu.utils.clock import utcnow
from sannu.utils.pagination import paginate
from sannu.utils.slug_utils import unique_slug

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NOT_REVIEWABLE = "Application cannot be reviewed in its current state."


def _run_now(func: Callable, *args, **kwargs):
    return func(*args, **kwargs)


class TenantApplicationService:
    """
    Service for the tenant onboarding workflow.

    `dispatch` decides how notification emails run: immediately by default,
    or `BackgroundTasks.add_task` when called from a route.
    """

    def __init__(self, db: Session, email_service: Optional[EmailService] = None, dispatch: Callable = _run_now):
        self.db = db
        self.email_service = email_service if email_service is not None else EmailService()
        self.dispatch = dispatch
        self.audit = AuditLogService(db)

    # ==================== Submission ====================

    def create_application(self, data: dict) -> TenantApplication:
        """
        Store a new pending application and queue the confirmation emails.

        Args:
            data: Validated application fields

        Returns:
            The created TenantApplication

        Raises:
            ValidationError: If the organization name was already used
        """
        name = data["organization_name"]
        taken = self.db.query(TenantApplication.id).filter(
            func.lower(TenantApplication.organization_name) == name.lower()
        ).first()
        if taken:
            raise ValidationError.single(
                "organization_name",
                "An application for this organization name already exists."
            )

        application = TenantApplication(
            reference_number=TenantApplication.generate_reference_number(self.db),
            organization_name=name,
            business_description=data["business_description"],
            industry_type=data["industry_type"],
            contact_person_name=data["contact_person_name"],
            contact_person_email=data["contact_person_email"].lower(),
            contact_person_phone=data.get("contact_person_phone"),
            business_registration_number=data.get("business_registration_number"),
            website_url=data.get("website_url"),
            status=TenantApplicationStatus.PENDING.value,
            submitted_at=utcnow(),
        )
        self.db.add(application)
        self.db.commit()
        self.db.refresh(application)

        tenant_applications_submitted_total.inc()
        logger.info(f"Tenant application {application.reference_number} submitted for {name}")

        self.dispatch(self._send_submission_emails, application)
        return application

    def _send_submission_emails(self, application: TenantApplication) -> None:
        if not self.email_service.send_application_confirmation(application):
            logger.error(f"Confirmation email failed for {application.reference_number}")
        if not self.email_service.send_admin_application_notification(application):
            logger.error(f"Admin notification failed for {application.reference_number}")

    # ==================== Queries ====================

    def find_by_reference(self, reference_number: str) -> Optional[TenantApplication]:
        return self.db.query(TenantApplication).filter(
            TenantApplication.reference_number == reference_number
        ).first()

    def get(self, application_id: int) -> Optional[TenantApplication]:
        return self.db.get(TenantApplication, application_id)

    def list_applications(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 15,
    ) -> dict:
        query = self.db.query(TenantApplication)
        if status:
            query = query.filter(TenantApplication.status == TenantApplicationStatus(status).value)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(or_(
                func.lower(TenantApplication.organization_name).like(pattern),
                func.lower(TenantApplication.contact_person_name).like(pattern),
                func.lower(TenantApplication.contact_person_email).like(pattern),
                func.lower(TenantApplication.reference_number).like(pattern),
            ))
        query = query.order_by(TenantApplication.submitted_at.desc(), TenantApplication.id.desc())
        return paginate(query, page, per_page)

    def status_counts(self) -> dict:
        rows = self.db.query(TenantApplication.status, func.count(TenantApplication.id)).group_by(
            TenantApplication.status
        ).all()
        counts = {s.value: 0 for s in TenantApplicationStatus}
        counts.update({status: count for status, count in rows})
        return counts

    # ==================== Review ====================

    def approve_application(self, application: TenantApplication, approver: User, notes: Optional[str] = None) -> Tenant:
        """
        Approve an application and provision its tenant.

        Creates the tenant, finds or creates the contact's user account and
        grants it the tenant_admin role, all in one transaction.

        Returns:
            The new Tenant

        Raises:
            ValueError: If the application is not pending
        """
        if not application.can_be_reviewed():
            raise ValueError(NOT_REVIEWABLE)

        with tracer.start_as_current_span("tenant_application.approve") as span:
            span.set_attribute("application.reference", application.reference_number)
            try:
                application.status = TenantApplicationStatus.APPROVED.value
                application.reviewed_at = utcnow()
                application.reviewer_id = approver.id
                application.notes = notes

                tenant = self._create_tenant(application)
                user, temporary_password = self._get_or_create_admin_user(application)
                self.db.add(UserTenantRole(
                    user_id=user.id,
                    tenant_id=tenant.id,
                    role=Role.TENANT_ADMIN.value,
                    is_active=True,
                ))

                self.audit.log_auth_event(
                    "tenant_application_approved", approver,
                    extra={
                        "application_id": application.id,
                        "reference_number": application.reference_number,
                        "tenant_id": tenant.id,
                        "tenant_slug": tenant.slug,
                        "admin_user_id": user.id,
                    },
                    tenant_id=tenant.id,
                )
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.error(f"Approval failed for {application.reference_number}", exc_info=True)
                raise

        self.db.refresh(tenant)
        self.db.refresh(application)
        tenant_applications_reviewed_total.labels(decision="approved").inc()
        logger.info(f"Approved {application.reference_number}; created tenant {tenant.slug}")

        self.dispatch(self.email_service.send_application_approval, application, tenant, temporary_password)
        return tenant

    def reject_application(
        self,
        application: TenantApplication,
        reason: str,
        rejector: User,
        notes: Optional[str] = None,
    ) -> TenantApplication:
        """
        Reject an application with a reason shown to the applicant.

        Raises:
            ValueError: If the application is not pending
        """
        if not application.can_be_reviewed():
            raise ValueError(NOT_REVIEWABLE)

        application.status = TenantApplicationStatus.REJECTED.value
        application.reviewed_at = utcnow()
        application.reviewer_id = rejector.id
        application.rejection_reason = reason
        application.notes = notes

        self.audit.log_auth_event(
            "tenant_application_rejected", rejector,
            extra={
                "application_id": application.id,
                "reference_number": application.reference_number,
                "rejection_reason": reason,
            },
        )
        self.db.commit()
        self.db.refresh(application)

        tenant_applications_reviewed_total.labels(decision="rejected").inc()
        logger.info(f"Rejected {application.reference_number}")

        self.dispatch(self.email_service.send_application_rejection, application)
        return application

    def _create_tenant(self, application: TenantApplication) -> Tenant:
        slug = unique_slug(
            application.organization_name,
            lambda s: self.db.query(Tenant.id).filter(Tenant.slug == s).first() is not None,
            fallback="tenant",
        )
        tenant = Tenant(
            slug=slug,
            name=application.organization_name,
            contact_name=application.contact_person_name,
            contact_email=application.contact_person_email,
            contact_phone=application.contact_person_phone,
            status=TenantStatus.ACTIVE.value,
            is_active=True,
            application_id=application.id,
            settings={},
        )
        self.db.add(tenant)
        self.db.flush()
        return tenant

    def _get_or_create_admin_user(self, application: TenantApplication):
        """Returns (user, temporary_password); the password is None for existing users."""
        email = application.contact_person_email.lower()
        user = self.db.query(User).filter(User.email == email).first()
        if user is not None:
            return user, None

        temporary_password = generate_temporary_password(12)
        user = User(
            name=application.contact_person_name,
            email=email,
            password_hash=hash_password(temporary_password),
            role=Role.CONTRIBUTOR.value,
            phone=application.contact_person_phone,
            is_active=True,
            email_verified_at=utcnow(),
        )
        self.db.add(user)
        self.db.flush()
        return user, temporary_password
