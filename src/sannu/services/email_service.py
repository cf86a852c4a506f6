"""
Email service for transactional mail.

Messages are rendered as simple HTML and handed to a provider object with a
`send(to, subject, html_body, from_email, from_name)` method. The default
provider speaks SMTP. Routes dispatch sends through FastAPI BackgroundTasks,
so callers never wait on (or fail because of) mail delivery.
"""

import logging
import smtplib
import os
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional
from urllib.parse import quote, urlencode

from sannu.config import get_app_url, get_system_admin_email
from sannu.metrics import emails_sent_total
from sannu.tenancy.context import current_tenant

logger = logging.getLogger(__name__)


class SmtpProvider:
    """
    SMTP delivery.

    Configuration via environment variables:
    - SMTP_HOST: SMTP server (default: localhost)
    - SMTP_PORT: SMTP port (default: 587)
    - SMTP_USERNAME / SMTP_PASSWORD: optional credentials
    - SMTP_USE_TLS: Use STARTTLS (default: true)
    """

    def __init__(self):
        self.smtp_host = os.getenv("SMTP_HOST", "localhost")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_username = os.getenv("SMTP_USERNAME")
        self.smtp_password = os.getenv("SMTP_PASSWORD")
        self.smtp_use_tls = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    def send(self, to: str, subject: str, html_body: str, from_email: str, from_name: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{from_name} <{from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            if self.smtp_use_tls:
                server.starttls()
            if self.smtp_username and self.smtp_password:
                server.login(self.smtp_username, self.smtp_password)
            server.send_message(msg)
        return True


class EmailService:
    """Builds and sends the platform's transactional messages."""

    def __init__(self, provider=None):
        self.from_email = os.getenv("MAIL_FROM_ADDRESS", "noreply@sannu-sannu.com")
        self.from_name = os.getenv("MAIL_FROM_NAME", "Sannu-Sannu")
        self.provider = provider if provider is not None else SmtpProvider()

    def _sender(self):
        """From address/name, honouring the current tenant's mail settings."""
        tenant = current_tenant()
        settings = (getattr(tenant, "settings", None) or {}) if tenant is not None else {}
        return (
            settings.get("mail_from_address") or self.from_email,
            settings.get("mail_from_name") or self.from_name,
        )

    def _send_email(self, to: str, subject: str, html_body: str) -> bool:
        """
        Send one message through the provider.

        Returns:
            True if sent successfully; False (after logging) otherwise.
        """
        if self.provider is None:
            logger.warning(f"No email provider configured; dropping '{subject}' to {to}")
            emails_sent_total.labels(status="failed").inc()
            return False

        from_email, from_name = self._sender()
        try:
            self.provider.send(
                to=to,
                subject=subject,
                html_body=html_body,
                from_email=from_email,
                from_name=from_name,
            )
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
            emails_sent_total.labels(status="failed").inc()
            return False

        logger.info(f"Sent email to {to}: {subject}")
        emails_sent_total.labels(status="sent").inc()
        return True

    # ==================== Tenant applications ====================

    def send_application_confirmation(self, application) -> bool:
        subject = f"Application received - {application.reference_number}"
        body = f"""
        <h2>Thank you for applying, {escape(application.contact_person_name)}</h2>
        <p>We received the application for <strong>{escape(application.organization_name)}</strong>.</p>
        <p><strong>Reference number:</strong> {application.reference_number}</p>
        <p>You can check its status at any time:
           <a href="{get_app_url()}/tenant-application/status/{application.reference_number}">
           {get_app_url()}/tenant-application/status/{application.reference_number}</a></p>
        """
        return self._send_email(application.contact_person_email, subject, body)

    def send_admin_application_notification(self, application) -> bool:
        subject = f"New tenant application: {application.organization_name}"
        body = f"""
        <h2>New tenant application</h2>
        <p><strong>Organization:</strong> {escape(application.organization_name)}</p>
        <p><strong>Industry:</strong> {escape(application.industry_type)}</p>
        <p><strong>Contact:</strong> {escape(application.contact_person_name)}
           &lt;{escape(application.contact_person_email)}&gt;</p>
        <p><strong>Reference:</strong> {application.reference_number}</p>
        <p><a href="{get_app_url()}/admin/tenant-applications/{application.id}">Review application</a></p>
        """
        return self._send_email(get_system_admin_email(), subject, body)

    def send_application_approval(self, application, tenant, temporary_password: Optional[str]) -> bool:
        subject = f"Your organization {application.organization_name} has been approved"
        login_url = f"{get_app_url()}/login"
        credentials = ""
        if temporary_password:
            credentials = f"""
            <p><strong>Email:</strong> {escape(application.contact_person_email)}</p>
            <p><strong>Temporary password:</strong> {escape(temporary_password)}</p>
            <p>Please change this password after your first login.</p>
            """
        body = f"""
        <h2>Welcome to Sannu-Sannu</h2>
        <p>The application {application.reference_number} for
           <strong>{escape(tenant.name)}</strong> was approved.</p>
        <p>Your organization is available at <a href="{get_app_url()}/{tenant.slug}/dashboard">
           {get_app_url()}/{tenant.slug}</a>.</p>
        {credentials}
        <p><a href="{login_url}">Log in</a></p>
        """
        return self._send_email(application.contact_person_email, subject, body)

    def send_application_rejection(self, application) -> bool:
        subject = f"Update on your application {application.reference_number}"
        body = f"""
        <h2>Application update</h2>
        <p>Unfortunately the application for <strong>{escape(application.organization_name)}</strong>
           was not approved.</p>
        <p><strong>Reason:</strong> {escape(application.rejection_reason or '')}</p>
        """
        return self._send_email(application.contact_person_email, subject, body)

    # ==================== Projects ====================

    def send_project_invitation(
        self,
        to_email: str,
        inviter_name: str,
        project_name: str,
        organization_name: str,
        invitation_token: str,
    ) -> bool:
        accept_url = f"{get_app_url()}/invitations/{invitation_token}/accept"
        decline_url = f"{get_app_url()}/invitations/{invitation_token}/decline"
        subject = f"{inviter_name} invited you to {project_name} on {organization_name}"
        body = f"""
        <h2>You're invited</h2>
        <p>{escape(inviter_name)} invited you to join the project
           <strong>{escape(project_name)}</strong> by {escape(organization_name)}.</p>
        <p><a href="{accept_url}">Accept invitation</a> | <a href="{decline_url}">Decline</a></p>
        <p>This invitation expires in 7 days.</p>
        """
        return self._send_email(to_email, subject, body)

    # ==================== Accounts ====================

    def send_password_reset(self, to_email: str, token: str) -> bool:
        reset_url = f"{get_app_url()}/reset-password/{quote(token)}?{urlencode({'email': to_email})}"
        subject = "Reset your password"
        body = f"""
        <h2>Password reset</h2>
        <p>Use the link below to choose a new password. It expires in 60 minutes.</p>
        <p><a href="{reset_url}">Reset password</a></p>
        <p>If you did not request this, you can ignore this email.</p>
        """
        return self._send_email(to_email, subject, body)
