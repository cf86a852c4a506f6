"""
Audit log service.

Persists security-relevant events as AuditLog rows and mirrors them to the
application log. Entries are added to the caller's session and flushed; the
caller's commit makes them durable together with the change they describe.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from sannu.models.audit_log import AuditLog
from sannu.tenancy.context import current_tenant_id

logger = logging.getLogger(__name__)

AUTH_EVENT_MESSAGES = {
    "login_success": "Authentication: Login successful",
    "login_failed": "Authentication: Login failed",
    "login_locked": "Authentication: Account locked due to too many attempts",
    "logout": "Authentication: User logged out",
    "registration": "Authentication: New user registered",
    "password_reset": "Authentication: Password reset completed",
    "password_reset_requested": "Authentication: Password reset requested",
    "password_changed": "Authentication: Password changed",
    "profile_updated": "Account: Profile updated",
    "email_changed": "Account: Email address changed",
    "account_deleted": "Account: Account deleted",
    "session_created": "Session: New session created",
    "session_expired": "Session: Session expired",
    "session_destroyed": "Session: Session destroyed",
    "session_revoked": "Session: Session revoked",
    "all_sessions_invalidated": "Session: All user sessions invalidated",
    "tenant_context_set": "Session: Tenant context set",
    "tenant_context_cleared": "Session: Tenant context cleared",
    "tenant_application_approved": "Tenant: Application approved",
    "tenant_application_rejected": "Tenant: Application rejected",
}

PROJECT_EVENT_MESSAGES = {
    "project_created": "Project: Created",
    "project_updated": "Project: Updated",
    "project_deleted": "Project: Deleted",
    "project_activated": "Project: Activated",
    "project_paused": "Project: Paused",
    "project_completed": "Project: Completed",
    "project_cancelled": "Project: Cancelled",
    "project_resumed": "Project: Resumed",
}

_LEVELS = {
    "info": logging.INFO,
    "low": logging.INFO,
    "medium": logging.WARNING,
    "warning": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _clean(context: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop null values and stringify dates/decimals so context is JSON-safe."""
    cleaned = {}
    for key, value in (context or {}).items():
        if value is None:
            continue
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        cleaned[key] = value
    return cleaned


class AuditLogService:
    """Service for writing audit trail entries."""

    def __init__(self, db: Session):
        self.db = db

    def _write(
        self,
        event: str,
        message: str,
        severity: str = "info",
        user=None,
        tenant_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        context = _clean(context)
        entry = AuditLog(
            event=event,
            message=message,
            severity=severity,
            user_id=getattr(user, "id", None),
            tenant_id=tenant_id if tenant_id is not None else current_tenant_id(),
            ip_address=ip_address,
            user_agent=user_agent,
            context=context or None,
        )
        self.db.add(entry)
        self.db.flush()

        logger.log(
            _LEVELS.get(severity, logging.INFO),
            f"{message} event={event} user={entry.user_id} tenant={entry.tenant_id} "
            f"ip={ip_address or '-'} context={context}"
        )
        return entry

    def log_auth_event(
        self,
        event: str,
        user=None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        tenant_id: Optional[int] = None,
    ) -> AuditLog:
        """
        Record an authentication or session event.

        Args:
            event: Event key, e.g. 'login_success' or 'tenant_context_set'
            user: Acting user, if known
            ip_address: Client IP
            user_agent: Client user agent
            extra: Additional context; None values are dropped
            tenant_id: Tenant the event relates to (defaults to current tenant)

        Returns:
            The AuditLog entry
        """
        message = AUTH_EVENT_MESSAGES.get(event, f"Authentication: {event}")
        context = dict(extra or {})
        if user is not None:
            context.setdefault("email", user.email)
        return self._write(
            event, message, user=user, tenant_id=tenant_id,
            ip_address=ip_address, user_agent=user_agent, context=context,
        )

    def log_security_event(
        self,
        event: str,
        severity: str = "medium",
        user=None,
        ip_address: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return self._write(
            event, f"Security: {event.replace('_', ' ').capitalize()}",
            severity=severity, user=user, ip_address=ip_address, context=extra,
        )

    def log_rate_limit_event(self, key: str, user=None, ip_address: Optional[str] = None) -> AuditLog:
        return self.log_security_event(
            "rate_limit_exceeded", severity="medium", user=user,
            ip_address=ip_address, extra={"throttle_key": key},
        )

    def log_csrf_failure(self, ip_address: Optional[str], url: str) -> AuditLog:
        return self.log_security_event(
            "csrf_token_mismatch", severity="high", ip_address=ip_address, extra={"url": url},
        )

    def log_suspicious_login(self, user, ip_address: Optional[str], reason: str) -> AuditLog:
        return self.log_security_event(
            "suspicious_login", severity="high", user=user,
            ip_address=ip_address, extra={"reason": reason},
        )

    def log_project_event(
        self,
        event: str,
        project,
        user=None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        context = {
            "project_id": project.id,
            "project_name": project.name,
            "project_status": project.status,
        }
        context.update(extra or {})
        return self._write(
            event,
            PROJECT_EVENT_MESSAGES.get(event, f"Project: {event}"),
            user=user,
            tenant_id=project.tenant_id,
            context=context,
        )

    def get_project_events(self, project, limit: int = 50) -> List[AuditLog]:
        """Most recent entries logged against `project`, newest first."""
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.context["project_id"].as_integer() == project.id)
            .order_by(AuditLog.id.desc())
            .limit(limit)
            .all()
        )
