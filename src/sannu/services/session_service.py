"""
Session service.

Manages the server-side session rows behind the session cookie:
- creating the global (tenant-less) session at login
- selecting and clearing the tenant context
- activity tracking and expiry
- listing, revoking and invalidating a user's sessions
"""
import ipaddress
import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from sannu.config import get_session_lifetime_minutes
from sannu.models.tenant import Tenant
from sannu.models.user_session import UserSession
from sannu.services.audit_log_service import AuditLogService
from sannu.utils.clock import utcnow

logger = logging.getLogger(__name__)

VERIFICATION_MAX_AGE = timedelta(hours=24)


def describe_location(ip: Optional[str]) -> str:
    """Rough location label: public addresses are 'External Location'."""
    try:
        address = ipaddress.ip_address(ip or "")
    except ValueError:
        return "Local Network"
    if address.is_global:
        return "External Location"
    return "Local Network"


class SessionService:
    """Service for managing user sessions and tenant context."""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditLogService(db)

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=get_session_lifetime_minutes())

    def get(self, session_id: str) -> Optional[UserSession]:
        return self.db.get(UserSession, session_id)

    def create_global_session(self, user, ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> UserSession:
        """
        Start a session after successful authentication.

        Args:
            user: Authenticated user
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            The new UserSession (committed)
        """
        now = utcnow()
        session = UserSession(
            id=secrets.token_urlsafe(32),
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
            last_activity=now,
            payload={
                "user_id": user.id,
                "global_role": user.role,
                "login_time": now.isoformat(),
                "last_activity": now.isoformat(),
                "ip_address": ip_address,
                "user_agent": user_agent,
            },
        )
        user.last_login_at = now
        self.db.add(session)
        self.audit.log_auth_event(
            "session_created", user, ip_address, user_agent,
            extra={"global_role": user.role},
        )
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Created session for user {user.id}")
        return session

    # ==================== Tenant context ====================

    def set_tenant_context(self, session: UserSession, user, tenant_id: int) -> bool:
        """
        Select the tenant a user works in for this session.

        Returns:
            False if the user may not access the tenant or it does not exist
        """
        if user is None:
            return False

        is_admin = user.is_system_admin()
        if not is_admin and not user.has_any_tenant_role():
            return False

        role = "system_admin" if is_admin else user.get_role_in_tenant(tenant_id)
        if role is None:
            logger.warning(f"User {user.id} tried to select tenant {tenant_id} without a role")
            return False

        tenant = self.db.get(Tenant, tenant_id)
        if tenant is None:
            return False

        session.put(
            selected_tenant_id=tenant.id,
            selected_tenant_slug=tenant.slug,
            tenant_role=role,
            tenant_context_set_at=utcnow().isoformat(),
        )
        self.audit.log_auth_event(
            "tenant_context_set", user, session.ip_address, session.user_agent,
            extra={"tenant_id": tenant.id, "tenant_slug": tenant.slug, "tenant_role": role},
            tenant_id=tenant.id,
        )
        self.db.commit()
        return True

    def clear_tenant_context(self, session: UserSession, user=None) -> None:
        previous = session.get("selected_tenant_id")
        session.forget("selected_tenant_id", "selected_tenant_slug", "tenant_role", "tenant_context_set_at")
        if previous is not None:
            self.audit.log_auth_event(
                "tenant_context_cleared", user, session.ip_address, session.user_agent,
                extra={"previous_tenant_id": previous},
            )
        self.db.commit()

    def get_tenant_context(self, session: Optional[UserSession]) -> Optional[dict]:
        if session is None or session.get("selected_tenant_id") is None:
            return None
        return {
            "tenant_id": session.get("selected_tenant_id"),
            "tenant_slug": session.get("selected_tenant_slug"),
            "tenant_role": session.get("tenant_role"),
            "set_at": session.get("tenant_context_set_at"),
        }

    # ==================== Activity & expiry ====================

    def is_session_expired(self, session: UserSession) -> bool:
        # Rows that never recorded activity age from their creation
        last_seen = session.last_activity or session.created_at
        if last_seen is None:
            return True
        return utcnow() > last_seen + self.lifetime

    def update_activity(self, session: UserSession) -> None:
        now = utcnow()
        session.last_activity = now
        session.put(last_activity=now.isoformat())
        self.db.commit()

    def handle_expired_session(self, session: UserSession, user=None) -> None:
        user_id = session.user_id
        self.audit.log_auth_event(
            "session_expired", user, session.ip_address, session.user_agent,
            extra={"last_activity": session.last_activity},
        )
        self.db.delete(session)
        self.db.commit()
        logger.info(f"Expired session removed for user {user_id}")

    def destroy_session(self, session: UserSession, user=None) -> None:
        self.audit.log_auth_event("session_destroyed", user, session.ip_address, session.user_agent)
        self.db.delete(session)
        self.db.commit()

    # ==================== Multi-session management ====================

    def invalidate_all_user_sessions(self, user, except_session_id: Optional[str] = None, reason: str = "password_change") -> int:
        query = self.db.query(UserSession).filter(UserSession.user_id == user.id)
        if except_session_id is not None:
            query = query.filter(UserSession.id != except_session_id)
        count = query.delete(synchronize_session=False)

        self.audit.log_auth_event(
            "all_sessions_invalidated", user,
            extra={"invalidated_sessions_count": count, "reason": reason},
        )
        self.db.commit()
        logger.info(f"Invalidated {count} sessions for user {user.id}")
        return count

    def get_user_active_sessions(self, user, current_session_id: Optional[str] = None) -> List[dict]:
        sessions = self.db.query(UserSession).filter(
            UserSession.user_id == user.id
        ).order_by(UserSession.last_activity.desc()).all()

        return [
            {
                "id": s.id,
                "ip_address": s.ip_address or "Unknown",
                "user_agent": s.user_agent or "Unknown",
                "last_activity": s.last_activity,
                "is_current": s.id == current_session_id,
                "location": describe_location(s.ip_address),
            }
            for s in sessions
        ]

    def revoke_session(self, session_id: str, user) -> bool:
        deleted = self.db.query(UserSession).filter(
            UserSession.id == session_id,
            UserSession.user_id == user.id,
        ).delete(synchronize_session=False)

        if deleted:
            self.audit.log_auth_event("session_revoked", user, extra={"revoked_session_id": session_id})
        self.db.commit()
        return deleted > 0

    def should_prompt_for_verification(self, session: UserSession, current_ip: Optional[str]) -> bool:
        """Prompt when the client IP changed or the login is older than 24 hours."""
        if current_ip != session.get("ip_address"):
            return True

        login_time = session.get("login_time")
        if login_time and utcnow() - datetime.fromisoformat(login_time) > VERIFICATION_MAX_AGE:
            return True
        return False

    def cleanup_expired_sessions(self) -> int:
        cutoff = utcnow() - self.lifetime
        deleted = self.db.query(UserSession).filter(or_(
            UserSession.last_activity < cutoff,
            and_(UserSession.last_activity.is_(None), UserSession.created_at < cutoff),
        )).delete(synchronize_session=False)
        self.db.commit()

        if deleted:
            logger.info(f"Cleaned up {deleted} expired sessions")
        return deleted
