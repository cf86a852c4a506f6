"""
Account service: registration, credential checks, password resets and
self-service profile changes.

Session creation lives in SessionService; this service decides *whether*
a user may log in and where they should land afterwards.
"""
import hashlib
import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session

from sannu.auth.passwords import hash_password, verify_password
from sannu.auth.rate_limit import RateLimiter, throttle_key
from sannu.exceptions import TooManyAttempts, ValidationError
from sannu.metrics import login_attempts_total
from sannu.models.enums import Role
from sannu.models.password_reset_token import PasswordResetToken
from sannu.models.user import User
from sannu.models.user_session import UserSession
from sannu.services.audit_log_service import AuditLogService
from sannu.services.session_service import SessionService
from sannu.utils.clock import utcnow

logger = logging.getLogger(__name__)

FAILED_LOGIN_MESSAGE = "These credentials do not match our records."


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def post_login_redirect(user: User) -> str:
    """Landing page after login, based on the user's roles."""
    if user.is_system_admin():
        return "/admin/dashboard"
    if user.needs_tenant_selection():
        return "/select-tenant"
    return "/dashboard"


class AuthService:
    """Service for authenticating and provisioning user accounts."""

    def __init__(self, db: Session, limiter: Optional[RateLimiter] = None):
        self.db = db
        self.limiter = limiter if limiter is not None else RateLimiter()
        self.audit = AuditLogService(db)

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def register(self, name: str, email: str, password: str) -> User:
        """
        Create a contributor account.

        Raises:
            ValidationError: If the email is already registered
        """
        email = email.strip().lower()
        if self.find_by_email(email) is not None:
            raise ValidationError.single("email", "The email has already been taken.")

        user = User(
            name=" ".join(name.split()),
            email=email,
            password_hash=hash_password(password),
            role=Role.CONTRIBUTOR.value,
            is_active=True,
        )
        self.db.add(user)
        self.db.flush()
        self.audit.log_auth_event("registration", user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Registered user {user.id} ({user.email})")
        return user

    def attempt_login(self, email: str, password: str, ip_address: Optional[str], user_agent: Optional[str] = None) -> User:
        """
        Check credentials, applying the per email|ip throttle.

        Returns:
            The authenticated User

        Raises:
            TooManyAttempts: When the throttle key is locked out
            ValidationError: When the credentials are wrong or the user is inactive
        """
        key = throttle_key(email, ip_address)

        if self.limiter.too_many_attempts(key):
            retry_after = self.limiter.available_in(key)
            self.audit.log_auth_event(
                "login_locked", None, ip_address, user_agent,
                extra={"email": email, "attempts": self.limiter.attempts(key), "retry_after": retry_after},
            )
            self.audit.log_rate_limit_event(key, ip_address=ip_address)
            self.db.commit()
            login_attempts_total.labels(result="locked").inc()
            raise TooManyAttempts(retry_after)

        user = self.find_by_email(email)
        if user is None or not user.is_active or not verify_password(password, user.password_hash):
            attempts = self.limiter.hit(key)
            self.audit.log_auth_event(
                "login_failed", user, ip_address, user_agent,
                extra={"email": email, "attempts": attempts, "reason": "inactive" if user is not None and not user.is_active else None},
            )
            self.db.commit()
            login_attempts_total.labels(result="failed").inc()
            raise ValidationError.single("email", FAILED_LOGIN_MESSAGE)

        self.limiter.clear(key)
        login_attempts_total.labels(result="success").inc()
        return user

    def complete_login(self, user: User, ip_address: Optional[str], user_agent: Optional[str]):
        """Create the session for an authenticated user and audit the login."""
        session = SessionService(self.db).create_global_session(user, ip_address, user_agent)
        self.audit.log_auth_event(
            "login_success", user, ip_address, user_agent,
            extra={"global_role": user.role, "redirect": post_login_redirect(user)},
        )
        self.db.commit()
        return session

    # ==================== Password reset ====================

    def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a reset token for `email`.

        Returns:
            The plain token, or None when no active account matches. Callers
            respond identically in both cases.
        """
        user = self.find_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown email")
            return None

        token = secrets.token_urlsafe(32)
        record = self.db.get(PasswordResetToken, user.email)
        if record is None:
            record = PasswordResetToken(email=user.email)
            self.db.add(record)
        record.token_hash = _hash_token(token)
        record.created_at = utcnow()

        self.audit.log_auth_event("password_reset_requested", user)
        self.db.commit()
        return token

    def reset_password(self, email: str, token: str, password: str) -> User:
        """
        Set a new password using a reset token and sign the user out everywhere.

        Raises:
            ValidationError: If the token is invalid or expired
        """
        email = email.strip().lower()
        record = self.db.get(PasswordResetToken, email)
        if (
            record is None
            or record.is_expired
            or not secrets.compare_digest(record.token_hash, _hash_token(token))
        ):
            raise ValidationError.single("email", "This password reset token is invalid.")

        user = self.find_by_email(email)
        if user is None:
            raise ValidationError.single("email", "This password reset token is invalid.")

        user.password_hash = hash_password(password)
        self.db.delete(record)
        self.audit.log_auth_event("password_reset", user)
        self.db.commit()

        SessionService(self.db).invalidate_all_user_sessions(user, reason="password_reset")
        return user

    # ==================== Profile ====================

    def update_profile(self, user: User, name: str, email: str, ip_address: Optional[str] = None) -> User:
        """
        Change the user's name and email. A new email address must be
        verified again.

        Raises:
            ValidationError: If the email belongs to another account
        """
        email = email.strip().lower()
        existing = self.find_by_email(email)
        if existing is not None and existing.id != user.id:
            raise ValidationError.single("email", "The email has already been taken.")

        original = {"name": user.name, "email": user.email}
        name = " ".join(name.split())
        changed = [field for field, value in (("name", name), ("email", email)) if value != original[field]]

        user.name = name
        if "email" in changed:
            user.email = email
            user.email_verified_at = None

        if changed:
            self.audit.log_auth_event(
                "profile_updated", user, ip_address,
                extra={"changed_fields": changed, "original": original},
            )
            if "email" in changed:
                self.audit.log_auth_event(
                    "email_changed", user, ip_address,
                    extra={"old_email": original["email"], "new_email": email},
                )
        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(
        self,
        user: User,
        current_password: str,
        password: str,
        ip_address: Optional[str] = None,
        keep_session_id: Optional[str] = None,
    ) -> User:
        """
        Replace the password after checking the current one, then log out
        every other session.

        Raises:
            ValidationError: If the current password is wrong
        """
        if not verify_password(current_password, user.password_hash):
            raise ValidationError.single("current_password", "The password is incorrect.")

        user.password_hash = hash_password(password)
        self.audit.log_auth_event("password_changed", user, ip_address)
        self.db.commit()

        SessionService(self.db).invalidate_all_user_sessions(
            user, except_session_id=keep_session_id, reason="password_change"
        )
        return user

    def delete_account(self, user: User, password: str, ip_address: Optional[str] = None) -> None:
        """
        Delete the user's account after checking the password. Sessions and
        tenant roles go with it; audit entries keep the email.

        Raises:
            ValidationError: If the password is wrong
        """
        if not verify_password(password, user.password_hash):
            raise ValidationError.single("password", "The password is incorrect.")

        self.audit.log_auth_event(
            "account_deleted", user, ip_address,
            extra={"reason": "User requested account deletion"},
        )
        user_id = user.id
        self.db.query(UserSession).filter(UserSession.user_id == user_id).delete(synchronize_session=False)
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted account {user_id}")
