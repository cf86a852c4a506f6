"""
Project invitations: invite by email, then accept or decline by token.
"""
import logging
from datetime import timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from sannu.exceptions import ValidationError
from sannu.models.enums import InvitationStatus
from sannu.models.project import Project
from sannu.models.project_invitation import ProjectInvitation
from sannu.models.user import User
from sannu.services.email_service import EmailService
from sannu.utils.clock import utcnow
from sannu.utils.slug_utils import random_string

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 40
EXPIRES_AFTER = timedelta(days=7)


def _run_now(func: Callable, *args, **kwargs):
    return func(*args, **kwargs)


class InvitationService:
    def __init__(self, db: Session, email_service: Optional[EmailService] = None, dispatch: Callable = _run_now):
        self.db = db
        self.email_service = email_service if email_service is not None else EmailService()
        self.dispatch = dispatch

    def find_by_token(self, token: str) -> Optional[ProjectInvitation]:
        return self.db.query(ProjectInvitation).filter(ProjectInvitation.token == token).first()

    def has_accepted_invitation(self, project: Project, user: Optional[User]) -> bool:
        if user is None:
            return False
        return self.db.query(ProjectInvitation.id).filter(
            ProjectInvitation.project_id == project.id,
            ProjectInvitation.email == user.email,
            ProjectInvitation.status == InvitationStatus.ACCEPTED.value,
        ).first() is not None

    def create_invitation(self, project: Project, email: str, inviter: User) -> ProjectInvitation:
        """
        Invite `email` to the project and queue the invitation email.

        Raises:
            ValidationError: If the email already has a pending invitation
        """
        email = email.strip().lower()
        pending = self.db.query(ProjectInvitation.id).filter(
            ProjectInvitation.project_id == project.id,
            ProjectInvitation.email == email,
            ProjectInvitation.status == InvitationStatus.PENDING.value,
        ).first()
        if pending:
            raise ValidationError.single("email", "This email already has a pending invitation for this project.")

        invitation = ProjectInvitation(
            project_id=project.id,
            email=email,
            invited_by=inviter.id,
            token=random_string(TOKEN_LENGTH),
            status=InvitationStatus.PENDING.value,
            expires_at=utcnow() + EXPIRES_AFTER,
        )
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)

        logger.info(f"Invited {email} to project {project.id}")
        self.dispatch(
            self.email_service.send_project_invitation,
            email,
            inviter.name,
            project.name,
            project.tenant.name,
            invitation.token,
        )
        return invitation

    def accept(self, invitation: ProjectInvitation, user: User) -> ProjectInvitation:
        self.ensure_respondable(invitation)
        invitation.status = InvitationStatus.ACCEPTED.value
        invitation.accepted_at = utcnow()
        self.db.commit()
        logger.info(f"User {user.id} accepted invitation {invitation.id}")
        return invitation

    def decline(self, invitation: ProjectInvitation, user: User) -> ProjectInvitation:
        self.ensure_respondable(invitation)
        invitation.status = InvitationStatus.DECLINED.value
        self.db.commit()
        logger.info(f"User {user.id} declined invitation {invitation.id}")
        return invitation

    def ensure_respondable(self, invitation: ProjectInvitation) -> None:
        if not invitation.is_pending:
            raise ValueError("This invitation has already been used.")
        if invitation.is_expired:
            raise ValueError("This invitation has expired.")
