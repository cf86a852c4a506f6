"""
API routes for responding to project invitations.

Endpoints:
- POST /invitations/{token}/accept - Accept an invitation sent to the user's email
- POST /invitations/{token}/decline - Decline it
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from sannu.api.errors import service_errors
from sannu.api.schemas import InvitationResponse
from sannu.auth.policies import ProjectInvitationPolicy
from sannu.auth.rbac import authorize
from sannu.auth.session_auth import get_current_user
from sannu.db.database import get_db
from sannu.models.project_invitation import ProjectInvitation
from sannu.models.user import User
from sannu.services.invitation_service import InvitationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invitations", tags=["invitations"])


def _get_invitation(service: InvitationService, token: str) -> ProjectInvitation:
    invitation = service.find_by_token(token)
    if invitation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return invitation


@router.post("/{token}/accept")
def accept_invitation(token: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = InvitationService(db)
    invitation = _get_invitation(service, token)
    with service_errors():
        service.ensure_respondable(invitation)
    authorize(ProjectInvitationPolicy.accept(user, invitation))

    with service_errors():
        invitation = service.accept(invitation, user)

    project = invitation.project
    return {
        "message": "Invitation accepted.",
        "invitation": InvitationResponse.model_validate(invitation),
        "redirect": f"/{project.tenant.slug}/projects/{project.id}",
    }


@router.post("/{token}/decline")
def decline_invitation(token: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    service = InvitationService(db)
    invitation = _get_invitation(service, token)
    with service_errors():
        service.ensure_respondable(invitation)
    authorize(ProjectInvitationPolicy.decline(user, invitation))

    with service_errors():
        invitation = service.decline(invitation, user)

    return {"message": "Invitation declined.", "invitation": InvitationResponse.model_validate(invitation)}
