"""
Cookie session authentication.

The cookie holds a short JWT signed with APP_KEY whose only claim is the
server-side session id (`sid`); the session row carries everything else.
"""
import logging
from typing import Optional

from fastapi import Depends, Request, Response
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from sannu.config import get_app_key, get_session_cookie_name, get_session_lifetime_minutes, is_production
from sannu.db.database import get_db
from sannu.exceptions import AuthenticationRequired
from sannu.models.user import User
from sannu.models.user_session import UserSession
from sannu.services.session_service import SessionService

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def encode_session_token(session_id: str) -> str:
    return jwt.encode({"sid": session_id}, get_app_key(), algorithm=ALGORITHM)


def decode_session_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, get_app_key(), algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected session cookie: {e}")
        return None
    return payload.get("sid")


def set_session_cookie(response: Response, session: UserSession, remember: bool = False) -> None:
    max_age = 60 * 60 * 24 * 30 if remember else get_session_lifetime_minutes() * 60
    response.set_cookie(
        get_session_cookie_name(),
        encode_session_token(session.id),
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=is_production(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_session_cookie_name())


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def get_current_session(request: Request, db: Session = Depends(get_db)) -> Optional[UserSession]:
    """Load the session named by the cookie, or None."""
    token = request.cookies.get(get_session_cookie_name())
    if not token:
        return None
    session_id = decode_session_token(token)
    if not session_id:
        return None
    return SessionService(db).get(session_id)


def get_optional_user(
    request: Request,
    session: Optional[UserSession] = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Resolve the logged-in user. Expired sessions are destroyed; live ones
    have their activity refreshed.
    """
    if session is None or session.user_id is None:
        return None

    service = SessionService(db)
    user = db.get(User, session.user_id)
    if service.is_session_expired(session):
        service.handle_expired_session(session, user)
        return None
    if user is None or not user.is_active:
        return None

    service.update_activity(session)
    request.state.session = session
    request.state.user = user
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationRequired()
    return user
