"""Request-scoped dependencies: database session and the calling identity."""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.enums import Role
from portal.models.user import User
from portal.services.errors import NoSession, Unauthorized
from portal.services.identity.service import IdentityService

bearer = HTTPBearer(auto_error=False)


def session_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer)) -> str | None:
    return credentials.credentials if credentials else None


def get_current_user(
    token: str | None = Depends(session_token),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token; NoSession / AccountBlocked propagate to the error handlers."""
    if not token:
        raise NoSession()
    return IdentityService(db).resolve_session(token)


def get_staff_user(user: User = Depends(get_current_user)) -> User:
    if user.role == Role.STUDENT.value:
        raise Unauthorized()
    return user
