"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from syspoints_stage.core.errors import AuthenticationError, AuthorizationError
from syspoints_stage.db.session import get_db
from syspoints_stage.models import AuthSession, User
from syspoints_stage.services.auth import AuthService

# Missing credentials are reported through the error envelope, not FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def get_current_session(credentials: CredentialsDep, db: SessionDep) -> tuple[User, AuthSession]:
    """Resolve the bearer token to its live session.

    Raises:
        AuthenticationError: If the token is missing, invalid, expired or
            its session has been revoked.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("missing bearer token")
    return AuthService(db).authenticate(credentials.credentials)


CurrentSessionDep = Annotated[tuple[User, AuthSession], Depends(get_current_session)]


def get_current_user(current: CurrentSessionDep) -> User:
    """Get the current authenticated user."""
    return current[0]


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUserDep) -> User:
    if not user.is_admin:
        raise AuthorizationError("admin role required")
    return user


AdminUserDep = Annotated[User, Depends(require_admin)]
