"""Request dependencies: bearer-token authentication and role guards."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lms.core.auth import authenticate_token, require_role
from lms.core.errors import AuthenticationError, PermissionDeniedError
from lms.db.users_repository import SessionRecord, UserRecord

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> tuple[UserRecord, SessionRecord]:
    """Resolve the bearer token; 401 when missing, unknown or expired."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return authenticate_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user(
    current: tuple[UserRecord, SessionRecord] = Depends(get_current_session),
) -> UserRecord:
    return current[0]


def _guard(user: UserRecord, *roles: str) -> UserRecord:
    try:
        require_role(user, *roles)
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    return user


async def require_admin(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    """Admins and super admins."""
    return _guard(user, "admin")


async def require_super_admin(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    return _guard(user, "super_admin")


async def require_student(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    return _guard(user, "student")


def client_ip(request: Request) -> str | None:
    """Caller address for the activity log."""
    return request.client.host if request.client else None
