"""Login, logout and the caller's own account."""

import structlog
from fastapi import APIRouter, Depends, Request, status

from lms.core import auth
from lms.db.users_repository import SessionRecord, UserRecord
from lms.web.deps import client_ip, get_current_session, get_current_user
from lms.web.schemas import LoginRequest, LoginResponse, UserResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request) -> LoginResponse:
    """Exchange username and password for a bearer token."""
    result = auth.login(
        body.username,
        body.password,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return LoginResponse(
        token=result.token,
        expires_at=result.session.expires_at,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    current: tuple[UserRecord, SessionRecord] = Depends(get_current_session),
) -> None:
    """End the current session."""
    auth.logout(current[1].session_token)


@router.get("/me", response_model=UserResponse)
async def me(user: UserRecord = Depends(get_current_user)) -> UserResponse:
    """Get the authenticated user."""
    return UserResponse.model_validate(user)
