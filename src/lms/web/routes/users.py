"""Account management endpoints (admins manage students, super admins everyone)."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from lms.core import accounts
from lms.db.users_repository import UserRecord, get_user_by_id, list_users
from lms.web.deps import client_ip, require_admin
from lms.web.schemas import UserCreate, UserListResponse, UserResponse, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_accounts(
    role: str | None = None,
    actor: UserRecord = Depends(require_admin),
) -> UserListResponse:
    """List accounts, optionally by role. Admins only see students."""
    if actor.role == "admin":
        role = "student"
    users = [UserResponse.model_validate(u) for u in list_users(role=role)]
    return UserListResponse(users=users, count=len(users))


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    body: UserCreate,
    request: Request,
    actor: UserRecord = Depends(require_admin),
) -> UserResponse:
    """Create an account."""
    user = accounts.create_account(
        actor,
        username=body.username,
        email=body.email,
        full_name=body.full_name,
        role=body.role,
        password=body.password,
        ip_address=client_ip(request),
    )
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_account(user_id: str, actor: UserRecord = Depends(require_admin)) -> UserResponse:
    """Get an account by ID."""
    user = get_user_by_id(user_id)
    if user is None or (actor.role == "admin" and user.role != "student"):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' not found",
        )
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_account(
    user_id: str,
    body: UserUpdate,
    request: Request,
    actor: UserRecord = Depends(require_admin),
) -> UserResponse:
    """Update an account's email, name or password."""
    user = accounts.update_account(
        actor,
        user_id,
        email=body.email,
        full_name=body.full_name,
        password=body.password,
        ip_address=client_ip(request),
    )
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    user_id: str,
    request: Request,
    actor: UserRecord = Depends(require_admin),
) -> None:
    """Delete an account."""
    accounts.delete_account(actor, user_id, ip_address=client_ip(request))
