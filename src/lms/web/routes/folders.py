"""Exam folder endpoints."""

from fastapi import APIRouter, Depends, status

from lms.core import exams
from lms.db.exams_repository import list_folders
from lms.db.users_repository import UserRecord
from lms.web.deps import require_admin
from lms.web.schemas import FolderCreate, FolderListResponse, FolderResponse

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.get("", response_model=FolderListResponse)
async def list_all_folders(actor: UserRecord = Depends(require_admin)) -> FolderListResponse:
    """List folders by name."""
    folders = [FolderResponse.model_validate(f) for f in list_folders()]
    return FolderListResponse(folders=folders, count=len(folders))


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    body: FolderCreate,
    actor: UserRecord = Depends(require_admin),
) -> FolderResponse:
    """Create a folder."""
    return FolderResponse.model_validate(exams.create_folder(actor, body.name, body.description))


@router.put("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: str,
    body: FolderCreate,
    actor: UserRecord = Depends(require_admin),
) -> FolderResponse:
    """Rename a folder."""
    folder = exams.rename_folder(actor, folder_id, body.name, body.description)
    return FolderResponse.model_validate(folder)


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(folder_id: str, actor: UserRecord = Depends(require_admin)) -> None:
    """Delete a folder; its examinations stay, without a folder."""
    exams.remove_folder(actor, folder_id)
