"""Favorite folder routes."""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_permission
from promptlib.api.favorites import MigrationResponse
from promptlib.core.database import get_db
from promptlib.features.catalog.service import list_prompts
from promptlib.features.library import folders as service
from promptlib.models.folder import FavoriteFolder, FolderInput, FolderUpdate
from promptlib.models.prompt import Prompt

router = APIRouter(prefix="/api/folders", tags=["folders"])

folders_gate = require_permission("can_use_folders")


class FolderDetailResponse(BaseModel):
    folder: FavoriteFolder
    prompts: List[Prompt]


class MigrateFoldersRequest(BaseModel):
    folders: List[FolderInput]


@router.get("", response_model=List[FavoriteFolder])
def list_folders(principal: Principal = Depends(folders_gate), db: Session = Depends(get_db)):
    return service.list_folders(db, principal.user_id)


@router.post("", response_model=FavoriteFolder, status_code=201)
def create_folder(body: FolderInput, principal: Principal = Depends(folders_gate), db: Session = Depends(get_db)):
    return service.create_folder(db, principal.user_id, body)


@router.post("/migrate", response_model=MigrationResponse)
def migrate_folders(
    body: MigrateFoldersRequest,
    principal: Principal = Depends(folders_gate),
    db: Session = Depends(get_db),
):
    result = service.migrate_folders(db, principal.user_id, body.folders)
    return MigrationResponse(uploaded=result.uploaded, skipped=result.skipped)


@router.get("/{folder_id}", response_model=FolderDetailResponse)
def get_folder(folder_id: str, principal: Principal = Depends(folders_gate), db: Session = Depends(get_db)):
    folder = service.get_folder(db, principal.user_id, folder_id)
    return FolderDetailResponse(folder=folder, prompts=service.resolve_folder_prompts(folder, list_prompts(db)))


@router.patch("/{folder_id}", response_model=FavoriteFolder)
def update_folder(
    folder_id: str,
    body: FolderUpdate,
    principal: Principal = Depends(folders_gate),
    db: Session = Depends(get_db),
):
    return service.update_folder(db, principal.user_id, folder_id, body)


@router.delete("/{folder_id}", status_code=204)
def delete_folder(folder_id: str, principal: Principal = Depends(folders_gate), db: Session = Depends(get_db)):
    service.delete_folder(db, principal.user_id, folder_id)


@router.post("/{folder_id}/prompts/{prompt_id}", response_model=FavoriteFolder)
def add_prompt(
    folder_id: str,
    prompt_id: str,
    principal: Principal = Depends(folders_gate),
    db: Session = Depends(get_db),
):
    return service.add_prompt_to_folder(db, principal.user_id, folder_id, prompt_id)


@router.delete("/{folder_id}/prompts/{prompt_id}", response_model=FavoriteFolder)
def remove_prompt(
    folder_id: str,
    prompt_id: str,
    principal: Principal = Depends(folders_gate),
    db: Session = Depends(get_db),
):
    return service.remove_prompt_from_folder(db, principal.user_id, folder_id, prompt_id)
