"""
Favorite folders.

A folder keeps an ordered list of prompt ids. Adding a prompt that is already
in the folder is a no-op; ids of deleted prompts are dropped when the folder's
prompts are resolved, never at write time.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4
import logging

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promptlib.core.database import user_folders
from promptlib.core.errors import ConflictError, NotFoundError
from promptlib.features.catalog.mapping import folder_from_row
from promptlib.features.library.favorites import MigrationResult
from promptlib.features.library.reconcile import reconcile
from promptlib.models.folder import FavoriteFolder, FolderInput, FolderUpdate
from promptlib.models.prompt import Prompt

logger = logging.getLogger("promptlib")


def _owned(user_id: str, folder_id: str):
    return (user_folders.c.user_id == user_id) & (user_folders.c.id == folder_id)


def list_folders(session: Session, user_id: str) -> List[FavoriteFolder]:
    rows = session.execute(
        select(user_folders).where(user_folders.c.user_id == user_id).order_by(user_folders.c.created_at, user_folders.c.id)
    ).fetchall()
    return [folder_from_row(r) for r in rows]


def get_folder(session: Session, user_id: str, folder_id: str) -> FavoriteFolder:
    row = session.execute(select(user_folders).where(_owned(user_id, folder_id))).first()
    if not row:
        raise NotFoundError(f"Folder {folder_id} not found")
    return folder_from_row(row)


def _name_taken(session: Session, user_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(user_folders.c.id).where((user_folders.c.user_id == user_id) & (user_folders.c.name == name))
    if exclude_id:
        stmt = stmt.where(user_folders.c.id != exclude_id)
    return session.execute(stmt).first() is not None


def create_folder(session: Session, user_id: str, data: FolderInput) -> FavoriteFolder:
    name = data.name.strip()
    if _name_taken(session, user_id, name):
        raise ConflictError(f"A folder named '{name}' already exists")
    folder_id = data.id or str(uuid4())
    now = datetime.now(timezone.utc)
    try:
        session.execute(
            insert(user_folders).values(
                id=folder_id,
                user_id=user_id,
                name=name,
                prompt_ids=list(data.prompt_ids),
                created_at=now,
                updated_at=now,
            )
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Folder {folder_id} already exists")
    return get_folder(session, user_id, folder_id)


def update_folder(session: Session, user_id: str, folder_id: str, changes: FolderUpdate) -> FavoriteFolder:
    get_folder(session, user_id, folder_id)
    values = changes.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in values:
        values["name"] = values["name"].strip()
        if _name_taken(session, user_id, values["name"], exclude_id=folder_id):
            raise ConflictError(f"A folder named '{values['name']}' already exists")
    if values:
        values["updated_at"] = datetime.now(timezone.utc)
        session.execute(update(user_folders).where(_owned(user_id, folder_id)).values(**values))
        session.commit()
    return get_folder(session, user_id, folder_id)


def delete_folder(session: Session, user_id: str, folder_id: str) -> None:
    result = session.execute(delete(user_folders).where(_owned(user_id, folder_id)))
    if result.rowcount == 0:
        raise NotFoundError(f"Folder {folder_id} not found")
    session.commit()


def add_prompt_to_folder(session: Session, user_id: str, folder_id: str, prompt_id: str) -> FavoriteFolder:
    folder = get_folder(session, user_id, folder_id)
    if prompt_id in folder.prompt_ids:
        return folder
    return update_folder(session, user_id, folder_id, FolderUpdate(prompt_ids=folder.prompt_ids + [prompt_id]))


def remove_prompt_from_folder(session: Session, user_id: str, folder_id: str, prompt_id: str) -> FavoriteFolder:
    folder = get_folder(session, user_id, folder_id)
    remaining = [pid for pid in folder.prompt_ids if pid != prompt_id]
    return update_folder(session, user_id, folder_id, FolderUpdate(prompt_ids=remaining))


def resolve_folder_prompts(folder: FavoriteFolder, catalog: Sequence[Prompt]) -> List[Prompt]:
    """Prompts referenced by a folder, in catalog order, skipping missing ids."""
    wanted = set(folder.prompt_ids)
    return [p for p in catalog if p.id in wanted]


def migrate_folders(session: Session, user_id: str, local: List[FolderInput]) -> MigrationResult:
    """Upload locally stored folders whose id is unknown remotely."""
    remote = list_folders(session, user_id)
    with_ids = [f if f.id else f.model_copy(update={"id": str(uuid4())}) for f in local]
    to_upload, _ = reconcile(with_ids, remote)

    result = MigrationResult()
    for folder in to_upload:
        try:
            create_folder(session, user_id, folder)
            result.uploaded.append(folder.id)
        except ConflictError:
            # Same name under a different id: remote wins
            logger.info("library.folder_migration_skipped", extra={"user_id": user_id, "folder_id": folder.id})
            result.skipped.append(folder.id)
    return result
