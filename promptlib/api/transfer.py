"""
Export/import routes.

- GET  /api/transfer/export?format=json|csv&scope=all|custom|favorites
- GET  /api/transfer/export/folders
- POST /api/transfer/import: a prompt array becomes custom prompts, a
  folders document becomes folders
"""
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_permission
from promptlib.core.database import get_db
from promptlib.core.errors import ValidationError
from promptlib.features.catalog.service import list_prompts
from promptlib.features.entitlements.service import ensure_permission
from promptlib.features.library.custom_prompts import list_custom_prompts, migrate_custom_prompts
from promptlib.features.library.favorites import list_favorites
from promptlib.features.library.folders import list_folders, migrate_folders
from promptlib.features.transfer.service import (
    export_folders,
    export_prompts_csv,
    export_prompts_json,
    parse_folder_import,
    parse_prompt_import,
)
from promptlib.models.prompt import Prompt

router = APIRouter(prefix="/api/transfer", tags=["transfer"])

transfer_gate = require_permission("can_export_import")


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


class ExportScope(str, Enum):
    ALL = "all"
    CUSTOM = "custom"
    FAVORITES = "favorites"


class ImportResponse(BaseModel):
    kind: str
    imported: List[str]
    skipped: List[str]


def _stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _export_set(db: Session, principal: Principal, scope: ExportScope) -> List[Prompt]:
    """Custom prompts first, then favorited catalog prompts in catalog order."""
    prompts: List[Prompt] = []
    if scope in (ExportScope.ALL, ExportScope.CUSTOM):
        prompts.extend(list_custom_prompts(db, principal.user_id))
    if scope in (ExportScope.ALL, ExportScope.FAVORITES):
        favorite_ids = set(list_favorites(db, principal.user_id))
        prompts.extend(p for p in list_prompts(db) if p.id in favorite_ids)
    return prompts


@router.get("/export")
def export_prompts(
    format: ExportFormat = ExportFormat.JSON,
    scope: ExportScope = ExportScope.ALL,
    principal: Principal = Depends(transfer_gate),
    db: Session = Depends(get_db),
):
    prompts = _export_set(db, principal, scope)
    if format == ExportFormat.CSV:
        return Response(
            content=export_prompts_csv(prompts),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="prompts-{_stamp()}.csv"'},
        )
    return Response(
        content=export_prompts_json(prompts),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="prompts-{_stamp()}.json"'},
    )


@router.get("/export/folders")
def export_user_folders(principal: Principal = Depends(transfer_gate), db: Session = Depends(get_db)):
    ensure_permission(principal.permissions, "can_use_folders")
    document = export_folders(list_folders(db, principal.user_id), list_prompts(db))
    return Response(
        content=json.dumps(document, ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="folders-{_stamp()}.json"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_document(
    request: Request,
    principal: Principal = Depends(transfer_gate),
    db: Session = Depends(get_db),
):
    body = await request.body()
    try:
        document: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON")

    # Sync session work stays off the event loop
    return await run_in_threadpool(_import, principal, db, document)


def _import(principal: Principal, db: Session, document: Any) -> ImportResponse:
    if isinstance(document, dict):
        ensure_permission(principal.permissions, "can_use_folders")
        folders, _ = parse_folder_import(document)
        result = migrate_folders(db, principal.user_id, folders)
        return ImportResponse(kind="folders", imported=result.uploaded, skipped=result.skipped)

    ensure_permission(principal.permissions, "can_create_custom_prompts")
    prompts = parse_prompt_import(document)
    result = migrate_custom_prompts(db, principal.user_id, prompts, limit=principal.permissions.max_custom_prompts)
    return ImportResponse(kind="prompts", imported=result.uploaded, skipped=result.skipped)
