"""
Export and import of prompts and folders.

Documents use the browser client's camelCase field names so files exported
from either side can be imported by the other:

- prompts JSON: an array of prompt documents
- prompts CSV: one row per prompt, UTF-8 with BOM, `;`-joined lists
- folders JSON: {"folders": [...], "prompts": [...], "exportedAt": iso8601}
"""

import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from promptlib.core.errors import ValidationError
from promptlib.features.catalog.mapping import normalize_plan_type
from promptlib.features.library.folders import resolve_folder_prompts
from promptlib.models.folder import FavoriteFolder, FolderInput
from promptlib.models.prompt import CustomPromptInput, Prompt

CSV_HEADERS = ["ID", "Title", "Content", "Category", "Use cases", "Tags", "Usage", "Example", "Premium", "Created", "Updated"]
BOM = "\ufeff"
REQUIRED_FIELDS = ("id", "title", "content", "category")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def prompt_document(prompt: Prompt) -> Dict[str, Any]:
    return {
        "id": prompt.id,
        "title": prompt.title,
        "content": prompt.content,
        "category": prompt.category,
        "useCase": list(prompt.use_case),
        "tags": list(prompt.tags),
        "usage": prompt.usage,
        "example": prompt.example,
        "isPremium": prompt.is_premium,
        "planType": normalize_plan_type(prompt.plan_type, prompt.is_premium),
        "createdAt": _iso(prompt.created_at),
        "updatedAt": _iso(prompt.updated_at),
    }


def folder_document(folder: FavoriteFolder) -> Dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "promptIds": list(folder.prompt_ids),
        "createdAt": _iso(folder.created_at),
        "updatedAt": _iso(folder.updated_at),
    }


def export_prompts_json(prompts: Sequence[Prompt]) -> str:
    return json.dumps([prompt_document(p) for p in prompts], ensure_ascii=False, indent=2)


def export_prompts_csv(prompts: Sequence[Prompt]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for p in prompts:
        writer.writerow([
            p.id,
            p.title,
            p.content,
            p.category,
            ";".join(p.use_case),
            ";".join(p.tags),
            p.usage or "",
            p.example or "",
            "Yes" if p.is_premium else "No",
            _iso(p.created_at) or "",
            _iso(p.updated_at) or "",
        ])
    return BOM + buf.getvalue()


def export_folders(
    folders: Sequence[FavoriteFolder],
    catalog: Sequence[Prompt],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Folders plus every prompt they reference (deduplicated, dangling ids skipped)."""
    prompts: List[Prompt] = []
    seen = set()
    for folder in folders:
        for p in resolve_folder_prompts(folder, catalog):
            if p.id not in seen:
                seen.add(p.id)
                prompts.append(p)
    return {
        "folders": [folder_document(f) for f in folders],
        "prompts": [prompt_document(p) for p in prompts],
        "exportedAt": (now or datetime.now(timezone.utc)).isoformat(),
    }


def _load(payload: Union[str, bytes, Any]) -> Any:
    if isinstance(payload, (str, bytes)):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON: {e.msg}")
    return payload


def parse_prompt_import(payload: Union[str, bytes, List[Any]]) -> List[CustomPromptInput]:
    """
    Validate an exported prompt array.

    Raises:
        ValidationError: not an array, or an entry lacks id/title/content/category
    """
    data = _load(payload)
    if not isinstance(data, list):
        raise ValidationError("Invalid file format: expected an array of prompts")

    out: List[CustomPromptInput] = []
    for index, doc in enumerate(data):
        if not isinstance(doc, dict) or not all(doc.get(f) for f in REQUIRED_FIELDS):
            raise ValidationError(f"Invalid prompt at index {index}: missing required fields")
        try:
            out.append(
                CustomPromptInput(
                    id=str(doc["id"]),
                    title=doc["title"],
                    content=doc["content"],
                    category=doc["category"],
                    use_case=doc.get("useCase") or doc.get("use_case") or [],
                    tags=doc.get("tags") or [],
                    usage=doc.get("usage"),
                    example=doc.get("example"),
                )
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid prompt at index {index}: {e.errors()[0]['msg']}")
    return out


def parse_folder_import(payload: Union[str, bytes, Dict[str, Any]]) -> Tuple[List[FolderInput], List[CustomPromptInput]]:
    """
    Validate an exported folders document.

    Raises:
        ValidationError: missing `folders` or `prompts` arrays, or bad entries
    """
    data = _load(payload)
    if not isinstance(data, dict) or not isinstance(data.get("folders"), list):
        raise ValidationError("Invalid file format: missing folders array")
    if not isinstance(data.get("prompts"), list):
        raise ValidationError("Invalid file format: missing prompts array")

    folders: List[FolderInput] = []
    for index, doc in enumerate(data["folders"]):
        if not isinstance(doc, dict) or not doc.get("name"):
            raise ValidationError(f"Invalid folder at index {index}: missing name")
        try:
            folders.append(
                FolderInput(
                    id=str(doc["id"]) if doc.get("id") else None,
                    name=doc["name"],
                    prompt_ids=[str(pid) for pid in (doc.get("promptIds") or doc.get("prompt_ids") or [])],
                )
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid folder at index {index}: {e.errors()[0]['msg']}")
    return folders, parse_prompt_import(data["prompts"])
