"""User-authored prompt routes."""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, require_permission
from promptlib.api.favorites import MigrationResponse
from promptlib.core.database import get_db
from promptlib.features.library import custom_prompts as service
from promptlib.models.prompt import CustomPromptInput, Prompt, PromptUpdate

router = APIRouter(prefix="/api/custom-prompts", tags=["custom-prompts"])

custom_gate = require_permission("can_create_custom_prompts")


class MigrateCustomPromptsRequest(BaseModel):
    prompts: List[CustomPromptInput]


@router.get("", response_model=List[Prompt])
def list_custom_prompts(principal: Principal = Depends(custom_gate), db: Session = Depends(get_db)):
    return service.list_custom_prompts(db, principal.user_id)


@router.post("", response_model=Prompt, status_code=201)
def create_custom_prompt(
    body: CustomPromptInput,
    principal: Principal = Depends(custom_gate),
    db: Session = Depends(get_db),
):
    return service.create_custom_prompt(db, principal.user_id, body, limit=principal.permissions.max_custom_prompts)


@router.post("/migrate", response_model=MigrationResponse)
def migrate_custom_prompts(
    body: MigrateCustomPromptsRequest,
    principal: Principal = Depends(custom_gate),
    db: Session = Depends(get_db),
):
    result = service.migrate_custom_prompts(
        db, principal.user_id, body.prompts, limit=principal.permissions.max_custom_prompts
    )
    return MigrationResponse(uploaded=result.uploaded, skipped=result.skipped)


@router.get("/{prompt_id}", response_model=Prompt)
def get_custom_prompt(prompt_id: str, principal: Principal = Depends(custom_gate), db: Session = Depends(get_db)):
    return service.get_custom_prompt(db, principal.user_id, prompt_id)


@router.patch("/{prompt_id}", response_model=Prompt)
def update_custom_prompt(
    prompt_id: str,
    body: PromptUpdate,
    principal: Principal = Depends(custom_gate),
    db: Session = Depends(get_db),
):
    return service.update_custom_prompt(db, principal.user_id, prompt_id, body)


@router.delete("/{prompt_id}", status_code=204)
def delete_custom_prompt(prompt_id: str, principal: Principal = Depends(custom_gate), db: Session = Depends(get_db)):
    service.delete_custom_prompt(db, principal.user_id, prompt_id)
