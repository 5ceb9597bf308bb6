"""Current identity, role and permissions."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promptlib.api.deps import Principal, get_principal
from promptlib.models.entitlement import UserPermissions
from promptlib.models.user import UserProfile

router = APIRouter(prefix="/api", tags=["me"])


class MeResponse(BaseModel):
    user: Optional[UserProfile]
    role: str
    permissions: UserPermissions


@router.get("/me", response_model=MeResponse)
def me(principal: Principal = Depends(get_principal)):
    return MeResponse(user=principal.user, role=principal.role.value, permissions=principal.permissions)
