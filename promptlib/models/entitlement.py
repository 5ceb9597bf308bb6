"""
promptlib/models/entitlement.py

Role and permission models.

Permissions are derived from a role and never persisted.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    GUEST = "guest"
    FREE = "free"
    STANDARD = "standard"
    PREMIUM = "premium"
    ADMIN = "admin"


class UserPermissions(BaseModel):
    """
    Capability flags and numeric limits for one role.

    Limits use None for unlimited.
    """
    model_config = ConfigDict(frozen=True)

    can_view_all_prompts: bool
    can_copy_prompts: bool
    can_view_articles: bool
    can_view_statistics: bool
    can_create_custom_prompts: bool
    can_save_favorites: bool
    can_export_import: bool
    can_use_folders: bool
    max_visible_prompts: Optional[int]
    max_favorites: Optional[int]
    max_custom_prompts: Optional[int]
    is_admin: bool
