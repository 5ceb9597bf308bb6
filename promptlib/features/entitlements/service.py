"""
promptlib/features/entitlements/service.py

Entitlement resolver.

Handles:
- Role resolution from the current user (admin flag, then derived plan)
- The fixed permission table per role
- Permission and limit checks raising API errors

Resolution is pure and uncached: callers re-resolve on every request so a
plan change takes effect immediately.
"""

from typing import Optional
import logging

from promptlib.core.errors import PermissionError, QuotaExceededError
from promptlib.models.entitlement import Role, UserPermissions
from promptlib.models.user import UserProfile

logger = logging.getLogger("promptlib")


PERMISSIONS = {
    Role.GUEST: UserPermissions(
        can_view_all_prompts=False,
        can_copy_prompts=False,
        can_view_articles=False,
        can_view_statistics=False,
        can_create_custom_prompts=False,
        can_save_favorites=False,
        can_export_import=False,
        can_use_folders=False,
        max_visible_prompts=20,
        max_favorites=0,
        max_custom_prompts=0,
        is_admin=False,
    ),
    Role.FREE: UserPermissions(
        can_view_all_prompts=False,
        can_copy_prompts=True,
        can_view_articles=False,
        can_view_statistics=False,
        can_create_custom_prompts=False,
        can_save_favorites=True,
        can_export_import=True,
        can_use_folders=False,
        max_visible_prompts=20,
        max_favorites=50,
        max_custom_prompts=10,
        is_admin=False,
    ),
    Role.STANDARD: UserPermissions(
        can_view_all_prompts=True,
        can_copy_prompts=True,
        can_view_articles=True,
        can_view_statistics=True,
        can_create_custom_prompts=True,
        can_save_favorites=True,
        can_export_import=True,
        can_use_folders=False,
        max_visible_prompts=None,
        max_favorites=100,
        max_custom_prompts=50,
        is_admin=False,
    ),
    Role.PREMIUM: UserPermissions(
        can_view_all_prompts=True,
        can_copy_prompts=True,
        can_view_articles=True,
        can_view_statistics=True,
        can_create_custom_prompts=True,
        can_save_favorites=True,
        can_export_import=True,
        can_use_folders=True,
        max_visible_prompts=None,
        max_favorites=500,
        max_custom_prompts=150,
        is_admin=False,
    ),
    Role.ADMIN: UserPermissions(
        can_view_all_prompts=True,
        can_copy_prompts=True,
        can_view_articles=True,
        can_view_statistics=True,
        can_create_custom_prompts=True,
        can_save_favorites=True,
        can_export_import=True,
        can_use_folders=True,
        max_visible_prompts=None,
        max_favorites=None,
        max_custom_prompts=None,
        is_admin=True,
    ),
}


def resolve_role(user: Optional[UserProfile]) -> Role:
    """
    Map a user (or its absence) to a role.

    Precedence: no user -> guest; admin flag -> admin; plan premium ->
    premium; plan standard -> standard; anything else -> free.
    """
    if user is None:
        return Role.GUEST
    if user.is_admin:
        return Role.ADMIN
    plan = (user.plan or "").strip().lower()
    if plan == "premium":
        return Role.PREMIUM
    if plan == "standard":
        return Role.STANDARD
    return Role.FREE


def resolve_permissions(role) -> UserPermissions:
    """
    Permission record for a role.

    Accepts a Role or its string value. Unknown inputs get the free record.
    """
    try:
        key = Role(role)
    except ValueError:
        logger.warning("[entitlements] unknown role, using free permissions", extra={"role": str(role)})
        key = Role.FREE
    return PERMISSIONS[key]


def ensure_permission(permissions: UserPermissions, flag: str) -> None:
    """
    Raise PermissionError unless `flag` is granted.

    Args:
        permissions: resolved permission record
        flag: attribute name, e.g. "can_use_folders"
    """
    if not getattr(permissions, flag, False):
        raise PermissionError(f"Your plan does not include this feature ({flag})")


def ensure_within_limit(limit: Optional[int], current: int, requested: int = 1, *, what: str = "items") -> None:
    """
    Raise QuotaExceededError if adding `requested` would go over `limit`.

    A None limit is unlimited.
    """
    if limit is None:
        return
    if current + requested > limit:
        raise QuotaExceededError(f"Limit reached: at most {limit} {what} on your plan")
