"""
Admin authentication for the CMS and KPI endpoints.

Supports hybrid authentication:
- Current user with the admin flag (preferred)
- Legacy X-Admin-Key: shared secret, only when ADMIN_KEY is configured

All admin actions are logged with the actor identity.
"""
import hashlib
from dataclasses import dataclass
from typing import Literal, Optional

from fastapi import Depends, Request

from promptlib.core.auth import get_current_user
from promptlib.core.config import settings
from promptlib.core.errors import AuthenticationError, PermissionError
from promptlib.models.user import UserProfile


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_type: Literal["user", "legacy_key"]
    actor_id: str  # user id or "legacy:<hash>"
    actor_email: Optional[str] = None


def verify_legacy_key(request: Request) -> Optional[AdminActor]:
    """
    Verify legacy X-Admin-Key header.
    Returns AdminActor if valid, None if not present/invalid.
    """
    expected_key = settings.ADMIN_KEY
    if not expected_key:
        return None

    header_key = request.headers.get("X-Admin-Key", "").strip()
    if not header_key or header_key != expected_key:
        return None

    key_hash = hashlib.sha256(header_key.encode()).hexdigest()[:16]
    return AdminActor(actor_type="legacy_key", actor_id=f"legacy:{key_hash}")


def require_admin(
    request: Request,
    user: Optional[UserProfile] = Depends(get_current_user),
) -> AdminActor:
    """
    FastAPI dependency: require admin authentication.

    Usage:
        @router.get("/admin/endpoint")
        def admin_endpoint(actor: AdminActor = Depends(require_admin)):
            ...

    Raises:
        AuthenticationError: no identity and no valid legacy key
        PermissionError: authenticated but not an admin
    """
    if user is not None and user.is_admin:
        return AdminActor(actor_type="user", actor_id=user.user_id, actor_email=user.email)

    actor = verify_legacy_key(request)
    if actor:
        return actor

    if user is None:
        raise AuthenticationError("Admin credentials required")
    raise PermissionError("Admin access required")
