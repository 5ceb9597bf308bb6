"""
Shared FastAPI dependencies for the routers.

The current user is resolved per request and turned into a role and a
permission record; nothing is cached between requests.
"""
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request

from promptlib.core.auth import get_current_user
from promptlib.core.config import Settings
from promptlib.core.errors import AuthenticationError
from promptlib.features.billing.provider import BillingProvider
from promptlib.features.entitlements.service import ensure_permission, resolve_permissions, resolve_role
from promptlib.models.entitlement import Role, UserPermissions
from promptlib.models.user import UserProfile


@dataclass(frozen=True)
class Principal:
    user: Optional[UserProfile]
    role: Role
    permissions: UserPermissions

    @property
    def user_id(self) -> Optional[str]:
        return self.user.user_id if self.user else None


def get_principal(user: Optional[UserProfile] = Depends(get_current_user)) -> Principal:
    role = resolve_role(user)
    return Principal(user=user, role=role, permissions=resolve_permissions(role))


def require_principal(principal: Principal = Depends(get_principal)) -> Principal:
    """Authenticated principal; guests get 401."""
    if principal.user is None:
        raise AuthenticationError("Sign in required")
    return principal


def require_permission(flag: str) -> Callable[..., Principal]:
    """
    Dependency factory gating a route on one permission flag.

    Usage:
        @router.get("/stats")
        def stats(principal: Principal = Depends(require_permission("can_view_statistics"))):
            ...
    """
    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.user is None and not getattr(principal.permissions, flag, False):
            raise AuthenticationError("Sign in required")
        ensure_permission(principal.permissions, flag)
        return principal

    return dependency


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_billing_provider(request: Request) -> Optional[BillingProvider]:
    return request.app.state.billing_provider
