"""
Entitlement resolver tests.

Covers role precedence, the permission table and limit checks. Higher tiers
never lose a capability or a limit compared to lower ones.
"""
import pytest

from promptlib.core.errors import PermissionError, QuotaExceededError
from promptlib.features.entitlements.service import (
    PERMISSIONS,
    ensure_permission,
    ensure_within_limit,
    resolve_permissions,
    resolve_role,
)
from promptlib.models.entitlement import Role
from promptlib.models.user import UserProfile

TIERS = [Role.GUEST, Role.FREE, Role.STANDARD, Role.PREMIUM, Role.ADMIN]
FLAGS = [
    "can_view_all_prompts",
    "can_copy_prompts",
    "can_view_articles",
    "can_view_statistics",
    "can_create_custom_prompts",
    "can_save_favorites",
    "can_export_import",
    "can_use_folders",
]
LIMITS = ["max_visible_prompts", "max_favorites", "max_custom_prompts"]


def _user(plan="free", is_admin=False):
    return UserProfile(user_id="u1", display_name="u1", plan=plan, is_admin=is_admin)


def _at_least(higher, lower):
    # None means unlimited
    if higher is None:
        return True
    if lower is None:
        return False
    return higher >= lower


@pytest.mark.parametrize("lower,higher", list(zip(TIERS, TIERS[1:])))
def test_higher_tiers_keep_every_capability(lower, higher):
    low, high = PERMISSIONS[lower], PERMISSIONS[higher]
    for flag in FLAGS:
        if getattr(low, flag):
            assert getattr(high, flag), f"{higher.value} lost {flag}"
    for limit in LIMITS:
        assert _at_least(getattr(high, limit), getattr(low, limit)), f"{higher.value} lowered {limit}"


def test_role_resolution_precedence():
    assert resolve_role(None) == Role.GUEST
    assert resolve_role(_user("free")) == Role.FREE
    assert resolve_role(_user("standard")) == Role.STANDARD
    assert resolve_role(_user("premium")) == Role.PREMIUM
    # Admin flag beats any plan
    assert resolve_role(_user("free", is_admin=True)) == Role.ADMIN


def test_garbled_plan_resolves_to_free():
    assert resolve_role(_user(" Premium ")) == Role.PREMIUM
    assert resolve_role(_user("gold")) == Role.FREE
    assert resolve_role(_user("")) == Role.FREE


def test_unknown_role_string_gets_free_permissions():
    assert resolve_permissions("superuser") == PERMISSIONS[Role.FREE]
    assert resolve_permissions("premium") == PERMISSIONS[Role.PREMIUM]


def test_guest_and_free_home_listing_is_capped():
    assert PERMISSIONS[Role.GUEST].max_visible_prompts == 20
    assert PERMISSIONS[Role.FREE].max_visible_prompts == 20
    assert PERMISSIONS[Role.STANDARD].max_visible_prompts is None


def test_only_premium_and_admin_use_folders():
    allowed = [role for role in TIERS if PERMISSIONS[role].can_use_folders]
    assert allowed == [Role.PREMIUM, Role.ADMIN]


def test_ensure_permission_raises_forbidden():
    with pytest.raises(PermissionError) as exc:
        ensure_permission(PERMISSIONS[Role.FREE], "can_use_folders")
    assert exc.value.status_code == 403
    ensure_permission(PERMISSIONS[Role.PREMIUM], "can_use_folders")


def test_limit_checks():
    ensure_within_limit(50, 49)
    ensure_within_limit(None, 10_000)
    with pytest.raises(QuotaExceededError) as exc:
        ensure_within_limit(50, 50, what="favorites")
    assert exc.value.code == "quota_exceeded"
    assert "50 favorites" in exc.value.message
    with pytest.raises(QuotaExceededError):
        ensure_within_limit(10, 8, requested=3)
