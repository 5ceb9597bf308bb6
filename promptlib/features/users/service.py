"""
User domain service.
- get_or_create_user(session, user_id, ...)
- get_user(session, user_id)
- effective_plan(session, user_id)

The plan carried on a loaded profile is derived from the subscription mirror:
only an `active` mirror elevates, anything else is `free`.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promptlib.core.config import settings
from promptlib.core.database import user_profiles, user_subscriptions
from promptlib.models.user import UserProfile


def effective_plan(session: Session, user_id: str) -> str:
    row = session.execute(
        select(user_subscriptions.c.plan_type, user_subscriptions.c.status).where(
            user_subscriptions.c.user_id == user_id
        )
    ).first()
    if not row or row.status != "active":
        return "free"
    return row.plan_type or "free"


def _to_profile(row, plan: str) -> UserProfile:
    return UserProfile(
        user_id=row.user_id,
        email=row.email,
        display_name=row.display_name or UserProfile.normalized_display_name(row.user_id),
        is_admin=bool(row.is_admin),
        plan=plan,
        last_login_at=row.last_login_at,
        created_at=row.created_at,
    )


def get_user(session: Session, user_id: str) -> Optional[UserProfile]:
    row = session.execute(select(user_profiles).where(user_profiles.c.user_id == user_id)).first()
    if not row:
        return None
    return _to_profile(row, effective_plan(session, user_id))


def get_or_create_user(
    session: Session,
    user_id: str,
    *,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    is_admin_claim: bool = False,
) -> UserProfile:
    """
    Load the profile for `user_id`, creating it on first sight.

    Identity-provider claims refresh email/display name when present. The
    admin flag is re-derived on every call from the admin claim and
    ADMIN_USER_IDS, so a revoked grant takes effect on the next request.
    """
    now = datetime.now(timezone.utc)
    is_admin = is_admin_claim or user_id in settings.admin_user_ids()

    row = session.execute(select(user_profiles).where(user_profiles.c.user_id == user_id)).first()
    if row is None:
        try:
            session.execute(
                insert(user_profiles).values(
                    user_id=user_id,
                    email=email,
                    display_name=UserProfile.normalized_display_name(user_id, display_name),
                    is_admin=is_admin,
                    last_login_at=now,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.commit()
        except IntegrityError:
            # Concurrent first request for the same user
            session.rollback()
    else:
        changes = {}
        if email and email != row.email:
            changes["email"] = email
        if display_name and display_name.strip() and display_name.strip() != row.display_name:
            changes["display_name"] = display_name.strip()
        if is_admin != bool(row.is_admin):
            changes["is_admin"] = is_admin
        if changes:
            changes["updated_at"] = now
            session.execute(
                update(user_profiles).where(user_profiles.c.user_id == user_id).values(**changes)
            )
            session.commit()

    profile = get_user(session, user_id)
    if profile is None:
        raise RuntimeError(f"user profile {user_id} could not be loaded")
    return profile
