from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserProfile(BaseModel):
    """
    Authenticated user as seen by the entitlement resolver.

    `plan` is not stored on the profile: it is derived from the subscription
    mirror each time the profile is loaded.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_admin: bool = False
    plan: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @staticmethod
    def normalized_display_name(user_id: str, display_name: Optional[str] = None) -> str:
        if display_name and display_name.strip():
            return display_name.strip()
        # Deterministic fallback handle
        import hashlib
        h = hashlib.sha1(user_id.encode("utf-8")).hexdigest()
        return f"@u_{h[-6:]}"
