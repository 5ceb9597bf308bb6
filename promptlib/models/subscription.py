"""
promptlib/models/subscription.py

Mirror of the payment processor's subscription state.

The processor is the source of truth; this copy is refreshed by webhooks and
by an explicit sync.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict

SubscriptionStatus = Literal["active", "inactive", "canceled", "past_due"]


class Subscription(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    plan_type: str = "free"
    status: SubscriptionStatus = "inactive"
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_plan(self) -> str:
        """Plan that entitlements should use: only an active mirror elevates."""
        if self.status == "active":
            return self.plan_type or "free"
        return "free"
