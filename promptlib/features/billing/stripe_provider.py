"""
Stripe billing provider implementation.

Implements BillingProvider protocol using the Stripe API.
Handles webhook signature verification and event parsing.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

import stripe

from promptlib.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    SubscriptionSnapshot,
)

logger = logging.getLogger("promptlib")


def _ts(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: Optional[str] = None,
        price_to_plan: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            secret_key: Stripe secret key
            webhook_secret: Stripe webhook signing secret
            price_to_plan: Stripe price id -> internal plan type
        """
        if not secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.price_to_plan = {k: v for k, v in (price_to_plan or {}).items() if k}
        self.client = stripe.StripeClient(secret_key)

    def ensure_customer(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
        """Create or retrieve Stripe customer for user."""
        try:
            found = self.client.customers.search(params={"query": f"metadata['user_id']:'{user_id}'", "limit": 1})
            if found.data:
                return found.data[0].id

            params: Dict[str, Any] = {"metadata": {"user_id": user_id}}
            if email:
                params["email"] = email
            if name:
                params["name"] = name
            return self.client.customers.create(params=params).id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer creation failed: {e}")

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        client_reference_id: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """Create Stripe checkout session."""
        params: Dict[str, Any] = {
            "customer": customer_id,
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "subscription",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata or {},
            "subscription_data": {"metadata": metadata or {}},
        }
        if client_reference_id:
            params["client_reference_id"] = client_reference_id
        try:
            return self.client.checkout.sessions.create(params=params).url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """Create Stripe billing portal session."""
        try:
            session = self.client.billing_portal.sessions.create(
                params={"customer": customer_id, "return_url": return_url}
            )
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe portal session creation failed: {e}")

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        try:
            sub = self.client.subscriptions.retrieve(subscription_id)
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe subscription retrieval failed: {e}")
        data = json.loads(str(sub))
        start, end = self._period(data)
        return SubscriptionSnapshot(
            subscription_id=data.get("id", subscription_id),
            customer_id=data.get("customer"),
            status=data.get("status") or "unknown",
            plan_type=(data.get("metadata") or {}).get("plan_type") or self._map_price_to_plan(self._price_of(data)),
            current_period_start=start,
            current_period_end=end,
        )

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(body, sig_header, self.webhook_secret)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        # Signature verified; parse the raw body as plain JSON
        return self._parse_event(json.loads(body))

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        event_type = event["type"]
        data = event.get("data", {}).get("object", {}) or {}
        metadata = data.get("metadata") or {}

        result = BillingWebhookResult(
            event_id=event["id"],
            event_type=event_type,
            customer_id=data.get("customer"),
            metadata=metadata,
        )

        if event_type == "checkout.session.completed":
            result.user_id = data.get("client_reference_id") or metadata.get("user_id") or metadata.get("userId")
            result.subscription_id = data.get("subscription")
            result.plan_type = metadata.get("plan_type") or self._map_price_to_plan(self._checkout_price(data))
        elif event_type.startswith("customer.subscription."):
            result.subscription_id = data.get("id")
            result.status = data.get("status")
            result.user_id = metadata.get("user_id")
            result.plan_type = metadata.get("plan_type") or self._map_price_to_plan(self._price_of(data))
            result.current_period_start, result.current_period_end = self._period(data)
        elif event_type.startswith("invoice."):
            result.subscription_id = data.get("subscription")

        return result

    def _checkout_price(self, session: Dict[str, Any]) -> Optional[str]:
        """Price of the first line item; line items are not part of the event payload."""
        session_id = session.get("id")
        if not session_id:
            return None
        try:
            items = self.client.checkout.sessions.line_items.list(session_id, params={"limit": 1})
        except stripe.StripeError as e:
            logger.warning("billing.line_items_unavailable", extra={"error_message": str(e)})
            return None
        if not items.data:
            return None
        price = items.data[0].price
        return price.id if price else None

    @staticmethod
    def _price_of(subscription: Dict[str, Any]) -> Optional[str]:
        items = (subscription.get("items") or {}).get("data") or []
        if not items:
            return None
        return (items[0].get("price") or {}).get("id")

    @staticmethod
    def _period(subscription: Dict[str, Any]):
        start = subscription.get("current_period_start")
        end = subscription.get("current_period_end")
        items = (subscription.get("items") or {}).get("data") or []
        # Newer API versions carry the period on the subscription item
        if items and not end:
            start = items[0].get("current_period_start")
            end = items[0].get("current_period_end")
        return _ts(start), _ts(end)

    def _map_price_to_plan(self, price_id: Optional[str]) -> Optional[str]:
        """Map Stripe price ID to internal plan type."""
        if not price_id:
            return None
        return self.price_to_plan.get(price_id)
