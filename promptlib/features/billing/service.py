"""
Billing service orchestrator.

Coordinates:
- Customer management and checkout/portal sessions
- Webhook processing into the subscription mirror
- Manual sync from the provider
- Admin plan overrides

All Stripe-specific code is in stripe_provider.py. The provider instance is
created once at startup and passed in; None means billing is disabled.
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from promptlib.core.config import Settings
from promptlib.core.database import billing_events, user_subscriptions
from promptlib.core.errors import BillingDisabledError, NotFoundError, ValidationError
from promptlib.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
)
from promptlib.models.subscription import Subscription

logger = logging.getLogger("promptlib")

PAID_PLANS = ("standard", "premium")
FALLBACK_PLAN = "premium"

_STATUS_MAP = {
    "active": "active",
    "trialing": "active",
    "past_due": "past_due",
    "unpaid": "past_due",
    "canceled": "canceled",
    "incomplete_expired": "canceled",
}


def build_provider(cfg: Settings) -> Optional[BillingProvider]:
    """Create the Stripe provider if billing is configured, else None."""
    if not cfg.STRIPE_SECRET_KEY:
        return None
    from promptlib.features.billing.stripe_provider import StripeProvider
    try:
        return StripeProvider(
            secret_key=cfg.STRIPE_SECRET_KEY,
            webhook_secret=cfg.STRIPE_WEBHOOK_SECRET,
            price_to_plan={
                cfg.STRIPE_PRICE_STANDARD: "standard",
                cfg.STRIPE_PRICE_PREMIUM: "premium",
            },
        )
    except BillingProviderError as e:
        logger.warning("billing.provider_unavailable", extra={"error_message": str(e)})
        return None


def billing_enabled(provider: Optional[BillingProvider]) -> bool:
    return provider is not None


def _require(provider: Optional[BillingProvider]) -> BillingProvider:
    if provider is None:
        raise BillingDisabledError("Stripe is not configured. Set STRIPE_SECRET_KEY environment variable.")
    return provider


def normalize_status(status: Optional[str]) -> str:
    """Collapse provider statuses onto active / past_due / canceled / inactive."""
    return _STATUS_MAP.get((status or "").lower(), "inactive")


def price_for_plan(cfg: Settings, plan_type: str) -> Optional[str]:
    return {
        "standard": cfg.STRIPE_PRICE_STANDARD,
        "premium": cfg.STRIPE_PRICE_PREMIUM,
    }.get(plan_type)


# ---------------------------------------------------------------------------
# Subscription mirror
# ---------------------------------------------------------------------------

def _to_subscription(row) -> Subscription:
    return Subscription(
        user_id=row.user_id,
        stripe_customer_id=row.stripe_customer_id,
        stripe_subscription_id=row.stripe_subscription_id,
        plan_type=row.plan_type or "free",
        status=row.status if row.status in ("active", "inactive", "canceled", "past_due") else "inactive",
        current_period_start=row.current_period_start,
        current_period_end=row.current_period_end,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def get_subscription(session: Session, user_id: str) -> Optional[Subscription]:
    row = session.execute(select(user_subscriptions).where(user_subscriptions.c.user_id == user_id)).first()
    return _to_subscription(row) if row else None


def upsert_subscription(session: Session, user_id: str, **values: Any) -> Subscription:
    """Insert or update the mirror row for `user_id`. None values are not written."""
    now = datetime.now(timezone.utc)
    values = {k: v for k, v in values.items() if v is not None}
    exists = session.execute(
        select(user_subscriptions.c.id).where(user_subscriptions.c.user_id == user_id)
    ).first()
    if exists:
        session.execute(
            update(user_subscriptions)
            .where(user_subscriptions.c.user_id == user_id)
            .values(updated_at=now, **values)
        )
    else:
        session.execute(
            insert(user_subscriptions).values(user_id=user_id, created_at=now, updated_at=now, **values)
        )
    session.commit()
    return get_subscription(session, user_id)


def _update_by_customer(session: Session, customer_id: Optional[str], **values: Any) -> int:
    if not customer_id:
        return 0
    values = {k: v for k, v in values.items() if v is not None}
    result = session.execute(
        update(user_subscriptions)
        .where(user_subscriptions.c.stripe_customer_id == customer_id)
        .values(updated_at=datetime.now(timezone.utc), **values)
    )
    session.commit()
    return result.rowcount


# ---------------------------------------------------------------------------
# Customers, checkout, portal
# ---------------------------------------------------------------------------

def ensure_customer_for_user(
    session: Session,
    provider: Optional[BillingProvider],
    user_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> str:
    """
    Ensure a billing customer exists for the user.

    Returns:
        Stripe customer ID

    Raises:
        BillingDisabledError: billing not configured
        BillingProviderError: customer creation failed
    """
    billing = _require(provider)
    current = get_subscription(session, user_id)
    if current and current.stripe_customer_id:
        return current.stripe_customer_id

    customer_id = billing.ensure_customer(user_id, email, name)
    upsert_subscription(session, user_id, stripe_customer_id=customer_id)
    return customer_id


def get_customer_id(session: Session, user_id: str) -> Optional[str]:
    current = get_subscription(session, user_id)
    return current.stripe_customer_id if current else None


def start_checkout(
    session: Session,
    provider: Optional[BillingProvider],
    cfg: Settings,
    user_id: str,
    plan_type: str,
    *,
    email: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> str:
    """
    Start checkout session for a subscription.

    Returns:
        Checkout URL

    Raises:
        BillingDisabledError: billing not configured
        ValidationError: plan_type is not a paid plan or has no Stripe price
        BillingProviderError: checkout creation failed
    """
    billing = _require(provider)
    if plan_type not in PAID_PLANS:
        raise ValidationError(f"Unknown plan: {plan_type}")
    price_id = price_for_plan(cfg, plan_type)
    if not price_id:
        raise ValidationError(f"No Stripe price configured for plan: {plan_type}")

    customer_id = ensure_customer_for_user(session, billing, user_id, email=email)
    base = cfg.APP_BASE_URL.rstrip("/")
    return billing.create_checkout_session(
        customer_id=customer_id,
        price_id=price_id,
        success_url=success_url or f"{base}/?payment=success&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=cancel_url or f"{base}/?payment=canceled",
        client_reference_id=user_id,
        metadata={"user_id": user_id, "plan_type": plan_type},
    )


def start_portal(session: Session, provider: Optional[BillingProvider], cfg: Settings, user_id: str, return_url: Optional[str] = None) -> str:
    """
    Start billing portal session for customer self-service.

    Raises:
        BillingDisabledError: billing not configured
        NotFoundError: user never went through checkout
        BillingProviderError: portal creation failed
    """
    billing = _require(provider)
    customer_id = get_customer_id(session, user_id)
    if not customer_id:
        raise NotFoundError("Customer not found. Complete checkout first.")
    return billing.create_portal_session(customer_id=customer_id, return_url=return_url or cfg.APP_BASE_URL)


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------

def apply_webhook_result(session: Session, result: BillingWebhookResult) -> None:
    """Apply one parsed event to the subscription mirror."""
    event_type = result.event_type

    if event_type == "checkout.session.completed":
        if not result.user_id:
            raise BillingWebhookError("checkout session has no user reference")
        plan_type = result.plan_type
        if plan_type not in PAID_PLANS:
            logger.warning(
                "billing.plan_undetected",
                extra={"event_id": result.event_id, "user_id": result.user_id, "fallback_plan": FALLBACK_PLAN},
            )
            plan_type = FALLBACK_PLAN
        upsert_subscription(
            session,
            result.user_id,
            stripe_customer_id=result.customer_id,
            stripe_subscription_id=result.subscription_id,
            plan_type=plan_type,
            status="active",
            current_period_start=result.current_period_start or datetime.now(timezone.utc),
            current_period_end=result.current_period_end,
        )

    elif event_type == "customer.subscription.updated":
        _update_by_customer(
            session,
            result.customer_id,
            status=normalize_status(result.status),
            plan_type=result.plan_type if result.plan_type in PAID_PLANS else None,
            stripe_subscription_id=result.subscription_id,
            current_period_start=result.current_period_start,
            current_period_end=result.current_period_end,
        )

    elif event_type == "customer.subscription.deleted":
        _update_by_customer(session, result.customer_id, status="canceled")

    elif event_type == "invoice.payment_succeeded":
        _update_by_customer(session, result.customer_id, status="active")

    elif event_type == "invoice.payment_failed":
        _update_by_customer(session, result.customer_id, status="past_due")

    else:
        logger.info("billing.event_ignored", extra={"event_id": result.event_id, "event_type": event_type})


def process_webhook_event(
    session: Session,
    provider: Optional[BillingProvider],
    headers: Dict[str, str],
    body: bytes,
) -> BillingWebhookResult:
    """
    Process billing webhook event (idempotent).

    1. Verify signature and parse
    2. Skip if the event id was already processed
    3. Record the event (or reuse the row of a failed delivery), apply state
       changes, mark processed

    Raises:
        BillingDisabledError: billing not configured
        BillingWebhookError: signature invalid or the event cannot be applied
    """
    billing = _require(provider)
    result = billing.handle_webhook(headers, body)
    payload_hash = hashlib.sha256(body).hexdigest()

    existing = session.execute(
        select(billing_events.c.id, billing_events.c.processed).where(billing_events.c.stripe_event_id == result.event_id)
    ).first()
    if existing is not None and existing.processed:
        logger.info("billing.event_duplicate", extra={"event_id": result.event_id})
        return result

    if existing is not None:
        logger.info("billing.event_retry", extra={"event_id": result.event_id, "event_type": result.event_type})
    else:
        try:
            session.execute(
                insert(billing_events).values(
                    stripe_event_id=result.event_id,
                    event_type=result.event_type,
                    payload_hash=payload_hash,
                    processed=False,
                    received_at=datetime.now(timezone.utc),
                )
            )
            session.commit()
        except IntegrityError:
            # Concurrent delivery already recorded this event
            session.rollback()
            return result

    try:
        apply_webhook_result(session, result)
    except Exception as e:
        session.rollback()
        session.execute(
            update(billing_events)
            .where(billing_events.c.stripe_event_id == result.event_id)
            .values(error=str(e))
        )
        session.commit()
        logger.error("billing.event_failed", extra={"event_id": result.event_id, "event_type": result.event_type})
        raise

    session.execute(
        update(billing_events)
        .where(billing_events.c.stripe_event_id == result.event_id)
        .values(processed=True, processed_at=datetime.now(timezone.utc), error=None)
    )
    session.commit()
    logger.info("billing.event_processed", extra={"event_id": result.event_id, "event_type": result.event_type})
    return result


# ---------------------------------------------------------------------------
# Sync and admin overrides
# ---------------------------------------------------------------------------

def sync_subscription(session: Session, provider: Optional[BillingProvider], user_id: str) -> str:
    """
    Refresh the mirror from the provider when possible and return the
    effective plan.

    Without a mirror row, a known subscription id or billing, the stored
    state is used as-is.
    """
    current = get_subscription(session, user_id)
    if current is None:
        return "free"

    if provider is not None and current.stripe_subscription_id:
        snapshot = provider.retrieve_subscription(current.stripe_subscription_id)
        current = upsert_subscription(
            session,
            user_id,
            status=normalize_status(snapshot.status),
            plan_type=snapshot.plan_type if snapshot.plan_type in PAID_PLANS else None,
            stripe_customer_id=snapshot.customer_id,
            current_period_start=snapshot.current_period_start,
            current_period_end=snapshot.current_period_end,
        )
        logger.info("billing.synced", extra={"user_id": user_id, "status": current.status})

    return current.effective_plan


def set_plan_override(session: Session, user_id: str, plan_type: str, *, actor_id: Optional[str] = None) -> Subscription:
    """
    Admin override of a user's plan.

    Paid plans mark the mirror active; `free` marks it inactive.
    """
    if plan_type not in ("free",) + PAID_PLANS:
        raise ValidationError(f"Unknown plan: {plan_type}")
    if plan_type == "free":
        sub = upsert_subscription(session, user_id, plan_type="free", status="inactive")
    else:
        sub = upsert_subscription(session, user_id, plan_type=plan_type, status="active")
    logger.info("billing.plan_override", extra={"user_id": user_id, "plan_type": plan_type, "actor_id": actor_id})
    return sub


def billing_status(session: Session, provider: Optional[BillingProvider], user_id: str) -> Dict[str, Any]:
    sub = get_subscription(session, user_id)
    return {
        "enabled": billing_enabled(provider),
        "plan_type": sub.plan_type if sub else "free",
        "effective_plan": sub.effective_plan if sub else "free",
        "status": sub.status if sub else "inactive",
        "period_end": sub.current_period_end.isoformat() if sub and sub.current_period_end else None,
    }
