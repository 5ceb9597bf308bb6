"""
Billing API routes.

- POST /api/billing/checkout: Create checkout session
- POST /api/billing/portal: Create portal session
- POST /api/billing/sync: Refresh the subscription mirror from Stripe
- GET  /api/billing/status: Get user billing status
- GET  /api/billing/customer: Stripe customer id, if any
- POST /api/billing/webhook: Handle Stripe webhooks
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy.orm import Session

from promptlib.api.deps import Principal, get_billing_provider, get_settings, require_principal
from promptlib.core.config import Settings
from promptlib.core.database import get_db
from promptlib.core.errors import AppError
from promptlib.features.billing import service
from promptlib.features.billing.provider import BillingProvider, BillingProviderError, BillingWebhookError

router = APIRouter(prefix="/api/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request to create checkout session."""
    plan_type: Literal["standard", "premium"]
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class PortalRequest(BaseModel):
    return_url: Optional[str] = None


class UrlResponse(BaseModel):
    url: str


class BillingStatusResponse(BaseModel):
    """User billing status."""
    enabled: bool
    plan_type: str
    effective_plan: str
    status: str
    period_end: Optional[str]  # ISO8601


class SyncResponse(BaseModel):
    plan: str


class CustomerResponse(BaseModel):
    customer_id: Optional[str]


def _provider_failed(e: BillingProviderError) -> AppError:
    return AppError(str(e), code="billing_provider_error", status_code=500)


@router.post("/checkout", response_model=UrlResponse)
def create_checkout(
    body: CheckoutRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
    provider: Optional[BillingProvider] = Depends(get_billing_provider),
):
    """
    Create Stripe checkout session.

    Errors:
        503: Billing disabled (STRIPE_SECRET_KEY not set)
        400: Plan has no configured price
        500: Stripe API error
    """
    try:
        url = service.start_checkout(
            db,
            provider,
            cfg,
            principal.user_id,
            body.plan_type,
            email=principal.user.email,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
        )
    except BillingProviderError as e:
        raise _provider_failed(e)
    return UrlResponse(url=url)


@router.post("/portal", response_model=UrlResponse)
def create_portal(
    body: PortalRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    cfg: Settings = Depends(get_settings),
    provider: Optional[BillingProvider] = Depends(get_billing_provider),
):
    """
    Create Stripe billing portal session.

    Errors:
        503: Billing disabled
        404: Customer not found (user never checked out)
        500: Stripe API error
    """
    try:
        url = service.start_portal(db, provider, cfg, principal.user_id, body.return_url)
    except BillingProviderError as e:
        raise _provider_failed(e)
    return UrlResponse(url=url)


@router.post("/sync", response_model=SyncResponse)
def sync(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    provider: Optional[BillingProvider] = Depends(get_billing_provider),
):
    try:
        plan = service.sync_subscription(db, provider, principal.user_id)
    except BillingProviderError as e:
        raise _provider_failed(e)
    return SyncResponse(plan=plan)


@router.get("/status", response_model=BillingStatusResponse)
def get_status(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    provider: Optional[BillingProvider] = Depends(get_billing_provider),
):
    return service.billing_status(db, provider, principal.user_id)


@router.get("/customer", response_model=CustomerResponse)
def get_customer(principal: Principal = Depends(require_principal), db: Session = Depends(get_db)):
    return CustomerResponse(customer_id=service.get_customer_id(db, principal.user_id))


@router.post("/webhook")
async def handle_webhook(
    request: Request,
    db: Session = Depends(get_db),
    provider: Optional[BillingProvider] = Depends(get_billing_provider),
):
    """
    Handle Stripe webhook events.

    Verifies signature, processes event idempotently, and updates the
    subscription mirror. Event deduplication uses the event id stored in
    billing_events.

    Errors:
        400: Invalid signature or payload
        503: Billing disabled
    """
    # Raw body is required for signature verification
    body = await request.body()
    headers = dict(request.headers)

    try:
        result = await run_in_threadpool(service.process_webhook_event, db, provider, headers, body)
    except BillingWebhookError as e:
        raise AppError(str(e), code="invalid_webhook", status_code=400)
    except BillingProviderError as e:
        raise _provider_failed(e)
    return {"received": True, "event_id": result.event_id}
