"""Billing API routes with a stubbed provider."""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from promptlib.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    SubscriptionSnapshot,
)
from promptlib.main import create_app


@pytest.fixture
def disabled_client(app_settings):
    with TestClient(create_app(app_settings, billing_provider=None)) as c:
        yield c


def test_billing_disabled_returns_503(disabled_client, as_user):
    resp = disabled_client.post("/api/billing/checkout", json={"plan_type": "premium"}, headers=as_user("user_alice"))
    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "billing_disabled"

    resp = disabled_client.post("/api/billing/webhook", content=b"{}", headers={"stripe-signature": "sig"})
    assert resp.status_code == 503


def test_status_when_disabled(disabled_client, as_user):
    body = disabled_client.get("/api/billing/status", headers=as_user("user_alice")).json()
    assert body == {
        "enabled": False,
        "plan_type": "free",
        "effective_plan": "free",
        "status": "inactive",
        "period_end": None,
    }


def test_checkout_requires_sign_in(client):
    assert client.post("/api/billing/checkout", json={"plan_type": "premium"}).status_code == 401


def test_checkout_creates_customer_and_session(client, billing_provider, as_user):
    resp = client.post("/api/billing/checkout", json={"plan_type": "standard"}, headers=as_user("user_alice"))
    assert resp.status_code == 200
    assert resp.json() == {"url": "https://checkout.stripe.test/session"}

    kwargs = billing_provider.create_checkout_session.call_args.kwargs
    assert kwargs["customer_id"] == "cus_test"
    assert kwargs["price_id"] == "price_standard"
    assert kwargs["client_reference_id"] == "user_alice"
    assert kwargs["metadata"] == {"user_id": "user_alice", "plan_type": "standard"}

    # Customer is reused on the next checkout
    client.post("/api/billing/checkout", json={"plan_type": "premium"}, headers=as_user("user_alice"))
    assert billing_provider.ensure_customer.call_count == 1
    assert client.get("/api/billing/customer", headers=as_user("user_alice")).json() == {"customer_id": "cus_test"}


def test_checkout_rejects_unknown_plan(client, as_user):
    resp = client.post("/api/billing/checkout", json={"plan_type": "gold"}, headers=as_user("user_alice"))
    assert resp.status_code == 422


def test_checkout_provider_failure_is_500(client, billing_provider, as_user):
    billing_provider.create_checkout_session.side_effect = BillingProviderError("stripe down")
    resp = client.post("/api/billing/checkout", json={"plan_type": "premium"}, headers=as_user("user_alice"))
    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "billing_provider_error"


def test_portal_without_customer_is_404(client, as_user):
    resp = client.post("/api/billing/portal", json={}, headers=as_user("user_alice"))
    assert resp.status_code == 404


def test_portal_after_checkout(client, as_user):
    headers = as_user("user_alice")
    client.post("/api/billing/checkout", json={"plan_type": "premium"}, headers=headers)
    resp = client.post("/api/billing/portal", json={"return_url": "https://app.test/account"}, headers=headers)
    assert resp.json() == {"url": "https://billing.stripe.test/portal"}


def test_webhook_bad_signature_is_400(client, billing_provider):
    billing_provider.handle_webhook.side_effect = BillingWebhookError("Invalid signature")
    resp = client.post("/api/billing/webhook", content=b"{}", headers={"stripe-signature": "bad"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_webhook"


def test_webhook_upgrades_user(client, billing_provider, as_user):
    billing_provider.handle_webhook.return_value = BillingWebhookResult(
        event_id="evt_1",
        event_type="checkout.session.completed",
        user_id="user_alice",
        customer_id="cus_test",
        subscription_id="sub_1",
        plan_type="premium",
    )
    resp = client.post("/api/billing/webhook", content=b'{"id": "evt_1"}', headers={"stripe-signature": "sig"})
    assert resp.json() == {"received": True, "event_id": "evt_1"}

    assert client.get("/api/me", headers=as_user("user_alice")).json()["role"] == "premium"
    status = client.get("/api/billing/status", headers=as_user("user_alice")).json()
    assert status["enabled"] is True
    assert status["effective_plan"] == "premium"


def test_sync_refreshes_from_provider(client, billing_provider, as_user, db):
    from promptlib.features.billing.service import upsert_subscription

    upsert_subscription(db, "user_alice", plan_type="premium", status="active", stripe_subscription_id="sub_1")
    billing_provider.retrieve_subscription.return_value = SubscriptionSnapshot(
        subscription_id="sub_1",
        customer_id="cus_test",
        status="canceled",
        plan_type="premium",
        current_period_end=datetime(2026, 5, 1, tzinfo=timezone.utc),
    )

    resp = client.post("/api/billing/sync", headers=as_user("user_alice"))

    assert resp.json() == {"plan": "free"}
    billing_provider.retrieve_subscription.assert_called_once_with("sub_1")


def test_sync_without_subscription_is_free(client, billing_provider, as_user):
    assert client.post("/api/billing/sync", headers=as_user("user_alice")).json() == {"plan": "free"}
    billing_provider.retrieve_subscription.assert_not_called()
