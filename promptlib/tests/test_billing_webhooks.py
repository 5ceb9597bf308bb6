"""
Billing webhook processing tests.

Verifies the event taxonomy against the subscription mirror and that
duplicate deliveries are not reprocessed.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy import select

from promptlib.core.database import billing_events
from promptlib.core.errors import BillingDisabledError
from promptlib.features.billing.provider import BillingWebhookError, BillingWebhookResult
from promptlib.features.billing.service import (
    get_subscription,
    normalize_status,
    process_webhook_event,
    set_plan_override,
    upsert_subscription,
)
from promptlib.features.users.service import effective_plan

HEADERS = {"stripe-signature": "sig123"}
PERIOD_END = datetime(2026, 4, 1, tzinfo=timezone.utc)


@pytest.fixture
def provider():
    return Mock()


def _deliver(session, provider, **fields):
    fields.setdefault("event_id", "evt_1")
    provider.handle_webhook.return_value = BillingWebhookResult(**fields)
    body = f'{{"id": "{fields["event_id"]}"}}'.encode()
    return process_webhook_event(session, provider, HEADERS, body)


def _checkout(session, provider, **overrides):
    fields = dict(
        event_id="evt_checkout",
        event_type="checkout.session.completed",
        user_id="user_alice",
        customer_id="cus_1",
        subscription_id="sub_1",
        plan_type="standard",
        current_period_end=PERIOD_END,
    )
    fields.update(overrides)
    return _deliver(session, provider, **fields)


def _events(session):
    return session.execute(select(billing_events)).fetchall()


def test_checkout_completed_activates_plan(db_session, provider):
    _checkout(db_session, provider)

    sub = get_subscription(db_session, "user_alice")
    assert sub.status == "active"
    assert sub.plan_type == "standard"
    assert sub.stripe_customer_id == "cus_1"
    assert sub.current_period_start is not None
    assert effective_plan(db_session, "user_alice") == "standard"


def test_checkout_without_detected_plan_falls_back_to_premium(db_session, provider, caplog):
    _checkout(db_session, provider, plan_type=None)

    assert get_subscription(db_session, "user_alice").plan_type == "premium"
    assert any(r.getMessage() == "billing.plan_undetected" for r in caplog.records)


@pytest.mark.parametrize(
    "event_type,status,expected_status,expected_plan",
    [
        ("customer.subscription.updated", "trialing", "active", "standard"),
        ("customer.subscription.updated", "unpaid", "past_due", "free"),
        ("customer.subscription.deleted", "canceled", "canceled", "free"),
        ("invoice.payment_failed", None, "past_due", "free"),
    ],
)
def test_subscription_events_update_mirror(db_session, provider, event_type, status, expected_status, expected_plan):
    _checkout(db_session, provider)

    _deliver(db_session, provider, event_id="evt_2", event_type=event_type, customer_id="cus_1", status=status)

    assert get_subscription(db_session, "user_alice").status == expected_status
    assert effective_plan(db_session, "user_alice") == expected_plan


def test_payment_succeeded_reactivates(db_session, provider):
    _checkout(db_session, provider)
    _deliver(db_session, provider, event_id="evt_2", event_type="invoice.payment_failed", customer_id="cus_1")
    _deliver(db_session, provider, event_id="evt_3", event_type="invoice.payment_succeeded", customer_id="cus_1")

    assert effective_plan(db_session, "user_alice") == "standard"


def test_subscription_update_can_change_tier(db_session, provider):
    _checkout(db_session, provider)
    _deliver(
        db_session,
        provider,
        event_id="evt_2",
        event_type="customer.subscription.updated",
        customer_id="cus_1",
        status="active",
        plan_type="premium",
        current_period_end=PERIOD_END + timedelta(days=30),
    )

    sub = get_subscription(db_session, "user_alice")
    assert sub.plan_type == "premium"
    assert sub.current_period_end.replace(tzinfo=timezone.utc) == PERIOD_END + timedelta(days=30)


def test_unknown_events_are_acknowledged(db_session, provider):
    _deliver(db_session, provider, event_type="customer.created", customer_id="cus_9")

    rows = _events(db_session)
    assert len(rows) == 1
    assert rows[0].processed is True
    assert get_subscription(db_session, "user_alice") is None


def test_duplicate_events_are_not_reprocessed(db_session, provider):
    _checkout(db_session, provider)
    set_plan_override(db_session, "user_alice", "free")

    # Redelivery must not re-activate the overridden plan
    _checkout(db_session, provider)

    assert len(_events(db_session)) == 1
    assert effective_plan(db_session, "user_alice") == "free"


def test_failed_event_is_applied_on_redelivery(db_session, provider, monkeypatch):
    from promptlib.features.billing import service as billing_service

    _checkout(db_session, provider)
    real_update = billing_service._update_by_customer
    calls = []

    def flaky_update(session, customer_id, **values):
        calls.append(customer_id)
        if len(calls) == 1:
            raise RuntimeError("database is locked")
        return real_update(session, customer_id, **values)

    monkeypatch.setattr(billing_service, "_update_by_customer", flaky_update)

    with pytest.raises(RuntimeError):
        _deliver(db_session, provider, event_id="evt_fail", event_type="invoice.payment_failed", customer_id="cus_1")
    assert get_subscription(db_session, "user_alice").status == "active"

    _deliver(db_session, provider, event_id="evt_fail", event_type="invoice.payment_failed", customer_id="cus_1")

    assert len(calls) == 2
    assert get_subscription(db_session, "user_alice").status == "past_due"
    row = [r for r in _events(db_session) if r.stripe_event_id == "evt_fail"][0]
    assert row.processed is True
    assert row.error is None


def test_checkout_without_user_reference_records_error(db_session, provider):
    with pytest.raises(BillingWebhookError):
        _checkout(db_session, provider, user_id=None)

    row = _events(db_session)[0]
    assert row.processed is False
    assert "user reference" in row.error


def test_disabled_billing_raises(db_session):
    with pytest.raises(BillingDisabledError):
        process_webhook_event(db_session, None, HEADERS, b"{}")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("active", "active"),
        ("trialing", "active"),
        ("past_due", "past_due"),
        ("unpaid", "past_due"),
        ("canceled", "canceled"),
        ("incomplete_expired", "canceled"),
        ("incomplete", "inactive"),
        (None, "inactive"),
    ],
)
def test_status_normalization(raw, expected):
    assert normalize_status(raw) == expected


def test_override_to_free_marks_mirror_inactive(db_session):
    upsert_subscription(db_session, "user_bob", plan_type="premium", status="active")

    sub = set_plan_override(db_session, "user_bob", "free")

    assert sub.status == "inactive"
    assert sub.effective_plan == "free"
