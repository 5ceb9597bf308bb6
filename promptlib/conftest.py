# promptlib/conftest.py
import os
from unittest.mock import Mock

import pytest

# In-memory SQLite per app instance; must be set before the app builds engines
os.environ["TEST_DATABASE_URL"] = "sqlite://"

from fastapi.testclient import TestClient

from promptlib.core.config import settings
from promptlib.core.database import create_all_tables, create_db_engine, create_session_factory
from promptlib.features.billing.service import upsert_subscription
from promptlib.main import create_app

TEST_JWT_SECRET = "test-secret-key-for-hs256-tokens-0123456789"


@pytest.fixture
def app_settings(monkeypatch):
    """Process settings with deterministic test values (restored after the test)."""
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "ALLOW_HEADER_AUTH", True)
    monkeypatch.setattr(settings, "ADMIN_KEY", "test-admin-key")
    monkeypatch.setattr(settings, "ADMIN_USER_IDS", "admin_1")
    monkeypatch.setattr(settings, "STRIPE_PRICE_STANDARD", "price_standard")
    monkeypatch.setattr(settings, "STRIPE_PRICE_PREMIUM", "price_premium")
    monkeypatch.setattr(settings, "LOCAL_TIMEZONE", "UTC")
    return settings


@pytest.fixture
def billing_provider():
    """Stand-in billing provider; configure return values per test."""
    provider = Mock()
    provider.ensure_customer.return_value = "cus_test"
    provider.create_checkout_session.return_value = "https://checkout.stripe.test/session"
    provider.create_portal_session.return_value = "https://billing.stripe.test/portal"
    return provider


@pytest.fixture
def app(app_settings, billing_provider):
    return create_app(app_settings, billing_provider=billing_provider)


@pytest.fixture
def client(app):
    """TestClient with the lifespan running (fresh database per test)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session():
    """Standalone session on a fresh in-memory database."""
    engine = create_db_engine("sqlite://")
    create_all_tables(engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def set_plan(client):
    """Put a user on a plan by writing the subscription mirror directly."""
    def _set(user_id: str, plan_type: str, status: str = "active"):
        session = client.app.state.session_factory()
        try:
            upsert_subscription(session, user_id, plan_type=plan_type, status=status)
        finally:
            session.close()

    return _set


def user_headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest.fixture
def as_user():
    return user_headers


@pytest.fixture
def db(client):
    """Session on the running app's database."""
    session = client.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed_prompts(db):
    """Create catalog prompts p0..p{n-1}; later ids are newer."""
    from datetime import datetime, timedelta, timezone

    from promptlib.features.catalog.service import create_prompt
    from promptlib.models.prompt import PromptInput

    def _seed(n: int, **fields):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        out = []
        for i in range(n):
            data = PromptInput(
                title=fields.get("title", f"Prompt {i}"),
                content=fields.get("content", f"Write about [topic] number {i}"),
                category=fields.get("category", "writing"),
                tags=fields.get("tags", ["blog"]),
                use_case=fields.get("use_case", []),
            )
            out.append(create_prompt(db, data, prompt_id=f"p{i}", now=base + timedelta(minutes=i)))
        return out

    return _seed
