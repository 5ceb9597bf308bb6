"""Admin routes: access control, catalog management, stats and overrides."""
import pytest

ADMIN_KEY_HEADERS = {"X-Admin-Key": "test-admin-key"}


def test_guest_is_unauthorized(client):
    resp = client.get("/api/admin/prompts")
    assert resp.status_code == 401


def test_non_admin_is_forbidden(client, as_user):
    resp = client.get("/api/admin/prompts", headers=as_user("user_alice"))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_wrong_legacy_key_is_rejected(client):
    assert client.get("/api/admin/prompts", headers={"X-Admin-Key": "nope"}).status_code == 401


@pytest.mark.parametrize("headers", [ADMIN_KEY_HEADERS, {"X-User-Id": "admin_1"}])
def test_admin_prompt_crud(client, headers):
    created = client.post(
        "/api/admin/prompts",
        json={"id": "new1", "title": "New", "content": "Hello [who]", "category": "writing", "is_premium": True},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["plan_type"] == "premium"

    dup = client.post(
        "/api/admin/prompts",
        json={"id": "new1", "title": "Again", "content": "c", "category": "writing"},
        headers=headers,
    )
    assert dup.status_code == 409

    patched = client.patch("/api/admin/prompts/new1", json={"is_premium": False}, headers=headers).json()
    assert patched["plan_type"] == "free"

    assert client.get("/api/prompts/new1").json()["variables"] == ["who"]
    assert client.delete("/api/admin/prompts/new1", headers=headers).status_code == 204
    assert client.get("/api/prompts/new1").status_code == 404


def test_unpublished_articles_are_admin_only(client, set_plan, as_user):
    client.post(
        "/api/admin/articles",
        json={"title": "Draft", "content": "wip", "category": "tips"},
        headers=ADMIN_KEY_HEADERS,
    )
    published = client.post(
        "/api/admin/articles",
        json={"title": "Live", "content": "out", "category": "news", "is_published": True},
        headers=ADMIN_KEY_HEADERS,
    ).json()

    assert len(client.get("/api/admin/articles", headers=ADMIN_KEY_HEADERS).json()) == 2

    set_plan("user_std", "standard")
    visible = client.get("/api/articles", headers=as_user("user_std")).json()
    assert [a["id"] for a in visible] == [published["id"]]
    assert client.get("/api/articles", params={"category": "tips"}, headers=as_user("user_std")).json() == []


def test_stats(client, seed_prompts, as_user):
    seed_prompts(3)
    client.post("/api/prompts/p1/copy", headers=as_user("user_alice"))
    client.post("/api/prompts/p1/copy", headers=as_user("user_bob"))
    client.post("/api/prompts/p2/copy", headers=as_user("user_bob"))
    client.put("/api/favorites/p2", headers=as_user("user_bob"))

    body = client.get("/api/admin/stats", headers=ADMIN_KEY_HEADERS).json()
    assert body["overall"]["total_copies"] == 3
    assert body["overall"]["active_users"] == 1
    assert body["popular"][0] == {"prompt_id": "p1", "count": 2}

    copies = client.get("/api/admin/stats/copies", headers=ADMIN_KEY_HEADERS).json()
    assert copies == [{"prompt_id": "p1", "count": 2}, {"prompt_id": "p2", "count": 1}]

    user = client.get("/api/admin/users/user_bob", headers=ADMIN_KEY_HEADERS).json()
    assert user["activity"] == {"favorites": 1, "custom_prompts": 0, "copies": 2}


def test_plan_override_takes_effect_immediately(client, as_user):
    client.get("/api/me", headers=as_user("user_alice"))

    resp = client.put("/api/admin/users/user_alice/plan", json={"plan_type": "premium"}, headers=ADMIN_KEY_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"
    assert client.get("/api/me", headers=as_user("user_alice")).json()["role"] == "premium"

    client.put("/api/admin/users/user_alice/plan", json={"plan_type": "free"}, headers=ADMIN_KEY_HEADERS)
    assert client.get("/api/me", headers=as_user("user_alice")).json()["role"] == "free"


def test_plan_override_for_unknown_user_is_404(client):
    resp = client.put("/api/admin/users/ghost/plan", json={"plan_type": "premium"}, headers=ADMIN_KEY_HEADERS)
    assert resp.status_code == 404
