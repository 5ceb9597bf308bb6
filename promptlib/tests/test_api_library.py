"""Favorites, folders, custom prompts, search history and transfer routes."""
import json

from promptlib.features.library.favorites import migrate_favorites


def test_guest_cannot_save_favorites(client):
    assert client.put("/api/favorites/p0").status_code == 401


def test_favorite_add_is_idempotent(client, seed_prompts, as_user):
    seed_prompts(2)
    headers = as_user("user_alice")
    client.put("/api/favorites/p0", headers=headers)
    body = client.put("/api/favorites/p0", headers=headers).json()
    assert body == {"prompt_ids": ["p0"], "limit": 50}

    body = client.delete("/api/favorites/p0", headers=headers).json()
    assert body["prompt_ids"] == []


def test_favorite_unknown_prompt_is_404(client, as_user):
    assert client.put("/api/favorites/ghost", headers=as_user("user_alice")).status_code == 404


def test_free_favorite_limit(client, db, seed_prompts, as_user):
    seed_prompts(1)
    migrate_favorites(db, "user_alice", [f"x{i}" for i in range(50)])

    resp = client.put("/api/favorites/p0", headers=as_user("user_alice"))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "quota_exceeded"


def test_favorites_migrate_reports_skips(client, as_user):
    resp = client.post(
        "/api/favorites/migrate",
        json={"prompt_ids": [f"x{i}" for i in range(52)]},
        headers=as_user("user_alice"),
    )
    body = resp.json()
    assert len(body["uploaded"]) == 50
    assert body["skipped"] == ["x50", "x51"]


def test_folders_are_premium_only(client, as_user, set_plan):
    set_plan("user_std", "standard")
    resp = client.get("/api/folders", headers=as_user("user_std"))
    assert resp.status_code == 403


def test_folder_lifecycle(client, seed_prompts, set_plan, as_user):
    seed_prompts(3)
    set_plan("user_pro", "premium")
    headers = as_user("user_pro")

    folder = client.post("/api/folders", json={"name": "Blog", "prompt_ids": ["p0"]}, headers=headers).json()
    folder_id = folder["id"]

    dup = client.post("/api/folders", json={"name": "Blog"}, headers=headers)
    assert dup.status_code == 409

    client.post(f"/api/folders/{folder_id}/prompts/p2", headers=headers)
    updated = client.post(f"/api/folders/{folder_id}/prompts/p2", headers=headers).json()
    assert updated["prompt_ids"] == ["p0", "p2"]

    detail = client.get(f"/api/folders/{folder_id}", headers=headers).json()
    assert [p["id"] for p in detail["prompts"]] == ["p2", "p0"]

    listing = client.get("/api/prompts", params={"folder_id": folder_id}, headers=headers).json()
    assert [p["id"] for p in listing["prompts"]] == ["p2", "p0"]

    renamed = client.patch(f"/api/folders/{folder_id}", json={"name": "Posts"}, headers=headers).json()
    assert renamed["name"] == "Posts"

    removed = client.delete(f"/api/folders/{folder_id}/prompts/p0", headers=headers).json()
    assert removed["prompt_ids"] == ["p2"]

    assert client.delete(f"/api/folders/{folder_id}", headers=headers).status_code == 204
    assert client.get(f"/api/folders/{folder_id}", headers=headers).status_code == 404


def test_other_users_folders_are_invisible(client, set_plan, as_user):
    set_plan("user_pro", "premium")
    set_plan("user_other", "premium")
    folder = client.post("/api/folders", json={"name": "Mine"}, headers=as_user("user_pro")).json()

    resp = client.get(f"/api/folders/{folder['id']}", headers=as_user("user_other"))
    assert resp.status_code == 404


def test_custom_prompts_need_a_paid_plan(client, as_user):
    resp = client.post(
        "/api/custom-prompts",
        json={"title": "Mine", "content": "c", "category": "writing"},
        headers=as_user("user_alice"),
    )
    assert resp.status_code == 403


def test_custom_prompt_migration_needs_a_paid_plan(client, as_user):
    headers = as_user("user_alice")
    resp = client.post(
        "/api/custom-prompts/migrate",
        json={"prompts": [{"title": "Mine", "content": "c", "category": "writing"}]},
        headers=headers,
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_custom_view_needs_a_paid_plan(client, as_user):
    resp = client.get("/api/prompts", params={"view": "custom"}, headers=as_user("user_alice"))
    assert resp.status_code == 403


def test_folder_migration_needs_folder_access(client, set_plan, as_user):
    set_plan("user_std", "standard")
    resp = client.post(
        "/api/folders/migrate",
        json={"folders": [{"name": "Local", "prompt_ids": []}]},
        headers=as_user("user_std"),
    )
    assert resp.status_code == 403


def test_migration_requires_sign_in(client):
    resp = client.post("/api/folders/migrate", json={"folders": []})
    assert resp.status_code == 401


def test_custom_prompt_crud_and_lookup(client, set_plan, as_user):
    set_plan("user_std", "standard")
    headers = as_user("user_std")

    created = client.post(
        "/api/custom-prompts",
        json={"title": "Mine", "content": "Hi {{name}}", "category": "writing", "tags": ["x"]},
        headers=headers,
    )
    assert created.status_code == 201
    prompt_id = created.json()["id"]

    detail = client.get(f"/api/prompts/{prompt_id}", headers=headers).json()
    assert detail["variables"] == ["name"]
    # Not visible to anyone else
    assert client.get(f"/api/prompts/{prompt_id}").status_code == 404

    listing = client.get("/api/prompts", params={"view": "custom"}, headers=headers).json()
    assert [p["id"] for p in listing["prompts"]] == [prompt_id]

    patched = client.patch(f"/api/custom-prompts/{prompt_id}", json={"title": "Renamed"}, headers=headers).json()
    assert patched["title"] == "Renamed"

    assert client.delete(f"/api/custom-prompts/{prompt_id}", headers=headers).status_code == 204
    assert client.get("/api/custom-prompts", headers=headers).json() == []


def test_search_history_routes(client, as_user):
    headers = as_user("user_alice")
    assert client.get("/api/search-history").status_code == 401

    client.post("/api/search-history", json={"query": "seo"}, headers=headers)
    body = client.post("/api/search-history", json={"query": "email"}, headers=headers).json()
    assert sorted(i["query"] for i in body["history"]) == ["email", "seo"]

    body = client.delete("/api/search-history", params={"query": "seo"}, headers=headers).json()
    assert [i["query"] for i in body["history"]] == ["email"]

    body = client.delete("/api/search-history", headers=headers).json()
    assert body["history"] == []


def test_articles_hidden_from_free_users(client, as_user, set_plan):
    assert client.get("/api/articles", headers=as_user("user_alice")).status_code == 403

    set_plan("user_std", "standard")
    assert client.get("/api/articles", headers=as_user("user_std")).json() == []


def test_export_favorites_as_csv(client, seed_prompts, as_user):
    seed_prompts(2)
    headers = as_user("user_alice")
    client.put("/api/favorites/p1", headers=headers)

    resp = client.get("/api/transfer/export", params={"format": "csv"}, headers=headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "attachment" in resp.headers["content-disposition"]
    text = resp.content.decode("utf-8")
    assert text.startswith("\ufeff")
    assert len(text.strip().splitlines()) == 2


def test_import_prompts_creates_custom_prompts(client, set_plan, as_user):
    set_plan("user_std", "standard")
    headers = as_user("user_std")
    payload = [
        {"id": "imp1", "title": "One", "content": "c", "category": "writing"},
        {"id": "imp2", "title": "Two", "content": "c", "category": "sales", "tags": ["a"]},
    ]

    body = client.post("/api/transfer/import", content=json.dumps(payload), headers=headers).json()
    assert body == {"kind": "prompts", "imported": ["imp1", "imp2"], "skipped": []}

    exported = client.get("/api/transfer/export", params={"scope": "custom"}, headers=headers).json()
    assert sorted(p["id"] for p in exported) == ["imp1", "imp2"]


def test_import_rejects_bad_entries(client, set_plan, as_user):
    set_plan("user_std", "standard")
    resp = client.post(
        "/api/transfer/import",
        content=json.dumps([{"id": "x", "title": "no content"}]),
        headers=as_user("user_std"),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid prompt at index 0: missing required fields"


def test_import_rejects_malformed_json(client, set_plan, as_user):
    set_plan("user_std", "standard")
    resp = client.post("/api/transfer/import", content=b"[{oops", headers=as_user("user_std"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_folder_export_and_import(client, seed_prompts, set_plan, as_user):
    seed_prompts(2)
    set_plan("user_pro", "premium")
    set_plan("user_new", "premium")
    client.post("/api/folders", json={"id": "f1", "name": "Mail", "prompt_ids": ["p1"]}, headers=as_user("user_pro"))

    document = client.get("/api/transfer/export/folders", headers=as_user("user_pro")).json()
    assert [p["id"] for p in document["prompts"]] == ["p1"]

    # Folder ids are global; a second user's copy gets a conflict and is skipped
    body = client.post("/api/transfer/import", content=json.dumps(document), headers=as_user("user_new")).json()
    assert body["kind"] == "folders"
    assert body["skipped"] == ["f1"]

    document["folders"][0]["id"] = "f2"
    body = client.post("/api/transfer/import", content=json.dumps(document), headers=as_user("user_new")).json()
    assert body["imported"] == ["f2"]
