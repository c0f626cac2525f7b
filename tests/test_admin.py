"""Tests for admin user management, login and the acting-user header."""

import datetime as dt

from app.core.db import utc_now
from app.services import articles as article_store
from app.services.media import MediaAsset
from app.services.validator import validate
from conftest import ARTICLE_REPLY


def _create_user(client, admin_headers, username="ada", password="correct horse"):
    resp = client.post("/api/admin/users", json={"username": username, "password": password}, headers=admin_headers)
    assert resp.status_code == 201
    return resp.json()["id"]


def test_admin_requires_token(client):
    resp = client.get("/api/admin/users")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid admin token"}
    assert client.get("/api/admin/users", headers={"X-Admin-Token": "wrong"}).status_code == 401


def test_create_list_delete_users(client, admin_headers):
    user_id = _create_user(client, admin_headers)
    users = client.get("/api/admin/users", headers=admin_headers).json()
    assert [u["username"] for u in users] == ["ada"]
    assert "password_hash" not in users[0]

    dup = client.post("/api/admin/users", json={"username": "ada", "password": "another pass"}, headers=admin_headers)
    assert dup.status_code == 409

    assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).json() == {"ok": True}
    assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 404


def test_short_password_rejected(client, admin_headers):
    resp = client.post("/api/admin/users", json={"username": "bob", "password": "short"}, headers=admin_headers)
    assert resp.status_code == 400


def test_login(client, admin_headers):
    user_id = _create_user(client, admin_headers)
    ok = client.post("/api/login", json={"username": "ada", "password": "correct horse"})
    assert ok.status_code == 200
    assert ok.json()["id"] == user_id

    bad = client.post("/api/login", json={"username": "ada", "password": "wrong horse"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid username or password"}
    assert client.post("/api/login", json={"username": "nobody", "password": "x"}).status_code == 401


def test_current_user(client, admin_headers):
    user_id = _create_user(client, admin_headers)
    resp = client.get("/api/user", headers={"X-User-Id": str(user_id)})
    assert resp.status_code == 200
    assert resp.json()["username"] == "ada"

    assert client.get("/api/user").status_code == 401
    assert client.get("/api/user", headers={"X-User-Id": "abc"}).status_code == 401
    assert client.get("/api/user", headers={"X-User-Id": "999"}).status_code == 401


def test_generated_article_records_user_and_survives_user_deletion(client, admin_headers):
    user_id = _create_user(client, admin_headers)
    article = client.post(
        "/api/articles/generate", json={"topic": "Sleep and memory"}, headers={"X-User-Id": str(user_id)}
    ).json()
    assert article["userId"] == user_id

    client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)
    assert client.get(f"/api/articles/{article['id']}").json()["userId"] is None


def test_admin_media_refresh(client, admin_headers, run_db):
    stale = MediaAsset(url="http://old", key="1-stale.png", expires_at=utc_now() - dt.timedelta(hours=1))

    async def seed(session):
        a = await article_store.create_article(session, validate(ARTICLE_REPLY), image=stale)
        return a.id

    article_id = run_db(seed)
    resp = client.post("/api/admin/media/refresh", headers=admin_headers)
    assert resp.json() == {"refreshed": 1}

    body = client.get(f"/api/articles/{article_id}").json()
    assert body["imageUrl"].startswith("http://testserver/api/media/1-stale.png?")
    # Re-signing media is not an edit
    assert body["updatedAt"] == body["createdAt"]
