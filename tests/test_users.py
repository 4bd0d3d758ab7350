"""Tests for user registration and sign-in resolution."""
from tests.conftest import auth, create_test_user


class TestUsers:

    def test_create_user(self, client):
        user = create_test_user(client, name="Alice", email="  Alice@Example.com ")
        assert user["display_name"] == "Alice"
        assert user["email"] == "alice@example.com"
        assert user["user_id"]

    def test_duplicate_email(self, client):
        create_test_user(client, name="Alice", email="alice@example.com")
        resp = client.post("/api/users/", json={"display_name": "Other", "email": "ALICE@example.com"})
        assert resp.status_code == 409

    def test_blank_name_rejected(self, client):
        resp = client.post("/api/users/", json={"display_name": "  ", "email": "x@example.com"})
        assert resp.status_code == 422

    def test_me(self, client):
        user = create_test_user(client, name="Alice")
        resp = client.get("/api/users/me", headers=auth(user))
        assert resp.status_code == 200
        assert resp.json()["user_id"] == user["user_id"]

    def test_me_requires_header(self, client):
        resp = client.get("/api/users/me")
        assert resp.status_code == 401
        assert resp.json()["error"] == "authentication_required"

    def test_get_user(self, client):
        user = create_test_user(client, name="Alice")
        assert client.get(f"/api/users/{user['user_id']}").json() == user

    def test_get_unknown_user(self, client):
        assert client.get("/api/users/nope").status_code == 404

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}
