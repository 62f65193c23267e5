"""Tests for registration, login and bearer-token resolution."""
from datetime import timedelta

from eventhub.security import create_access_token, decode_access_token, hash_password, verify_password
from tests.conftest import register_user, auth


class TestRegister:

    def test_register_returns_token_and_user(self, client):
        resp = client.post("/api/register", json={
            "name": "Alice", "email": "  Alice@Example.com ", "password": "pw",
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["token"]
        assert data["user"]["name"] == "Alice"
        assert data["user"]["email"] == "alice@example.com"
        assert decode_access_token(data["token"]) == data["user"]["id"]

    def test_register_duplicate_email(self, client):
        register_user(client, name="Alice", email="alice@example.com")
        resp = client.post("/api/register", json={
            "name": "Other", "email": "ALICE@example.com", "password": "pw",
        })
        assert resp.status_code == 400
        assert resp.json()["error"] == "Email already registered"

    def test_register_missing_fields(self, client):
        resp = client.post("/api/register", json={"email": "a@example.com"})
        assert resp.status_code == 400

    def test_password_is_hashed(self, client, db):
        from eventhub.models.user import User
        register_user(client, name="Alice", password="hunter2")
        user = db.query(User).filter(User.email == "alice@example.com").one()
        assert user.password_hash != "hunter2"
        assert verify_password("hunter2", user.password_hash)


class TestLogin:

    def test_login(self, client):
        account = register_user(client, name="Alice", password="hunter2")
        resp = client.post("/api/login", json={"email": "alice@example.com", "password": "hunter2"})
        assert resp.status_code == 200
        assert resp.json()["user"] == account["user"]

    def test_login_wrong_password(self, client):
        register_user(client, name="Alice", password="hunter2")
        resp = client.post("/api/login", json={"email": "alice@example.com", "password": "nope"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid password"

    def test_login_unknown_user(self, client):
        resp = client.post("/api/login", json={"email": "ghost@example.com", "password": "pw"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "User not found"


class TestBearerToken:
    """Identity is resolved before any attendance logic runs."""

    def test_expired_token_forbidden(self, client):
        account = register_user(client, name="Alice")
        token = create_access_token(account["user"]["id"], expires_in=timedelta(seconds=-1))
        resp = client.post("/api/events/whatever/join", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 403
        assert resp.json()["error"] == "Invalid token"

    def test_token_for_unknown_user_forbidden(self, client):
        token = create_access_token("00000000-0000-0000-0000-000000000000")
        resp = client.post("/api/events/whatever/join", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 403
        assert resp.json()["error"] == "User not found"

    def test_missing_header_unauthorized(self, client):
        resp = client.post("/api/events/whatever/leave")
        assert resp.status_code == 401

    def test_valid_token_reaches_handler(self, client):
        account = register_user(client, name="Alice")
        resp = client.post("/api/events/whatever/join", headers=auth(account))
        assert resp.status_code == 404


def test_hash_password_roundtrip():
    hashed = hash_password("secret")
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret", "not-a-hash")
