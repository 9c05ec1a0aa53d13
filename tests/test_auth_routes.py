"""End-to-end tests for the sign-in and identity callback routes."""

import uuid

from recipebox.models import Account
from recipebox.services.accounts import register_account
from tests.conftest import count_accounts

CALLBACK = "/users/auth/google_oauth2/callback"


def _flash_messages(client):
    return [item["message"] for item in client.get("/flash").json()["flash"]]


def test_callback_signs_in_new_account(client, session) -> None:
    response = client.get(CALLBACK, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "http://frontend.test"

    user = client.get("/me").json()["user"]
    assert user["email"] == "test@example.com"
    assert user["name"] == "Test User"
    assert user["provider"] == "google_oauth2"
    assert _flash_messages(client) == ["Successfully authenticated from Google account."]

    account = session.get(Account, uuid.UUID(user["id"]))
    assert account.uid == "123456"
    assert count_accounts(session) == 1


def test_repeat_callback_returns_same_account(client, session) -> None:
    client.get(CALLBACK, follow_redirects=False)
    first_id = client.get("/me").json()["user"]["id"]
    client.delete("/users/sign_out")

    client.get(CALLBACK, follow_redirects=False)

    assert client.get("/me").json()["user"]["id"] == first_id
    assert count_accounts(session) == 1


def test_callback_honours_next_within_frontend(client, identity) -> None:
    start = client.get(
        "/users/auth/google_oauth2",
        params={"next": "http://frontend.test/cookbook"},
        follow_redirects=False,
    )
    assert start.status_code == 302
    assert start.headers["location"].startswith("https://accounts.example/authorize")

    response = client.get(CALLBACK, follow_redirects=False)
    assert response.headers["location"] == "http://frontend.test/cookbook"


def test_callback_ignores_foreign_next(client) -> None:
    client.get(
        "/users/auth/google_oauth2",
        params={"next": "https://evil.example/"},
        follow_redirects=False,
    )
    response = client.get(CALLBACK, follow_redirects=False)
    assert response.headers["location"] == "http://frontend.test"


def test_callback_ignores_lookalike_next_host(client) -> None:
    client.get(
        "/users/auth/google_oauth2",
        params={"next": "http://frontend.test.evil.example/phish"},
        follow_redirects=False,
    )
    response = client.get(CALLBACK, follow_redirects=False)
    assert response.headers["location"] == "http://frontend.test"


def test_callback_joins_relative_next_onto_frontend(client) -> None:
    client.get(
        "/users/auth/google_oauth2", params={"next": "/cookbook"}, follow_redirects=False
    )
    response = client.get(CALLBACK, follow_redirects=False)
    assert response.headers["location"] == "http://frontend.test/cookbook"

    client.delete("/users/sign_out")
    client.get(
        "/users/auth/google_oauth2", params={"next": "//evil.example/"}, follow_redirects=False
    )
    response = client.get(CALLBACK, follow_redirects=False)
    assert response.headers["location"] == "http://frontend.test"


def test_handshake_failure_redirects_home(client, session, identity) -> None:
    identity.error = "access_denied"

    response = client.get(CALLBACK, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "http://frontend.test"
    assert _flash_messages(client) == ["Authentication failed: access_denied"]
    assert client.get("/me").json() == {"user": None}
    assert count_accounts(session) == 0


def test_failure_endpoint(client) -> None:
    response = client.get(
        "/users/auth/failure", params={"message": "invalid_credentials"}, follow_redirects=False
    )
    assert response.status_code == 302
    assert response.headers["location"] == "http://frontend.test"
    assert _flash_messages(client) == ["Authentication failed: invalid_credentials"]


def test_email_collision_needs_completion(client, session) -> None:
    existing = register_account(
        session,
        email="test@example.com",
        password="secret123",
        password_confirmation="secret123",
    )
    assert existing.persisted

    response = client.get(CALLBACK, follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "http://frontend.test/users/sign_up"
    assert client.get("/me").json() == {"user": None}

    form = client.get("/users/sign_up").json()
    assert form["prefill"] == {
        "email": "test@example.com",
        "name": "Test User",
        "avatar_url": "https://example.com/avatar.png",
        "provider": "google_oauth2",
    }
    assert [item["message"] for item in form["flash"]] == ["Email has already been taken"]
    assert count_accounts(session) == 1


def test_completion_binds_stashed_identity(client, session) -> None:
    register_account(
        session,
        email="test@example.com",
        password="secret123",
        password_confirmation="secret123",
    )
    client.get(CALLBACK, follow_redirects=False)

    rejected = client.post(
        "/users",
        json={"password": "secret123", "password_confirmation": "secret123"},
    )
    assert rejected.status_code == 422
    assert rejected.json()["errors"] == ["Email has already been taken"]

    created = client.post(
        "/users",
        json={
            "email": "other@example.com",
            "password": "secret123",
            "password_confirmation": "secret123",
        },
    )
    assert created.status_code == 201
    body = created.json()
    assert body["user"]["email"] == "other@example.com"
    assert body["user"]["provider"] == "google_oauth2"
    assert body["notice"] == "Welcome! You have signed up successfully."

    assert client.get("/users/sign_up").json()["prefill"]["provider"] is None
    assert client.get("/me").json()["user"]["email"] == "other@example.com"

    client.delete("/users/sign_out")
    client.get(CALLBACK, follow_redirects=False)
    assert client.get("/me").json()["user"]["email"] == "other@example.com"
    assert count_accounts(session) == 2


def test_password_sign_in_and_out(client) -> None:
    assert client.post(
        "/users",
        json={
            "email": "cook@example.com",
            "password": "secret123",
            "password_confirmation": "secret123",
            "name": "Cook",
        },
    ).status_code == 201
    client.delete("/users/sign_out")

    bad = client.post("/users/sign_in", json={"email": "cook@example.com", "password": "nope"})
    assert bad.status_code == 401
    assert bad.json()["detail"] == "Invalid email or password."

    good = client.post(
        "/users/sign_in", json={"email": "COOK@example.com", "password": "secret123"}
    )
    assert good.status_code == 200
    assert good.json()["user"]["name"] == "Cook"

    out = client.delete("/users/sign_out")
    assert out.json() == {"ok": True, "notice": "Signed out successfully."}
    assert client.get("/me").json() == {"user": None}


def test_unknown_provider_is_404(client) -> None:
    assert client.get("/users/auth/myspace", follow_redirects=False).status_code == 404
    assert client.get("/users/auth/myspace/callback", follow_redirects=False).status_code == 404


def test_health_and_config(client) -> None:
    assert client.get("/health").json() == {"ok": True}
    config = client.get("/config").json()
    assert config["providers"][0]["key"] == "google_oauth2"
    assert config["llm"]["default_model"]


def test_password_sign_in_drops_stashed_identity(client, session) -> None:
    register_account(
        session,
        email="test@example.com",
        password="secret123",
        password_confirmation="secret123",
    )
    client.get(CALLBACK, follow_redirects=False)
    assert client.get("/users/sign_up").json()["prefill"]["provider"] == "google_oauth2"

    signed_in = client.post(
        "/users/sign_in", json={"email": "test@example.com", "password": "secret123"}
    )
    assert signed_in.status_code == 200
    assert client.get("/users/sign_up").json()["prefill"]["provider"] is None

    created = client.post(
        "/users",
        json={
            "email": "second@example.com",
            "password": "secret123",
            "password_confirmation": "secret123",
        },
    )
    assert created.status_code == 201
    assert created.json()["user"]["provider"] is None


def test_non_string_fields_are_rejected_cleanly(client) -> None:
    sign_up = client.post(
        "/users", json={"email": 5, "password": 123456, "password_confirmation": 123456}
    )
    assert sign_up.status_code == 422
    assert sign_up.json()["errors"] == ["Email is invalid"]

    sign_in = client.post("/users/sign_in", json={"email": 5, "password": {"x": 1}})
    assert sign_in.status_code == 401
