"""
tests/test_web_routes.py -- Integration tests for the HTML login/signup flow.

These tests run through the real ASGI stack (SessionMiddleware included) using
the web_client fixture (follow_redirects=False), asserting on status codes and
Location headers.

Coverage:
  - GET /login, GET /signup render forms
  - POST /login success -> 302 to / (or safe next); failure -> 302 /login?error=
  - Unknown name and wrong password redirect identically
  - Authenticated GET / renders; unauthenticated GET / -> /login?next=/
  - GET /logout clears the session
  - POST /signup: validation errors redisplay with values, duplicate -> 409,
    success -> 302 /login?signed_up=1 and the new account can log in
  - Persistence fault on login -> generic HTML 500 page, no detail leaked
  - Signup and login agree on surrounding whitespace in the name
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from auth.store import UserStore


@pytest.fixture
def client(web_client: tuple[TestClient, UserStore]) -> TestClient:
    """The shared web client with cookies cleared, i.e. logged out."""
    c, _store = web_client
    c.cookies.clear()
    return c


def _login(client: TestClient, name: str, password: str, **extra):
    return client.post("/login", data={"name": name, "password": password, **extra})


class TestLoginForm:
    def test_login_page_renders(self, client: TestClient) -> None:
        resp = client.get("/login")
        assert resp.status_code == 200
        assert 'name="name"' in resp.text
        assert 'name="password"' in resp.text

    def test_error_flag_shows_generic_message(self, client: TestClient) -> None:
        resp = client.get("/login?error=bad_credentials")
        assert "Invalid name or password." in resp.text

    def test_unknown_error_code_is_not_reflected(self, client: TestClient) -> None:
        resp = client.get("/login?error=<script>alert(1)</script>")
        assert resp.status_code == 200
        assert "<script>alert(1)</script>" not in resp.text

    def test_logged_in_user_is_sent_home(self, client: TestClient) -> None:
        _login(client, "webuser", "webpass123")
        resp = client.get("/login")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"


class TestLogin:
    def test_success_redirects_home(self, client: TestClient) -> None:
        resp = _login(client, "webuser", "webpass123")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/"
        assert resp.headers["cache-control"] == "no-store"

    def test_success_honours_relative_next(self, client: TestClient) -> None:
        resp = _login(client, "webuser", "webpass123", next="/account")
        assert resp.headers["location"] == "/account"

    @pytest.mark.parametrize("target", ["https://attacker.example", "//attacker.example", "javascript:alert(1)"])
    def test_offsite_next_is_ignored(self, client: TestClient, target: str) -> None:
        resp = _login(client, "webuser", "webpass123", next=target)
        assert resp.headers["location"] == "/"

    def test_wrong_password(self, client: TestClient) -> None:
        resp = _login(client, "webuser", "wrong")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?error=bad_credentials"

    def test_unknown_name_matches_wrong_password(self, client: TestClient) -> None:
        unknown = _login(client, "nobody", "webpass123")
        wrong = _login(client, "webuser", "wrong")
        assert unknown.status_code == wrong.status_code
        assert unknown.headers["location"] == wrong.headers["location"]

    def test_missing_fields_rejected(self, client: TestClient) -> None:
        resp = client.post("/login", data={})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?error=bad_credentials"

    def test_failed_login_does_not_authenticate(self, client: TestClient) -> None:
        _login(client, "webuser", "wrong")
        resp = client.get("/")
        assert resp.status_code == 302

    def test_persistence_fault_renders_generic_error_page(self, client: TestClient) -> None:
        fault = OperationalError("SELECT users", {}, Exception("disk I/O error"))
        with patch.object(UserStore, "get_by_name", side_effect=fault):
            resp = _login(client, "webuser", "webpass123")
        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("text/html")
        assert "Something went wrong" in resp.text
        assert "disk I/O" not in resp.text
        assert "SELECT" not in resp.text


class TestHomeAndLogout:
    def test_home_requires_login(self, client: TestClient) -> None:
        resp = client.get("/")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?next=/"

    def test_home_after_login(self, client: TestClient) -> None:
        _login(client, "webuser", "webpass123")
        resp = client.get("/")
        assert resp.status_code == 200
        assert "webuser" in resp.text

    def test_logout_clears_session(self, client: TestClient) -> None:
        _login(client, "webuser", "webpass123")
        resp = client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert client.get("/").status_code == 302

    def test_old_cookie_is_dead_after_logout(self, client: TestClient) -> None:
        _login(client, "webuser", "webpass123")
        stolen = dict(client.cookies)
        client.get("/logout")
        client.cookies.clear()
        client.cookies.update(stolen)
        resp = client.get("/")
        assert resp.status_code == 302

    def test_logout_without_session(self, client: TestClient) -> None:
        resp = client.get("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"


class TestSignup:
    def test_signup_page_renders_defaults(self, client: TestClient) -> None:
        resp = client.get("/signup")
        assert resp.status_code == 200
        assert 'name="age" value="20"' in resp.text

    def test_signup_then_login(self, web_client: tuple[TestClient, UserStore], client: TestClient) -> None:
        _c, store = web_client
        resp = client.post(
            "/signup",
            data={"name": "alice", "password": "secret", "email": "alice@example.com", "age": "31"},
        )
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login?signed_up=1"
        assert store.get_by_name("alice") is not None

        assert "Account created" in client.get("/login?signed_up=1").text
        assert _login(client, "alice", "secret").headers["location"] == "/"
        client.cookies.clear()
        assert _login(client, "alice", "wrong").headers["location"] == "/login?error=bad_credentials"

    def test_missing_name_redisplays_form(self, web_client: tuple[TestClient, UserStore], client: TestClient) -> None:
        _c, store = web_client
        resp = client.post("/signup", data={"password": "secret", "email": "nameless@example.com", "age": "40"})
        assert resp.status_code == 422
        assert 'data-field="name"' in resp.text
        assert 'value="nameless@example.com"' in resp.text
        assert 'value="40"' in resp.text
        assert store.get_by_name("") is None

    def test_invalid_fields_keep_input_but_not_password(self, client: TestClient) -> None:
        resp = client.post(
            "/signup",
            data={"name": "bob", "password": "hunter2", "email": "not-an-email", "age": "old"},
        )
        assert resp.status_code == 422
        assert 'data-field="email"' in resp.text
        assert 'data-field="age"' in resp.text
        assert 'value="bob"' in resp.text
        assert "hunter2" not in resp.text

    def test_padded_name_can_log_in_as_typed(self, web_client: tuple[TestClient, UserStore], client: TestClient) -> None:
        _c, store = web_client
        assert client.post("/signup", data={"name": " dave ", "password": "pw"}).status_code == 302
        assert store.get_by_name("dave") is not None
        assert _login(client, " dave ", "pw").headers["location"] == "/"

    def test_duplicate_name_is_conflict(self, client: TestClient) -> None:
        assert client.post("/signup", data={"name": "carol", "password": "pw1"}).status_code == 302
        resp = client.post("/signup", data={"name": "carol", "password": "pw2"})
        assert resp.status_code == 409
        assert 'data-field="name"' in resp.text
        assert "already taken" in resp.text
        # The first account keeps its password.
        assert _login(client, "carol", "pw1").headers["location"] == "/"
