"""Integration tests for signup, login, logout and the session gate."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from api_helpers import login, signup
from board.database import SessionLocal
from board.models import User, UserSession


def test_signup_returns_public_profile_and_opens_session(client):
    payload = signup(client, "alice", "pw1")

    assert payload["success"] is True
    assert payload["user"]["username"] == "alice"
    assert set(payload["user"]) == {"id", "username"}
    assert "board_session" in client.cookies

    status = client.get("/check-session").json()
    assert status == {"authenticated": True, "user": payload["user"]}

    with SessionLocal() as session:
        user = session.scalar(select(User).where(User.username == "alice"))
        assert user is not None
        assert user.hashed_password != "pw1"


@pytest.mark.parametrize("password", ["password123", "something-else", "x"])
def test_duplicate_signup_always_fails(client, make_client, password):
    signup(client, "alice", "pw1")

    other = make_client()
    response = other.post("/signup", json={"username": "alice", "password": password})

    assert response.status_code == 400
    assert response.json() == {"error": "Username already exists"}


def test_signup_trims_username(client, make_client):
    payload = signup(client, "  bob  ")
    assert payload["user"]["username"] == "bob"

    response = make_client().post("/signup", json={"username": "bob", "password": "other"})
    assert response.status_code == 400


@pytest.mark.parametrize(
    "body",
    [
        {"username": "", "password": "pw"},
        {"username": "   ", "password": "pw"},
        {"username": "carol", "password": ""},
        {"username": "carol"},
        {},
    ],
)
def test_signup_requires_both_fields(client, body):
    response = client.post("/signup", json=body)

    assert response.status_code == 400
    assert "error" in response.json()


def test_login_failures_do_not_reveal_which_part_was_wrong(client, make_client):
    signup(client, "alice", "pw1")
    client.post("/logout")

    unknown_user = login(make_client(), "mallory", "pw1")
    wrong_password = login(make_client(), "alice", "wrong")

    assert unknown_user.status_code == wrong_password.status_code == 401
    assert unknown_user.json() == wrong_password.json() == {"error": "Invalid username or password"}
    assert "board_session" not in unknown_user.cookies


def test_login_success_establishes_session(client, make_client):
    signup(client, "alice", "pw1")

    other = make_client()
    response = login(other, "alice", "pw1")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["user"]["username"] == "alice"
    assert other.get("/current-user").json()["username"] == "alice"


def test_logout_is_idempotent(client):
    signup(client, "alice", "pw1")

    first = client.post("/logout")
    second = client.post("/logout")

    assert first.status_code == second.status_code == 200
    assert second.json() == {"success": True}
    assert client.get("/check-session").json() == {"authenticated": False, "user": None}
    assert client.get("/posts").status_code == 401


def test_logout_destroys_server_side_session(client):
    signup(client, "alice", "pw1")
    token = client.cookies.get("board_session")

    client.post("/logout")

    # Replaying the old cookie must not work once the session row is gone.
    client.cookies.clear()
    client.cookies.set("board_session", token)
    assert client.get("/current-user").status_code == 401
    with SessionLocal() as session:
        assert session.scalars(select(UserSession)).all() == []


def test_protected_routes_require_session(client):
    response = client.get("/posts")

    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}
    assert client.post("/post", data={"title": "T", "content": "C"}).status_code == 401
    assert client.get("/current-user").status_code == 401


def test_tampered_cookie_is_rejected(client):
    signup(client, "alice", "pw1")
    token = client.cookies.get("board_session")
    client.cookies.clear()
    client.cookies.set("board_session", token + "x")

    assert client.get("/posts").status_code == 401


def test_expired_session_is_rejected_and_removed(client):
    signup(client, "alice", "pw1")

    with SessionLocal() as session:
        session.execute(update(UserSession).values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)))
        session.commit()

    assert client.get("/posts").status_code == 401
    with SessionLocal() as session:
        assert session.scalars(select(UserSession)).all() == []


def test_board_page_redirects_to_login_without_session(client):
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_board_page_served_with_session(client):
    signup(client, "alice", "pw1")

    response = client.get("/", follow_redirects=False)

    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]


def test_long_password_must_match_beyond_72_bytes(client, make_client):
    signup(client, "alice", "a" * 72 + "RIGHT")
    client.post("/logout")

    wrong_tail = login(make_client(), "alice", "a" * 72 + "WRONG")
    right = login(make_client(), "alice", "a" * 72 + "RIGHT")

    assert wrong_tail.status_code == 401
    assert wrong_tail.json() == {"error": "Invalid username or password"}
    assert right.status_code == 200


def test_check_session_clears_cookie_that_no_longer_resolves(client):
    signup(client, "alice", "pw1")

    with SessionLocal() as session:
        session.execute(update(UserSession).values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)))
        session.commit()

    response = client.get("/check-session")

    assert response.json() == {"authenticated": False, "user": None}
    assert "board_session" in response.headers.get("set-cookie", "")
    assert "board_session" not in client.cookies


def test_check_session_without_cookie_sets_nothing(client):
    response = client.get("/check-session")

    assert response.json() == {"authenticated": False, "user": None}
    assert "set-cookie" not in response.headers
