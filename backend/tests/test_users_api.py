from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.models.user import User
from app.utils import jwt_util


def _signup(client: TestClient, email="kim@example.com", password="pw-1234", nickname="kim"):
    response = client.post(
        "/api/users/signup",
        json={"email": email, "password": password, "nickname": nickname},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def _auth(tokens) -> dict:
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


def _user_id(tokens) -> int:
    return jwt.decode(
        tokens["accessToken"], jwt_util.JWT_SECRET, algorithms=[jwt_util.JWT_ALGORITHM]
    )["id"]


def _expired_access_token(user_id: int) -> str:
    past = datetime.now(timezone.utc) - timedelta(hours=3)
    return jwt.encode(
        {"id": user_id, "iat": past, "exp": past + timedelta(minutes=1)},
        jwt_util.JWT_SECRET,
        algorithm=jwt_util.JWT_ALGORITHM,
    )


def test_signup_then_login(client: TestClient):
    """Signing up returns tokens, and the same credentials log in"""
    tokens = _signup(client)
    assert tokens["accessToken"]
    assert tokens["refreshToken"]

    response = client.post("/api/users/login", json={"email": "kim@example.com", "password": "pw-1234"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == 200
    assert body["success"] is True
    assert set(body["data"]) == {"accessToken", "refreshToken"}


def test_login_wrong_password(client: TestClient):
    _signup(client)

    response = client.post("/api/users/login", json={"email": "kim@example.com", "password": "bad"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_signup_validation(client: TestClient):
    """Blank email or nickname is rejected before reaching the service"""
    response = client.post(
        "/api/users/signup",
        json={"email": "  ", "password": "pw", "nickname": "kim"},
    )
    assert response.status_code == 422

    response = client.post(
        "/api/users/signup",
        json={"email": "kim@example.com", "password": "pw", "nickname": ""},
    )
    assert response.status_code == 422


def test_signup_duplicate_nickname(client: TestClient):
    _signup(client)

    response = client.post(
        "/api/users/signup",
        json={"email": "lee@example.com", "password": "pw", "nickname": "kim"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Nickname already exists"


def test_me_requires_token(client: TestClient):
    assert client.get("/api/users/me").status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Bearer junk"}).status_code == 401


def test_get_me_and_other_user(client: TestClient):
    kim = _signup(client)
    lee = _signup(client, email="lee@example.com", nickname="lee")

    response = client.get("/api/users/me", headers=_auth(kim))
    assert response.status_code == 200
    me = response.json()["data"]
    assert me["nickname"] == "kim"
    assert "password" not in me

    response = client.get(f"/api/users/{_user_id(lee)}", headers=_auth(kim))
    assert response.status_code == 200
    assert response.json()["data"]["nickname"] == "lee"


def test_get_missing_user_is_no_content(client: TestClient):
    kim = _signup(client)

    response = client.get("/api/users/9999", headers=_auth(kim))

    assert response.status_code == 204
    assert response.content == b""


def test_edit_me(client: TestClient):
    kim = _signup(client)

    response = client.patch("/api/users/me", json={"mbti": "infj"}, headers=_auth(kim))
    assert response.status_code == 200
    assert "data" not in response.json()

    me = client.get("/api/users/me", headers=_auth(kim)).json()["data"]
    assert me["mbti"] == "INFJ"
    assert me["nickname"] == "kim"

    # Same value again: nothing to change
    response = client.patch("/api/users/me", json={"mbti": "INFJ"}, headers=_auth(kim))
    assert response.status_code == 400


def test_edit_me_nickname_is_trimmed_and_not_blank(client: TestClient):
    kim = _signup(client)

    response = client.patch("/api/users/me", json={"nickname": "   "}, headers=_auth(kim))
    assert response.status_code == 422

    response = client.patch("/api/users/me", json={"nickname": "  park  "}, headers=_auth(kim))
    assert response.status_code == 200
    me = client.get("/api/users/me", headers=_auth(kim)).json()["data"]
    assert me["nickname"] == "park"


def test_edit_me_empty_body(client: TestClient):
    kim = _signup(client)

    response = client.patch("/api/users/me", json={}, headers=_auth(kim))

    assert response.status_code == 400


def test_edit_password_then_login(client: TestClient):
    kim = _signup(client)

    response = client.patch("/api/users/me", json={"password": "new-pass"}, headers=_auth(kim))
    assert response.status_code == 200

    old = client.post("/api/users/login", json={"email": "kim@example.com", "password": "pw-1234"})
    new = client.post("/api/users/login", json={"email": "kim@example.com", "password": "new-pass"})
    assert old.status_code == 400
    assert new.status_code == 200


def test_logout_twice(client: TestClient, cache):
    kim = _signup(client)
    assert len(cache.store) == 1

    first = client.post("/api/users/logout", headers=_auth(kim))
    second = client.post("/api/users/logout", headers=_auth(kim))

    assert first.status_code == 200
    assert second.status_code == 200
    assert cache.store == {}


def test_token_refresh_unnecessary_while_access_valid(client: TestClient):
    kim = _signup(client)

    response = client.post(
        "/api/users/token",
        headers={**_auth(kim), "Refresh": kim["refreshToken"]},
    )

    assert response.status_code == 400


def test_token_refresh_after_expiry(client: TestClient, session: Session):
    kim = _signup(client)
    expired = _expired_access_token(_user_id(kim))

    # Expired access token is refused by protected routes
    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"

    response = client.post(
        "/api/users/token",
        headers={"Authorization": f"Bearer {expired}", "Refresh": kim["refreshToken"]},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["refreshToken"] == kim["refreshToken"]

    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert response.status_code == 200


def test_token_refresh_after_logout_unauthorized(client: TestClient):
    kim = _signup(client)
    client.post("/api/users/logout", headers=_auth(kim))
    expired = _expired_access_token(_user_id(kim))

    response = client.post(
        "/api/users/token",
        headers={"Authorization": f"Bearer {expired}", "Refresh": kim["refreshToken"]},
    )

    assert response.status_code == 401


def test_delete_me_is_soft(client: TestClient, session: Session, cache):
    kim = _signup(client)
    me = client.get("/api/users/me", headers=_auth(kim)).json()["data"]

    response = client.delete("/api/users/me", headers=_auth(kim))
    assert response.status_code == 200
    assert response.json()["data"]["deleted"]["id"] == me["id"]
    assert cache.store == {}

    # Token of a deleted account no longer authenticates
    assert client.get("/api/users/me", headers=_auth(kim)).status_code == 401

    # Row still exists
    raw = session.get(User, me["id"])
    assert raw is not None
    assert raw.deleted_at is not None


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
