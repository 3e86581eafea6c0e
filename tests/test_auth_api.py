import re

import pytest

from tests.conftest import PASSWORD, random_email


def register(client, email=None, password=PASSWORD, name="Ada Lovelace"):
    return client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email or random_email(), "password": password},
    )


def login(client, email, password=PASSWORD, **extra):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password, **extra})


def refresh_cookie(response):
    for header in response.headers.getlist("Set-Cookie"):
        if header.startswith("refresh_token="):
            return header
    return None


def cookie_value(header):
    return header.split(";", 1)[0].split("=", 1)[1]


@pytest.fixture
def account(client):
    email = random_email()
    assert register(client, email).status_code == 201
    return email


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["status"] == "ok"


def test_register_returns_summary_without_password(client):
    email = random_email()
    r = register(client, email)

    assert r.status_code == 201
    data = r.get_json()["data"]
    assert set(data) == {"id", "name", "email", "created_at"}
    assert data["email"] == email


def test_register_duplicate_email_conflicts(client, account):
    r = register(client, account)

    assert r.status_code == 409
    assert r.get_json()["error"] == "EMAIL_TAKEN"


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Ada", "email": "not-an-email", "password": PASSWORD},
        {"name": "Ada", "email": "ada@example.com", "password": "short"},
        {"name": "A", "email": "ada@example.com", "password": PASSWORD},
        {"email": "ada@example.com", "password": PASSWORD},
    ],
)
def test_register_validation(client, payload):
    r = client.post("/api/v1/auth/register", json=payload)

    assert r.status_code == 422
    assert r.get_json()["error"] == "VALIDATION_ERROR"


def test_login_sets_refresh_cookie(client, account):
    r = login(client, account)

    assert r.status_code == 200
    body = r.get_json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 900
    assert "refresh_token" not in body

    cookie = refresh_cookie(r)
    assert "HttpOnly" in cookie
    assert "SameSite=Lax" in cookie
    assert "Path=/" in cookie
    assert "Max-Age=604800" in cookie
    assert "Secure" not in cookie


def test_login_remember_me_uses_default_ttl(client, account):
    r = login(client, account, rememberMe=True)

    assert "Max-Age=2592000" in refresh_cookie(r)


def test_login_errors_are_byte_identical(client, account):
    wrong_password = login(client, account, "WrongPass1")
    unknown_email = login(client, "nobody@example.com")

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.data == unknown_email.data
    assert wrong_password.get_json()["error"] == "INVALID_CREDENTIALS"


def test_me_with_access_token(client, account):
    token = login(client, account).get_json()["access_token"]

    r = client.get("/api/v1/me", headers={"Authorization": f"bearer {token}"})

    assert r.status_code == 200
    assert r.get_json()["data"]["email"] == account


@pytest.mark.parametrize("header", [None, "Basic abc", "Bearer ", "Bearer not-a-token"])
def test_me_unauthorized(client, header):
    headers = {"Authorization": header} if header else {}

    r = client.get("/api/v1/me", headers=headers)

    assert r.status_code == 401
    assert r.get_json() == {"error": "UNAUTHORIZED", "message": "Unauthorized", "status": 401}


def test_refresh_rotates_cookie_once(app, client, account):
    first = cookie_value(refresh_cookie(login(client, account)))

    r = client.post("/api/v1/auth/refresh")
    assert r.status_code == 200
    second = cookie_value(refresh_cookie(r))
    assert second != first
    assert client.get("/api/v1/me", headers={"Authorization": f"Bearer {r.get_json()['access_token']}"}).status_code == 200

    replay = app.test_client(use_cookies=False).post(
        "/api/v1/auth/refresh", headers={"Cookie": f"refresh_token={first}"}
    )
    assert replay.status_code == 401
    assert replay.get_json()["error"] == "INVALID_REFRESH_TOKEN"
    assert "Max-Age=0" in refresh_cookie(replay)


def test_refresh_accepts_json_body(app, client, account):
    secret = cookie_value(refresh_cookie(login(client, account)))

    r = app.test_client(use_cookies=False).post("/api/v1/auth/refresh", json={"refresh_token": secret})

    assert r.status_code == 200
    assert refresh_cookie(r) is not None


def test_refresh_without_token(app):
    r = app.test_client(use_cookies=False).post("/api/v1/auth/refresh")

    assert r.status_code == 401
    assert r.get_json()["error"] == "INVALID_REFRESH_TOKEN"


def test_logout_clears_cookie_and_revokes(app, client, account):
    secret = cookie_value(refresh_cookie(login(client, account)))

    r = client.post("/api/v1/auth/logout")
    assert r.status_code == 204
    assert "Max-Age=0" in refresh_cookie(r)

    again = client.post("/api/v1/auth/logout")
    assert again.status_code == 204

    replay = app.test_client(use_cookies=False).post(
        "/api/v1/auth/refresh", headers={"Cookie": f"refresh_token={secret}"}
    )
    assert replay.status_code == 401


def test_logout_with_unknown_token(app):
    r = app.test_client(use_cookies=False).post("/api/v1/auth/logout", json={"refresh_token": "never-issued"})

    assert r.status_code == 204


def test_change_password_ends_sessions(app, client, account):
    r = login(client, account)
    secret = cookie_value(refresh_cookie(r))
    headers = {"Authorization": f"Bearer {r.get_json()['access_token']}"}

    changed = client.post(
        "/api/v1/auth/password",
        json={"current_password": PASSWORD, "new_password": "BrandNewPass1"},
        headers=headers,
    )
    assert changed.status_code == 200
    assert changed.get_json() == {"revoked_sessions": 1}

    replay = app.test_client(use_cookies=False).post(
        "/api/v1/auth/refresh", headers={"Cookie": f"refresh_token={secret}"}
    )
    assert replay.status_code == 401
    assert login(client, account, "BrandNewPass1").status_code == 200


def test_change_password_requires_bearer(client):
    r = client.post(
        "/api/v1/auth/password", json={"current_password": PASSWORD, "new_password": "BrandNewPass1"}
    )
    assert r.status_code == 401


def max_age(header):
    return int(re.search(r"Max-Age=(\d+)", header).group(1))


def test_auth_routes_are_mounted_under_auth(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}

    for name in ("register", "login", "refresh", "logout", "password"):
        assert f"/api/v1/auth/{name}" in rules
        assert f"/api/v1/{name}" not in rules
    assert "/api/v1/me" in rules


def test_refresh_cookie_keeps_remaining_lifetime(client, account):
    first = refresh_cookie(login(client, account))

    rotated = refresh_cookie(client.post("/api/v1/auth/refresh"))

    assert max_age(first) == 7 * 24 * 3600
    # the rotated cookie counts down from the first grant, not a fresh 30 days
    assert abs(max_age(rotated) - max_age(first)) <= 5


UNENCODABLE_BODY = '{"refresh_token": "\\ud800abc"}'


def test_refresh_with_unencodable_secret_is_rejected(app):
    r = app.test_client(use_cookies=False).post(
        "/api/v1/auth/refresh", data=UNENCODABLE_BODY, content_type="application/json"
    )

    assert r.status_code == 401
    assert r.get_json() == {"error": "INVALID_REFRESH_TOKEN", "message": "Invalid refresh token", "status": 401}
    assert "Max-Age=0" in refresh_cookie(r)


def test_logout_with_unencodable_secret(app):
    r = app.test_client(use_cookies=False).post(
        "/api/v1/auth/logout", data=UNENCODABLE_BODY, content_type="application/json"
    )

    assert r.status_code == 204
