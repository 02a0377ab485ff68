"""Tests for the browser pages.

GET /, GET /login, GET /profile, GET /logout against the in-memory store
and session gateway.
"""

from datetime import UTC, datetime, timedelta

from linklogin.core.config import settings
from linklogin.core.errors import INVALID_LOGIN_TOKEN_MSG

_LOGIN_URL = "/login"


async def _issue(token_store, value: str = "tok", identity: str = "alice", **kwargs):
    issued_at = kwargs.get("issued_at", datetime.now(UTC))
    await token_store.put(value, identity, "42", issued_at)
    return value


class TestIndexPage:
    async def test_anonymous_sees_instructions(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "/start" in response.text

    async def test_signed_in_sees_profile_link(self, client, token_store):
        token = await _issue(token_store)
        await client.get(_LOGIN_URL, params={"token": token})

        response = await client.get("/")

        assert 'href="/profile"' in response.text
        assert "alice" in response.text


class TestLogin:
    """GET /login redeems a token and starts a session."""

    async def test_valid_token_redirects_to_profile(self, client, token_store):
        token = await _issue(token_store)

        response = await client.get(_LOGIN_URL, params={"token": token})

        assert response.status_code == 302
        assert response.headers["location"] == "/profile"
        assert response.headers["referrer-policy"] == "no-referrer"
        assert settings.session_cookie_name in response.cookies

    async def test_session_cookie_flags(self, client, token_store):
        token = await _issue(token_store)

        response = await client.get(_LOGIN_URL, params={"token": token})

        set_cookie = response.headers["set-cookie"]
        assert "HttpOnly" in set_cookie
        assert "SameSite=lax" in set_cookie

    async def test_profile_after_login(self, client, token_store):
        token = await _issue(token_store, identity="bob")
        await client.get(_LOGIN_URL, params={"token": token})

        response = await client.get("/profile")

        assert response.status_code == 200
        assert "bob" in response.text

    async def test_token_is_single_use(self, client, token_store):
        token = await _issue(token_store)
        await client.get(_LOGIN_URL, params={"token": token})
        client.cookies.clear()

        response = await client.get(_LOGIN_URL, params={"token": token})

        assert response.status_code == 401
        assert INVALID_LOGIN_TOKEN_MSG in response.text

    async def test_missing_token(self, client):
        response = await client.get(_LOGIN_URL)

        assert response.status_code == 401
        assert INVALID_LOGIN_TOKEN_MSG in response.text

    async def test_empty_token(self, client):
        response = await client.get(_LOGIN_URL, params={"token": ""})

        assert response.status_code == 401

    async def test_unknown_token(self, client):
        response = await client.get(_LOGIN_URL, params={"token": "x" * 500})

        assert response.status_code == 401
        assert INVALID_LOGIN_TOKEN_MSG in response.text

    async def test_expired_token(self, client, token_store):
        token = await _issue(
            token_store, issued_at=datetime.now(UTC) - timedelta(minutes=11)
        )

        response = await client.get(_LOGIN_URL, params={"token": token})

        assert response.status_code == 401
        assert INVALID_LOGIN_TOKEN_MSG in response.text
        assert await token_store.contains(token) is False

    async def test_failed_login_sets_no_cookie(self, client):
        response = await client.get(_LOGIN_URL, params={"token": "nope"})

        assert "set-cookie" not in response.headers

    async def test_relogin_replaces_session(
        self, client, token_store, session_gateway
    ):
        first = await _issue(token_store, "t1", "alice")
        second = await _issue(token_store, "t2", "bob")
        await client.get(_LOGIN_URL, params={"token": first})
        old_cookie = client.cookies.get(settings.session_cookie_name)

        await client.get(_LOGIN_URL, params={"token": second})

        assert client.cookies.get(settings.session_cookie_name) != old_cookie
        response = await client.get("/profile")
        assert "bob" in response.text
        assert len(session_gateway._sessions) == 1


class TestProfile:
    async def test_anonymous_redirected_home(self, client):
        response = await client.get("/profile")

        assert response.status_code == 302
        assert response.headers["location"] == "/"

    async def test_forged_cookie_redirected_home(self, client):
        client.cookies.set(settings.session_cookie_name, "forged")

        response = await client.get("/profile")

        assert response.status_code == 302

    async def test_expired_session_redirected_home(
        self, client, token_store, session_gateway
    ):
        token = await _issue(token_store)
        await client.get(_LOGIN_URL, params={"token": token})
        await session_gateway.cleanup_expired(datetime.now(UTC) + timedelta(days=2))

        response = await client.get("/profile")

        assert response.status_code == 302


class TestLogout:
    async def test_logout_destroys_session(self, client, token_store):
        token = await _issue(token_store)
        await client.get(_LOGIN_URL, params={"token": token})
        cookie = client.cookies.get(settings.session_cookie_name)

        response = await client.get("/logout")

        assert response.status_code == 302
        assert response.headers["location"] == "/"
        # Replaying the old cookie no longer works
        client.cookies.set(settings.session_cookie_name, cookie)
        assert (await client.get("/profile")).status_code == 302

    async def test_logout_without_session(self, client):
        response = await client.get("/logout")

        assert response.status_code == 302
        assert "Max-Age=0" in response.headers["set-cookie"]
