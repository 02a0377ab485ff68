"""Tests for login link issuance.

Covers URL building, duplicate retries, and the guarantee that a returned
token is present in the store.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from linklogin.core.errors import (
    DuplicateTokenError,
    StoreUnavailableError,
    TokenIssuanceError,
)
from linklogin.services.token_issuer import (
    TokenIssuer,
    build_login_url,
    generate_token_value,
)
from linklogin.services.token_store import InMemoryTokenStore

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
_BASE_URL = "https://example.com"


def _fixed_clock() -> datetime:
    return _NOW


def _sequence(*values: str):
    """Token factory returning the given values in order."""
    iterator = iter(values)
    return lambda: next(iterator)


class TestBuildLoginUrl:
    """Base URL normalization."""

    def test_appends_slash(self):
        assert build_login_url("https://example.com", "xyz") == (
            "https://example.com/login?token=xyz"
        )

    def test_keeps_single_slash(self):
        assert build_login_url("https://example.com/", "xyz") == (
            "https://example.com/login?token=xyz"
        )

    def test_collapses_trailing_slashes(self):
        assert build_login_url("https://example.com//", "xyz") == (
            "https://example.com/login?token=xyz"
        )

    def test_keeps_base_path(self):
        assert build_login_url("https://example.com/app", "xyz") == (
            "https://example.com/app/login?token=xyz"
        )

    def test_encodes_token(self):
        url = build_login_url(_BASE_URL, "a b/c")
        assert url == "https://example.com/login?token=a%20b%2Fc"


class TestGenerateTokenValue:
    def test_url_safe_and_long(self):
        value = generate_token_value()
        assert len(value) >= 43
        assert build_login_url(_BASE_URL, value).endswith(value)

    def test_values_differ(self):
        assert generate_token_value() != generate_token_value()


class TestIssue:
    """Tests for TokenIssuer.issue()."""

    async def test_issued_token_is_stored(self, token_store):
        issuer = TokenIssuer(token_store, _BASE_URL, clock=_fixed_clock)

        issued = await issuer.issue("alice", "42")

        assert await token_store.contains(issued.token) is True
        assert issued.url == f"https://example.com/login?token={issued.token}"

    async def test_expiry_matches_store_ttl(self):
        store = InMemoryTokenStore(timedelta(minutes=10))
        issuer = TokenIssuer(store, _BASE_URL, clock=_fixed_clock)

        issued = await issuer.issue("alice", "42")

        assert issued.issued_at == _NOW
        assert issued.expires_at == _NOW + timedelta(minutes=10)

    async def test_records_identity_and_channel(self, token_store):
        issuer = TokenIssuer(token_store, _BASE_URL, token_factory=_sequence("t1"))

        await issuer.issue("bob", "99")

        record = await token_store.take("t1")
        assert record is not None
        assert record.identity == "bob"
        assert record.channel_address == "99"

    async def test_retries_after_duplicate(self, token_store):
        await token_store.put("taken", "someone", "1", _NOW)
        issuer = TokenIssuer(
            token_store, _BASE_URL, token_factory=_sequence("taken", "fresh")
        )

        issued = await issuer.issue("alice", "42")

        assert issued.token == "fresh"
        assert await token_store.contains("fresh") is True

    async def test_gives_up_after_max_attempts(self):
        store = AsyncMock()
        store.put.side_effect = DuplicateTokenError()
        issuer = TokenIssuer(store, _BASE_URL, max_attempts=3)

        with pytest.raises(TokenIssuanceError):
            await issuer.issue("alice", "42")

        assert store.put.call_count == 3

    async def test_store_unavailable_is_not_retried(self):
        store = AsyncMock()
        store.put.side_effect = StoreUnavailableError()
        issuer = TokenIssuer(store, _BASE_URL)

        with pytest.raises(TokenIssuanceError):
            await issuer.issue("alice", "42")

        store.put.assert_called_once()
