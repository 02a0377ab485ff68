"""Tests for LoginTokenRepository and WebSessionRepository.

These tests require PostgreSQL (skipped when it is not running).
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from linklogin.repositories.login_token_repository import LoginTokenRepository
from linklogin.repositories.web_session_repository import WebSessionRepository
from linklogin.services.token_store import hash_token

_HASH = hash_token("plain-token")


async def _create(db, token_hash: str = _HASH, created_at: datetime | None = None):
    return await LoginTokenRepository.create(
        db,
        token_hash=token_hash,
        identity="alice",
        channel_address="42",
        created_at=created_at or datetime.now(UTC),
    )


class TestLoginTokenRepository:
    async def test_create_and_exists(self, db_session):
        await _create(db_session)

        assert await LoginTokenRepository.exists(db_session, token_hash=_HASH) is True

    async def test_duplicate_hash_raises(self, db_session):
        await _create(db_session)
        db_session.expunge_all()

        with pytest.raises(IntegrityError):
            await _create(db_session)

    async def test_take_returns_row_once(self, db_session):
        await _create(db_session)

        row = await LoginTokenRepository.take(db_session, token_hash=_HASH)
        again = await LoginTokenRepository.take(db_session, token_hash=_HASH)

        assert row is not None
        assert row.identity == "alice"
        assert row.channel_address == "42"
        assert again is None

    async def test_delete_created_before(self, db_session):
        now = datetime.now(UTC)
        await _create(db_session, hash_token("old"), now - timedelta(minutes=30))
        await _create(db_session, hash_token("new"), now)

        deleted = await LoginTokenRepository.delete_created_before(
            db_session, cutoff=now - timedelta(minutes=10)
        )

        assert deleted == 1
        assert (
            await LoginTokenRepository.exists(db_session, token_hash=hash_token("new"))
            is True
        )


class TestWebSessionRepository:
    async def test_get_active_respects_expiry(self, db_session):
        now = datetime.now(UTC)
        await WebSessionRepository.create(
            db_session, session_id="sid", identity="alice", expires_at=now
        )

        assert (
            await WebSessionRepository.get_active(
                db_session, session_id="sid", now=now - timedelta(seconds=1)
            )
            is not None
        )
        assert (
            await WebSessionRepository.get_active(db_session, session_id="sid", now=now)
            is None
        )

    async def test_delete_expired(self, db_session):
        now = datetime.now(UTC)
        await WebSessionRepository.create(
            db_session,
            session_id="old",
            identity="alice",
            expires_at=now - timedelta(hours=1),
        )
        await WebSessionRepository.create(
            db_session,
            session_id="new",
            identity="bob",
            expires_at=now + timedelta(hours=1),
        )

        assert await WebSessionRepository.delete_expired(db_session, now=now) == 1
