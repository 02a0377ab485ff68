"""Tests for the expiry sweeper lifecycle and passes."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

from linklogin.services.expiry_sweeper import (
    DEFAULT_INTERVAL_SECONDS,
    ExpirySweeper,
)

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class TestSweeperLifecycle:
    """Tests for ExpirySweeper start/stop."""

    async def test_start_sets_running(self, token_store, session_gateway):
        sweeper = ExpirySweeper(token_store, session_gateway)

        with patch.object(sweeper, "_run_loop", new_callable=AsyncMock):
            sweeper.start()
            assert sweeper.is_running is True
            await sweeper.stop()

    async def test_start_is_idempotent(self, token_store, session_gateway):
        sweeper = ExpirySweeper(token_store, session_gateway)

        with patch.object(sweeper, "_run_loop", new_callable=AsyncMock):
            sweeper.start()
            sweeper.start()  # Second call should be no-op
            assert sweeper.is_running is True
            await sweeper.stop()

        assert sweeper.is_running is False

    async def test_stop_without_start_is_safe(self, token_store, session_gateway):
        await ExpirySweeper(token_store, session_gateway).stop()

    def test_default_interval(self, token_store, session_gateway):
        sweeper = ExpirySweeper(token_store, session_gateway)
        assert sweeper._interval_seconds == DEFAULT_INTERVAL_SECONDS


class TestSweeperRunOnce:
    """Tests for ExpirySweeper.run_once()."""

    async def test_removes_expired_tokens_and_sessions(
        self, token_store, session_gateway
    ):
        await token_store.put("old", "alice", "1", _NOW - timedelta(minutes=30))
        await token_store.put("new", "bob", "2", _NOW)
        await session_gateway.create("alice", _NOW - timedelta(days=2))
        sweeper = ExpirySweeper(token_store, session_gateway, clock=lambda: _NOW)

        result = await sweeper.run_once()

        assert result.expired_tokens == 1
        assert result.expired_sessions == 1
        assert result.finished_at == _NOW
        assert await token_store.contains("new") is True

    async def test_nothing_to_remove(self, token_store, session_gateway):
        sweeper = ExpirySweeper(token_store, session_gateway, clock=lambda: _NOW)

        result = await sweeper.run_once()

        assert result.expired_tokens == 0
        assert result.expired_sessions == 0

    async def test_passes_clock_time_to_stores(self):
        token_store = AsyncMock()
        token_store.expire_sweep.return_value = 0
        session_gateway = AsyncMock()
        session_gateway.cleanup_expired.return_value = 0
        sweeper = ExpirySweeper(token_store, session_gateway, clock=lambda: _NOW)

        await sweeper.run_once()

        token_store.expire_sweep.assert_awaited_once_with(_NOW)
        session_gateway.cleanup_expired.assert_awaited_once_with(_NOW)
