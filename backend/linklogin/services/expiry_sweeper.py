"""Expired token and session sweeper.

asyncio background task started from the FastAPI lifespan. Redemption
re-checks the TTL on its own, so the sweep only keeps storage from growing
with links nobody clicked.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from linklogin.services.session_gateway import SessionGateway
from linklogin.services.token_store import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class SweepResult:
    """Counts from one sweep pass."""

    expired_tokens: int
    expired_sessions: int
    finished_at: datetime


class ExpirySweeper:
    """Background worker that periodically removes expired tokens and sessions.

    Lifecycle:
    - start() creates an asyncio task that runs the sweep loop.
    - stop() cancels the task and waits for graceful shutdown.
    - run_once() executes a single pass (for testing).

    Args:
        token_store: Store whose expired tokens are removed.
        session_gateway: Gateway whose expired sessions are removed.
        interval_seconds: Seconds between passes.
        clock: Source of the current time.
    """

    def __init__(
        self,
        token_store: TokenStore,
        session_gateway: SessionGateway,
        *,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._token_store = token_store
        self._session_gateway = session_gateway
        self._interval_seconds = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._running and self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background sweep loop.

        No-op if already running. Must be called from a running event loop.
        """
        if self.is_running:
            logger.warning("Expiry sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Expiry sweeper started (interval=%ds)", self._interval_seconds)

    async def stop(self) -> None:
        """Stop the background loop and wait for it to finish."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def run_once(self) -> SweepResult:
        """Execute a single sweep pass."""
        now = self._clock()
        expired_tokens = await self._token_store.expire_sweep(now)
        expired_sessions = await self._session_gateway.cleanup_expired(now)
        return SweepResult(
            expired_tokens=expired_tokens,
            expired_sessions=expired_sessions,
            finished_at=self._clock(),
        )

    async def _run_loop(self) -> None:
        """Background loop: run_once → sleep → repeat."""
        try:
            while self._running:
                try:
                    result = await self.run_once()
                    if result.expired_tokens or result.expired_sessions:
                        logger.info(
                            "Sweep removed %d tokens, %d sessions",
                            result.expired_tokens,
                            result.expired_sessions,
                        )
                except Exception:  # noqa: BLE001
                    logger.exception("Error in expiry sweep")
                await asyncio.sleep(self._interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Sweep loop cancelled")
            raise
