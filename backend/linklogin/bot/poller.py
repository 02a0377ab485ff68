"""Long-polling update worker.

asyncio background task started from the FastAPI lifespan when
BOT_DELIVERY=polling. Pulls updates with getUpdates and hands each one to
login dispatch.
"""

import asyncio
import contextlib
import logging

from pydantic import ValidationError

from linklogin.bot.client import TelegramClient
from linklogin.bot.errors import BotAuthenticationError, TransientError
from linklogin.bot.retry import RetryConfig, backoff_delay
from linklogin.bot.updates import Update
from linklogin.services.login_dispatch import process_update
from linklogin.services.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)


class BotPoller:
    """Background worker that feeds Telegram updates into login dispatch.

    Lifecycle:
    - start() creates an asyncio task that runs the polling loop.
    - stop() cancels the task and waits for graceful shutdown.
    - run_once() fetches and processes one batch (for testing).

    Args:
        client: Verified bot client.
        issuer: Token issuer used for start commands.
        poll_timeout_seconds: Server-side long-poll timeout.
        retry: Backoff settings after transient failures.
    """

    def __init__(
        self,
        client: TelegramClient,
        issuer: TokenIssuer,
        *,
        poll_timeout_seconds: int = 30,
        retry: RetryConfig | None = None,
    ) -> None:
        self._client = client
        self._issuer = issuer
        self._poll_timeout_seconds = poll_timeout_seconds
        self._retry = retry or RetryConfig()
        self._offset: int | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._running and self._task is not None and not self._task.done()

    @property
    def offset(self) -> int | None:
        """Next update id to request."""
        return self._offset

    def start(self) -> None:
        """Start the polling loop. No-op if already running."""
        if self.is_running:
            logger.warning("Bot poller already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Bot poller started")

    async def stop(self) -> None:
        """Stop the polling loop and wait for it to finish."""
        self._running = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        logger.info("Bot poller stopped")

    async def run_once(self) -> int:
        """Fetch one batch of updates and process them.

        The offset advances past each update before it is handled, so an
        update that fails, or that does not validate, is not redelivered in
        a loop.

        Returns:
            Number of updates received.
        """
        items = await self._client.get_updates(
            self._offset, self._poll_timeout_seconds
        )
        for item in items:
            update_id = item.get("update_id") if isinstance(item, dict) else None
            if isinstance(update_id, int):
                self._offset = update_id + 1
            try:
                update = Update.model_validate(item)
            except ValidationError:
                logger.warning("Skipping malformed update %s", update_id)
                continue
            try:
                await process_update(update, self._issuer, self._client)
            except Exception:  # noqa: BLE001
                logger.exception("Error handling update %d", update.update_id)
        return len(items)

    async def _run_loop(self) -> None:
        """Background loop: run_once → repeat, backing off on failures."""
        failures = 0
        try:
            while self._running:
                try:
                    await self.run_once()
                    failures = 0
                except BotAuthenticationError:
                    logger.error("Bot token rejected; polling stopped")
                    self._running = False
                    return
                except TransientError as exc:
                    delay = exc.retry_after_seconds or backoff_delay(
                        min(failures, self._retry.max_retries), self._retry
                    )
                    failures += 1
                    logger.warning("Polling failed: %s. Retrying in %.2fs", exc, delay)
                    await asyncio.sleep(delay)
                except Exception:  # noqa: BLE001
                    failures += 1
                    logger.exception("Error in polling loop")
                    await asyncio.sleep(
                        backoff_delay(min(failures, self._retry.max_retries), self._retry)
                    )
        except asyncio.CancelledError:
            logger.debug("Polling loop cancelled")
            raise
