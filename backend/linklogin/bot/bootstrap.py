"""Bot client bootstrap.

Builds a TelegramClient and verifies the credential with ``getMe`` before
handing it out. Transient failures are retried with bounded exponential
backoff; a rejected token fails immediately.
"""

import logging

from linklogin.bot.client import TelegramClient
from linklogin.bot.errors import BotError
from linklogin.bot.retry import RetryConfig, with_retries
from linklogin.core.config import Settings

logger = logging.getLogger(__name__)


async def bootstrap_bot_client(config: Settings) -> TelegramClient:
    """Construct a verified bot client.

    Args:
        config: Application settings (token, API base, TLS, retry bounds).

    Returns:
        TelegramClient whose token was accepted by the Bot API.

    Raises:
        BotAuthenticationError: If the token is rejected.
        TransientError: If the Bot API stays unreachable after all retries.
    """
    client = TelegramClient(
        config.bot_token.get_secret_value(),
        api_base=config.telegram_api_base,
        verify_tls=config.telegram_verify_tls,
    )
    retry = RetryConfig(
        max_retries=config.bot_init_max_retries,
        base_delay_ms=config.bot_init_base_delay_ms,
        max_delay_ms=config.bot_init_max_delay_ms,
    )

    try:
        me = await with_retries(client.get_me, retry)
    except BotError:
        await client.close()
        raise

    logger.info("Connected to Telegram as @%s", me.username or me.id)
    return client
