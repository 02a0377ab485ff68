"""Start-command handling: issue a login link and send it back.

Shared by the polling worker and the webhook endpoint. An issuance
failure produces an apology message, never a link.
"""

import logging
from typing import Protocol

from linklogin.bot.errors import BotError
from linklogin.bot.updates import StartCommand, Update, parse_start_command
from linklogin.core.errors import TokenIssuanceError
from linklogin.services.token_issuer import TokenIssuer

logger = logging.getLogger(__name__)

LOGIN_LINK_MESSAGE = (
    "🔑 Your personal login link: {url}\n\nThe link is valid for {minutes} minutes."
)
ISSUANCE_FAILED_MESSAGE = "⚠️ Could not generate a login link. Please try again later."


class NotificationChannel(Protocol):
    """Anything that can deliver a text message to a chat address."""

    async def send_message(self, chat_id: str, text: str) -> None: ...


async def handle_start_command(
    command: StartCommand,
    issuer: TokenIssuer,
    channel: NotificationChannel,
) -> bool:
    """Issue a login link for a start command and deliver it.

    Args:
        command: Requester identity and chat address.
        issuer: Token issuer.
        channel: Outbound message transport.

    Returns:
        True if a login link was sent, False if an apology was sent or
        delivery failed.
    """
    try:
        issued = await issuer.issue(command.identity, command.channel_address)
    except TokenIssuanceError as exc:
        logger.warning("Login link not issued for %s: %s", command.identity, exc)
        text = ISSUANCE_FAILED_MESSAGE
        link_sent = False
    else:
        minutes = int((issued.expires_at - issued.issued_at).total_seconds() // 60)
        text = LOGIN_LINK_MESSAGE.format(url=issued.url, minutes=minutes)
        link_sent = True

    try:
        await channel.send_message(command.channel_address, text)
    except BotError:
        logger.warning(
            "Failed to deliver message to chat %s",
            command.channel_address,
            exc_info=True,
        )
        return False
    return link_sent


async def process_update(
    update: Update,
    issuer: TokenIssuer,
    channel: NotificationChannel,
) -> None:
    """Handle one bot update; anything other than /start is ignored."""
    command = parse_start_command(update)
    if command is None:
        return
    await handle_start_command(command, issuer, channel)
