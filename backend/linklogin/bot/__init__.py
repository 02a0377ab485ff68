"""Telegram bot transport.

Exports the Bot API client, update models and the bootstrap routine.
"""

from linklogin.bot.bootstrap import bootstrap_bot_client
from linklogin.bot.client import TelegramClient
from linklogin.bot.errors import (
    BotAuthenticationError,
    BotError,
    BotRequestError,
    TransientError,
)
from linklogin.bot.updates import StartCommand, Update, parse_start_command

__all__ = [
    "BotAuthenticationError",
    "BotError",
    "BotRequestError",
    "StartCommand",
    "TelegramClient",
    "TransientError",
    "Update",
    "bootstrap_bot_client",
    "parse_start_command",
]
