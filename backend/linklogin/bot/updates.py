"""Telegram update models and start-command parsing.

Only the fields the login flow reads are modelled; everything else in the
Bot API payload is ignored.
"""

import re
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

# "/start", "/start@SomeBot", "/start payload"
_START_COMMAND = re.compile(r"^/start(?:@\w+)?(?:\s|$)")


class TelegramUser(BaseModel):
    """Message sender."""

    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    username: str | None = None
    first_name: str | None = None


class Chat(BaseModel):
    """Chat a message was sent in."""

    model_config = ConfigDict(extra="ignore")

    id: int


class Message(BaseModel):
    """Incoming chat message."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    chat: Chat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None


class Update(BaseModel):
    """One entry from getUpdates or a webhook delivery."""

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Message | None = None


@dataclass(frozen=True)
class StartCommand:
    """A login request extracted from a /start message.

    Attributes:
        identity: Requester display name.
        channel_address: Chat id to reply to.
    """

    identity: str
    channel_address: str


def _display_name(user: TelegramUser) -> str:
    """Username, else first name, else the numeric user id."""
    if user.username:
        return user.username
    if user.first_name:
        return user.first_name
    return str(user.id)


def parse_start_command(update: Update) -> StartCommand | None:
    """Extract a start command from an update.

    Returns:
        StartCommand, or None for any other kind of update.
    """
    message = update.message
    if message is None or message.text is None or message.from_user is None:
        return None
    if message.from_user.is_bot:
        return None
    if not _START_COMMAND.match(message.text):
        return None
    return StartCommand(
        identity=_display_name(message.from_user),
        channel_address=str(message.chat.id),
    )
