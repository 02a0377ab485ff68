"""Login token model - one-time links sent by the bot.

Single-use and time-limited. Keyed by the SHA-256 hash of the token value;
the plain value only ever exists in the chat message and the login URL.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from linklogin.models.base import Base


class LoginToken(Base):
    """One-time login token issued in response to a bot start command.

    Attributes:
        token_hash: SHA-256 hex digest of the plain token value.
        identity: Requester's display name (carried into the session).
        channel_address: Chat id the link was delivered to.
        created_at: Issue timestamp; expiry is computed from it.
    """

    __tablename__ = "login_tokens"
    __table_args__ = (Index("idx_login_tokens_created_at", "created_at"),)

    token_hash: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    identity: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    channel_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
