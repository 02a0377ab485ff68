"""Browser session model.

Server-side half of the cookie-backed session. The cookie carries only a
signed reference to ``id``; deleting the row logs the browser out.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from linklogin.models.base import Base


class WebSession(Base):
    """Authenticated browser session.

    Attributes:
        id: Opaque random session identifier.
        identity: Display name of the signed-in user.
        authenticated: Whether the session passed a login link.
        expires_at: Session expiry timestamp.
        created_at: When the session was created.
    """

    __tablename__ = "web_sessions"
    __table_args__ = (Index("idx_web_sessions_expires_at", "expires_at"),)

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    identity: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    authenticated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default="false",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
