"""Server-side browser sessions.

The gateway creates, reads and destroys sessions for authenticated
identities. The web layer only ever sees a session id (wrapped in a signed
cookie) and the SessionInfo returned here.
"""

import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linklogin.core.auth import session_lifetime
from linklogin.core.config import settings
from linklogin.core.database import async_session_factory
from linklogin.core.errors import SessionGatewayError
from linklogin.repositories.web_session_repository import WebSessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionInfo:
    """Snapshot of a browser session.

    Attributes:
        id: Opaque session id.
        identity: Signed-in display name.
        authenticated: Whether a login link was redeemed for this session.
        expires_at: When the session ends.
    """

    id: str
    identity: str
    authenticated: bool
    expires_at: datetime


def new_session_id() -> str:
    """Random session id (256 bits)."""
    return secrets.token_urlsafe(32)


class SessionGateway(ABC):
    """Create/read/destroy contract for browser sessions."""

    def __init__(self, lifetime: timedelta) -> None:
        self.lifetime = lifetime

    @abstractmethod
    async def create(self, identity: str, now: datetime) -> SessionInfo:
        """Create an authenticated session for ``identity``."""

    @abstractmethod
    async def get(self, session_id: str, now: datetime) -> SessionInfo | None:
        """Return the session if it exists and has not expired."""

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """Delete a session. Unknown ids are ignored."""

    @abstractmethod
    async def cleanup_expired(self, now: datetime) -> int:
        """Delete expired sessions and return how many were removed."""


class InMemorySessionGateway(SessionGateway):
    """Process-local sessions, paired with the in-memory token store."""

    def __init__(self, lifetime: timedelta) -> None:
        super().__init__(lifetime)
        self._sessions: dict[str, SessionInfo] = {}
        self._lock = threading.Lock()

    async def create(self, identity: str, now: datetime) -> SessionInfo:
        info = SessionInfo(
            id=new_session_id(),
            identity=identity,
            authenticated=True,
            expires_at=now + self.lifetime,
        )
        with self._lock:
            self._sessions[info.id] = info
        return info

    async def get(self, session_id: str, now: datetime) -> SessionInfo | None:
        with self._lock:
            info = self._sessions.get(session_id)
            if info is not None and info.expires_at <= now:
                del self._sessions[session_id]
                return None
        return info

    async def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    async def cleanup_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [
                sid for sid, info in self._sessions.items() if info.expires_at <= now
            ]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def clear(self) -> None:
        """Drop all sessions (for testing)."""
        with self._lock:
            self._sessions.clear()


class DatabaseSessionGateway(SessionGateway):
    """Sessions persisted in the ``web_sessions`` table.

    Args:
        session_factory: Async session factory for DB access.
        lifetime: Session lifetime.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lifetime: timedelta,
    ) -> None:
        super().__init__(lifetime)
        self._session_factory = session_factory

    async def create(self, identity: str, now: datetime) -> SessionInfo:
        session_id = new_session_id()
        expires_at = now + self.lifetime
        try:
            async with self._session_factory() as db:
                await WebSessionRepository.create(
                    db,
                    session_id=session_id,
                    identity=identity,
                    expires_at=expires_at,
                )
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Session create failed for %s: %s", identity, exc)
            raise SessionGatewayError() from exc
        return SessionInfo(
            id=session_id,
            identity=identity,
            authenticated=True,
            expires_at=expires_at,
        )

    async def get(self, session_id: str, now: datetime) -> SessionInfo | None:
        try:
            async with self._session_factory() as db:
                row = await WebSessionRepository.get_active(
                    db, session_id=session_id, now=now
                )
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Session lookup failed: %s", exc)
            raise SessionGatewayError() from exc

        if row is None:
            return None
        return SessionInfo(
            id=row.id,
            identity=row.identity,
            authenticated=row.authenticated,
            expires_at=row.expires_at,
        )

    async def destroy(self, session_id: str) -> None:
        try:
            async with self._session_factory() as db:
                await WebSessionRepository.delete(db, session_id=session_id)
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Session destroy failed: %s", exc)
            raise SessionGatewayError() from exc

    async def cleanup_expired(self, now: datetime) -> int:
        try:
            async with self._session_factory() as db:
                deleted = await WebSessionRepository.delete_expired(db, now=now)
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Session cleanup failed: %s", exc)
            raise SessionGatewayError() from exc
        return deleted


# Singleton instance for the application
_session_gateway: SessionGateway | None = None


def get_session_gateway() -> SessionGateway:
    """Get the singleton session gateway for the configured backend."""
    global _session_gateway
    if _session_gateway is None:
        if settings.storage_backend == "memory":
            _session_gateway = InMemorySessionGateway(session_lifetime())
        else:
            _session_gateway = DatabaseSessionGateway(
                async_session_factory, session_lifetime()
            )
    return _session_gateway


def reset_session_gateway() -> None:
    """Reset the session gateway singleton (for testing)."""
    global _session_gateway
    if isinstance(_session_gateway, InMemorySessionGateway):
        _session_gateway.clear()
    _session_gateway = None
