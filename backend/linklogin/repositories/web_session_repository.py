"""Repository for WebSession table operations."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from linklogin.models.web_session import WebSession


class WebSessionRepository:
    """Stateless repository for WebSession table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        session_id: str,
        identity: str,
        expires_at: datetime,
    ) -> WebSession:
        """Store a new authenticated session."""
        web_session = WebSession(
            id=session_id,
            identity=identity,
            authenticated=True,
            expires_at=expires_at,
        )
        db.add(web_session)
        await db.flush()
        return web_session

    @staticmethod
    async def get_active(
        db: AsyncSession,
        *,
        session_id: str,
        now: datetime,
    ) -> WebSession | None:
        """Look up a session that has not yet expired."""
        stmt = select(WebSession).where(
            WebSession.id == session_id,
            WebSession.expires_at > now,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, *, session_id: str) -> None:
        """Delete a session (logout)."""
        stmt = delete(WebSession).where(WebSession.id == session_id)
        await db.execute(stmt)

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all expired sessions (periodic cleanup).

        Returns:
            Number of deleted rows.
        """
        stmt = delete(WebSession).where(WebSession.expires_at <= now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
