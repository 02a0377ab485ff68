"""Repository for LoginToken table operations.

Single-use login tokens stored as hashed values with a creation timestamp.
Lookup and deletion are one statement so a token can be consumed only once.
"""

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from linklogin.models.login_token import LoginToken


class LoginTokenRepository:
    """Stateless repository for LoginToken table operations.

    All methods are static; no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        token_hash: str,
        identity: str,
        channel_address: str,
        created_at: datetime,
    ) -> LoginToken:
        """Store a new login token.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.
            identity: Requester display name.
            channel_address: Chat id the link is sent to.
            created_at: Issue timestamp.

        Returns:
            Created LoginToken.

        Raises:
            sqlalchemy.exc.IntegrityError: If the hash already exists.
        """
        token = LoginToken(
            token_hash=token_hash,
            identity=identity,
            channel_address=channel_address,
            created_at=created_at,
        )
        db.add(token)
        await db.flush()
        return token

    @staticmethod
    async def take(db: AsyncSession, *, token_hash: str) -> Row | None:
        """Delete a token and return its columns in one statement.

        ``DELETE ... RETURNING`` runs as a single unit under the database's
        row locking, so of two concurrent callers only one gets the row.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the plain token.

        Returns:
            Row with identity, channel_address and created_at, or None.
        """
        stmt = (
            delete(LoginToken)
            .where(LoginToken.token_hash == token_hash)
            .returning(
                LoginToken.identity,
                LoginToken.channel_address,
                LoginToken.created_at,
            )
        )
        result = await db.execute(stmt)
        return result.one_or_none()

    @staticmethod
    async def exists(db: AsyncSession, *, token_hash: str) -> bool:
        """Check whether a token is stored, without consuming it."""
        stmt = select(func.count()).where(LoginToken.token_hash == token_hash)
        result = await db.execute(stmt)
        return bool(result.scalar_one())

    @staticmethod
    async def delete_created_before(db: AsyncSession, *, cutoff: datetime) -> int:
        """Delete all tokens issued before ``cutoff`` (periodic cleanup).

        Args:
            db: Async database session.
            cutoff: Tokens with created_at strictly before this are removed.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(LoginToken).where(LoginToken.created_at < cutoff)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
