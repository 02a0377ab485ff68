"""Login token storage.

One interface, two backends:
- InMemoryTokenStore: process-local dict guarded by a mutex. Lost on
  restart and not shared between processes.
- DatabaseTokenStore: ``login_tokens`` table. Survives restarts and is
  shared by every instance pointed at the same database.

Both honor the same contract: ``put`` rejects duplicates, ``take`` removes
and returns a record atomically regardless of expiry, ``expire_sweep``
drops records older than the TTL. Expiry itself is decided by the caller
at redemption time; the sweep only bounds storage growth.
"""

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linklogin.core.config import settings
from linklogin.core.database import async_session_factory
from linklogin.core.errors import DuplicateTokenError, StoreUnavailableError
from linklogin.repositories.login_token_repository import LoginTokenRepository

logger = logging.getLogger(__name__)

# Default validity window for a login link
DEFAULT_TOKEN_TTL = timedelta(minutes=10)


@dataclass(frozen=True)
class TokenRecord:
    """A stored login token.

    Attributes:
        value: Plain token value (the lookup key).
        identity: Requester display name.
        channel_address: Chat id the link was delivered to.
        issued_at: Timezone-aware issue timestamp.
    """

    value: str
    identity: str
    channel_address: str
    issued_at: datetime


def is_expired(issued_at: datetime, now: datetime, ttl: timedelta) -> bool:
    """Whether a token issued at ``issued_at`` is past its TTL at ``now``.

    A token is still valid at exactly ``issued_at + ttl``.
    """
    return now - issued_at > ttl


def hash_token(value: str) -> str:
    """SHA-256 hex digest used as the durable storage key."""
    return hashlib.sha256(value.encode()).hexdigest()


class TokenStore(ABC):
    """Storage contract for single-use login tokens."""

    def __init__(self, ttl: timedelta = DEFAULT_TOKEN_TTL) -> None:
        self.ttl = ttl

    @abstractmethod
    async def put(
        self,
        value: str,
        identity: str,
        channel_address: str,
        issued_at: datetime,
    ) -> TokenRecord:
        """Insert a new token.

        Raises:
            DuplicateTokenError: If ``value`` is already stored.
            StoreUnavailableError: If the backend cannot be reached.
        """

    @abstractmethod
    async def take(self, value: str) -> TokenRecord | None:
        """Atomically remove and return a token, expired or not.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """

    @abstractmethod
    async def contains(self, value: str) -> bool:
        """Whether ``value`` is currently stored. Does not consume it."""

    @abstractmethod
    async def expire_sweep(self, now: datetime) -> int:
        """Remove every token past its TTL at ``now``.

        Returns:
            Number of tokens removed.
        """


class InMemoryTokenStore(TokenStore):
    """Process-local token store.

    Every operation runs its whole read-modify-write under one lock, so a
    sweep racing a redemption, or two redemptions of the same value, can
    never both observe the record.
    """

    def __init__(self, ttl: timedelta = DEFAULT_TOKEN_TTL) -> None:
        super().__init__(ttl)
        self._records: dict[str, TokenRecord] = {}
        self._lock = threading.Lock()

    async def put(
        self,
        value: str,
        identity: str,
        channel_address: str,
        issued_at: datetime,
    ) -> TokenRecord:
        record = TokenRecord(
            value=value,
            identity=identity,
            channel_address=channel_address,
            issued_at=issued_at,
        )
        with self._lock:
            if value in self._records:
                raise DuplicateTokenError()
            self._records[value] = record
        return record

    async def take(self, value: str) -> TokenRecord | None:
        with self._lock:
            return self._records.pop(value, None)

    async def contains(self, value: str) -> bool:
        with self._lock:
            return value in self._records

    async def expire_sweep(self, now: datetime) -> int:
        with self._lock:
            expired = [
                value
                for value, record in self._records.items()
                if is_expired(record.issued_at, now, self.ttl)
            ]
            for value in expired:
                del self._records[value]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Drop all tokens (for testing)."""
        with self._lock:
            self._records.clear()


class DatabaseTokenStore(TokenStore):
    """Token store backed by the ``login_tokens`` table.

    Each operation uses its own short transaction. Only token hashes are
    persisted; the plain value is re-attached to returned records.

    Args:
        session_factory: Async session factory for DB access.
        ttl: Token validity window.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl: timedelta = DEFAULT_TOKEN_TTL,
    ) -> None:
        super().__init__(ttl)
        self._session_factory = session_factory

    async def put(
        self,
        value: str,
        identity: str,
        channel_address: str,
        issued_at: datetime,
    ) -> TokenRecord:
        try:
            async with self._session_factory() as db:
                await LoginTokenRepository.create(
                    db,
                    token_hash=hash_token(value),
                    identity=identity,
                    channel_address=channel_address,
                    created_at=issued_at,
                )
                await db.commit()
        except IntegrityError as exc:
            raise DuplicateTokenError() from exc
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Login token insert failed for %s: %s", identity, exc)
            raise StoreUnavailableError() from exc

        return TokenRecord(
            value=value,
            identity=identity,
            channel_address=channel_address,
            issued_at=issued_at,
        )

    async def take(self, value: str) -> TokenRecord | None:
        try:
            async with self._session_factory() as db:
                row = await LoginTokenRepository.take(
                    db, token_hash=hash_token(value)
                )
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Login token take failed: %s", exc)
            raise StoreUnavailableError() from exc

        if row is None:
            return None
        return TokenRecord(
            value=value,
            identity=row.identity,
            channel_address=row.channel_address,
            issued_at=row.created_at,
        )

    async def contains(self, value: str) -> bool:
        try:
            async with self._session_factory() as db:
                return await LoginTokenRepository.exists(
                    db, token_hash=hash_token(value)
                )
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Login token lookup failed: %s", exc)
            raise StoreUnavailableError() from exc

    async def expire_sweep(self, now: datetime) -> int:
        try:
            async with self._session_factory() as db:
                deleted = await LoginTokenRepository.delete_created_before(
                    db, cutoff=now - self.ttl
                )
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Login token sweep failed: %s", exc)
            raise StoreUnavailableError() from exc
        return deleted


# Singleton instance for the application
_token_store: TokenStore | None = None


def get_token_store() -> TokenStore:
    """Get the singleton token store for the configured backend.

    Returns:
        The TokenStore singleton.
    """
    global _token_store
    if _token_store is None:
        ttl = timedelta(minutes=settings.token_ttl_minutes)
        if settings.storage_backend == "memory":
            _token_store = InMemoryTokenStore(ttl)
        else:
            _token_store = DatabaseTokenStore(async_session_factory, ttl)
    return _token_store


def reset_token_store() -> None:
    """Reset the token store singleton (for testing)."""
    global _token_store
    if isinstance(_token_store, InMemoryTokenStore):
        _token_store.clear()
    _token_store = None
