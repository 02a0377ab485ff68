"""Async database engine and session factory.

Configures the SQLAlchemy async engine with connection pooling. Stores
open short-lived sessions from ``async_session_factory`` per operation.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from linklogin.core.config import settings

# Engine creation does not connect: nothing touches the network until the
# first query, so the memory backend never needs a database.
engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
