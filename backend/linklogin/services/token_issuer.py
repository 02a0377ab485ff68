"""Login link issuance.

Mints a random token for a chat requester, stores it, and builds the URL
the bot sends back. A URL is only returned once its token is stored.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import quote, urlencode

from linklogin.core.errors import (
    DuplicateTokenError,
    StoreUnavailableError,
    TokenIssuanceError,
)
from linklogin.services.token_store import TokenStore

logger = logging.getLogger(__name__)

# 32 random bytes = 256 bits of entropy, URL-safe base64 (43 chars)
_TOKEN_BYTES = 32

# Fresh values drawn on DuplicateTokenError before giving up
_MAX_ISSUE_ATTEMPTS = 3


def generate_token_value() -> str:
    """Generate a cryptographically secure, URL-safe token value."""
    return secrets.token_urlsafe(_TOKEN_BYTES)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def build_login_url(base_url: str, token: str) -> str:
    """Build the login URL for a token.

    The base URL is normalized to end with exactly one ``/`` before the
    ``login`` path is appended.

    Args:
        base_url: Public server URL, with or without trailing slashes.
        token: Plain token value.

    Returns:
        e.g. ``https://example.com/login?token=xyz``.
    """
    base = base_url.rstrip("/") + "/"
    query = urlencode({"token": token}, quote_via=quote)
    return f"{base}login?{query}"


@dataclass(frozen=True)
class IssuedLogin:
    """Result of a successful issuance.

    Attributes:
        token: Plain token value.
        url: Login URL to deliver to the requester.
        issued_at: When the token was stored.
        expires_at: When the token stops being redeemable.
    """

    token: str
    url: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Issues login links backed by a token store.

    Args:
        store: Where tokens are persisted.
        base_url: Public server URL used in links.
        token_factory: Source of token values (injectable for tests).
        clock: Source of the issue timestamp (injectable for tests).
        max_attempts: Values tried before a duplicate becomes fatal.
    """

    def __init__(
        self,
        store: TokenStore,
        base_url: str,
        *,
        token_factory: Callable[[], str] = generate_token_value,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: int = _MAX_ISSUE_ATTEMPTS,
    ) -> None:
        self._store = store
        self._base_url = base_url
        self._token_factory = token_factory
        self._clock = clock
        self._max_attempts = max_attempts

    async def issue(self, identity: str, channel_address: str) -> IssuedLogin:
        """Mint and store a token, then build its login URL.

        Args:
            identity: Requester display name.
            channel_address: Chat id the link will be sent to.

        Returns:
            IssuedLogin with the stored token and its URL.

        Raises:
            TokenIssuanceError: If the store is unavailable or every
                attempt collided with an existing token.
        """
        for attempt in range(1, self._max_attempts + 1):
            value = self._token_factory()
            issued_at = self._clock()
            try:
                await self._store.put(value, identity, channel_address, issued_at)
            except DuplicateTokenError:
                logger.warning(
                    "Login token collision for %s (attempt %d/%d)",
                    identity,
                    attempt,
                    self._max_attempts,
                )
                continue
            except StoreUnavailableError as exc:
                raise TokenIssuanceError(
                    "Token storage is unavailable. Please try again later."
                ) from exc

            logger.info("Issued login link for %s", identity)
            return IssuedLogin(
                token=value,
                url=build_login_url(self._base_url, value),
                issued_at=issued_at,
                expires_at=issued_at + self._store.ttl,
            )

        logger.error(
            "Giving up issuing login link for %s after %d collisions",
            identity,
            self._max_attempts,
        )
        raise TokenIssuanceError()
