"""Login token redemption.

Exchanges a presented token for the identity it was issued to, at most
once. The order of checks matters:

1. empty value → MISSING
2. take() from the store → nothing stored → INVALID_OR_EXPIRED
3. TTL check on the taken record → too old → INVALID_OR_EXPIRED
4. identity

The store removal happens before the TTL check, so concurrent attempts
on one value cannot both pass and an expired record is consumed rather
than left behind for a later replay.
"""

import logging
from datetime import datetime

from linklogin.core.errors import RedemptionError, RedemptionFailure
from linklogin.services.token_store import TokenStore, is_expired

logger = logging.getLogger(__name__)


async def redeem(store: TokenStore, token_value: str | None, now: datetime) -> str:
    """Redeem a login token.

    Args:
        store: Token store holding issued tokens.
        token_value: Value from the login URL (may be missing).
        now: Current time, timezone-aware.

    Returns:
        Identity the token was issued to.

    Raises:
        RedemptionError: With reason MISSING or INVALID_OR_EXPIRED.
        StoreUnavailableError: If the store cannot be reached.
    """
    if not token_value:
        logger.info("Login rejected: no token presented")
        raise RedemptionError(RedemptionFailure.MISSING)

    record = await store.take(token_value)
    if record is None:
        logger.info("Login rejected: unknown or already used token")
        raise RedemptionError(RedemptionFailure.INVALID_OR_EXPIRED)

    if is_expired(record.issued_at, now, store.ttl):
        logger.info("Login rejected: expired token for %s", record.identity)
        raise RedemptionError(RedemptionFailure.INVALID_OR_EXPIRED)

    logger.info("Login token redeemed for %s", record.identity)
    return record.identity
