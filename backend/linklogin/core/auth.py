"""Session cookie helpers.

The browser cookie holds a signed JWT whose ``sub`` is the server-side
session id. The signature keeps the cookie opaque and tamper-evident; the
session row decides whether it is still valid.

Pipeline:
- create_session_cookie / set_session_cookie: after a successful login
- read_session_cookie: on every request that needs the session
- clear_session_cookie: on logout
"""

import logging
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Request, Response

from linklogin.core.config import settings

logger = logging.getLogger(__name__)

_AUDIENCE = "linklogin"
_ALGORITHM = "HS256"


def session_lifetime() -> timedelta:
    """Configured browser session lifetime."""
    return timedelta(hours=settings.session_max_age_hours)


def create_session_cookie(
    *,
    session_id: str,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a session reference.

    Args:
        session_id: Server-side session id for the sub claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to the session lifetime.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": session_id,
        "aud": _AUDIENCE,
        "exp": now + (expires_delta or session_lifetime()),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def read_session_cookie(request: Request) -> str | None:
    """Return the session id from a valid session cookie.

    Any missing, malformed, expired or forged cookie yields None.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.session_secret.get_secret_value(),
            algorithms=[_ALGORITHM],
            audience=_AUDIENCE,
        )
        session_id = payload["sub"]
    except (jwt.InvalidTokenError, KeyError):
        logger.debug("Ignoring invalid session cookie")
        return None

    if not isinstance(session_id, str) or not session_id:
        return None
    return session_id


def set_session_cookie(response: Response, session_id: str) -> None:
    """Set the httpOnly session cookie on a response.

    Security: httpOnly prevents XSS cookie theft. The Secure flag is on in
    production only, where the service sits behind HTTPS.
    """
    cookie = create_session_cookie(
        session_id=session_id,
        secret=settings.session_secret.get_secret_value(),
    )
    response.set_cookie(
        key=settings.session_cookie_name,
        value=cookie,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
        max_age=int(session_lifetime().total_seconds()),
    )


def clear_session_cookie(response: Response) -> None:
    """Delete the session cookie. Attributes must match set_session_cookie()."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
