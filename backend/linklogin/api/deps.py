"""Shared dependencies for page and webhook endpoints.

Stores and the session gateway are process-wide singletons; tests swap
them through ``app.dependency_overrides``.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, Request

from linklogin.bot.client import TelegramClient
from linklogin.core.auth import read_session_cookie
from linklogin.core.config import settings
from linklogin.services.session_gateway import (
    SessionGateway,
    SessionInfo,
    get_session_gateway,
)
from linklogin.services.token_issuer import TokenIssuer
from linklogin.services.token_store import TokenStore, get_token_store

TokenStoreDep = Annotated[TokenStore, Depends(get_token_store)]
SessionGatewayDep = Annotated[SessionGateway, Depends(get_session_gateway)]


def get_token_issuer(store: TokenStoreDep) -> TokenIssuer:
    """Issuer over the application token store and public server URL."""
    return TokenIssuer(store, settings.server_url)


async def get_current_session(
    request: Request,
    gateway: SessionGatewayDep,
) -> SessionInfo | None:
    """Resolve the browser session from the session cookie.

    Returns:
        The active, authenticated session, or None when the cookie is
        missing, forged, expired or points at a destroyed session.
    """
    session_id = read_session_cookie(request)
    if session_id is None:
        return None

    info = await gateway.get(session_id, datetime.now(UTC))
    if info is None or not info.authenticated:
        return None
    return info


def get_bot_client(request: Request) -> TelegramClient | None:
    """Verified bot client set up by the lifespan, if the bot is enabled."""
    return getattr(request.app.state, "bot_client", None)


# Reusable type aliases for dependency injection
TokenIssuerDep = Annotated[TokenIssuer, Depends(get_token_issuer)]
CurrentSession = Annotated[SessionInfo | None, Depends(get_current_session)]
BotClientDep = Annotated[TelegramClient | None, Depends(get_bot_client)]
