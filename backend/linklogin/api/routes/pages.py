"""Browser-facing pages.

Endpoints:
- GET /         home page
- GET /login    redeem a login link, start a session, redirect to /profile
- GET /profile  signed-in page; redirects home without a session
- GET /logout   destroy the session, clear the cookie, redirect home
"""

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from linklogin.api.deps import CurrentSession, SessionGatewayDep, TokenStoreDep
from linklogin.core.auth import (
    clear_session_cookie,
    read_session_cookie,
    set_session_cookie,
)
from linklogin.core.templates import templates
from linklogin.services.redemption import redeem

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    session: CurrentSession,
    store: TokenStoreDep,
) -> HTMLResponse:
    """Home page with bot instructions, or a link to the profile."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "identity": session.identity if session else None,
            "ttl_minutes": int(store.ttl.total_seconds() // 60),
        },
    )


@router.get("/login")
async def login(
    request: Request,
    store: TokenStoreDep,
    gateway: SessionGatewayDep,
    token: Annotated[str | None, Query()] = None,
) -> RedirectResponse:
    """Redeem a login token and start an authenticated session.

    Every rejection raises RedemptionError, rendered as the same 401 page
    whether the token was missing, unknown, already used or expired.
    """
    now = datetime.now(UTC)
    identity = await redeem(store, token, now)

    # A fresh session id on every login; an earlier session is discarded
    previous_id = read_session_cookie(request)
    if previous_id is not None:
        await gateway.destroy(previous_id)
    session = await gateway.create(identity, now)
    logger.info("Session started for %s", identity)

    response = RedirectResponse(url="/profile", status_code=302)
    set_session_cookie(response, session.id)
    # Prevent token leakage via Referer header
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


@router.get("/profile", response_model=None)
async def profile(
    request: Request,
    session: CurrentSession,
) -> HTMLResponse | RedirectResponse:
    """Signed-in page."""
    if session is None:
        return RedirectResponse(url="/", status_code=302)
    return templates.TemplateResponse(
        request,
        "profile.html",
        {"identity": session.identity, "expires_at": session.expires_at},
    )


@router.get("/logout")
async def logout(request: Request, gateway: SessionGatewayDep) -> RedirectResponse:
    """Sign out. No session required; the cookie is cleared regardless."""
    session_id = read_session_cookie(request)
    if session_id is not None:
        await gateway.destroy(session_id)

    response = RedirectResponse(url="/", status_code=302)
    clear_session_cookie(response)
    return response
