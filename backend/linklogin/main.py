"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Exception handlers rendering HTML error pages
- Page and webhook routers
- Health check endpoint
- Lifespan wiring for the expiry sweeper and the Telegram bot
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from linklogin.api.routes.pages import router as pages_router
from linklogin.api.routes.telegram import router as telegram_router
from linklogin.bot import bootstrap_bot_client
from linklogin.bot.poller import BotPoller
from linklogin.core.config import settings
from linklogin.core.database import engine
from linklogin.core.errors import APIError, InternalError, NotFoundError
from linklogin.core.logging_setup import configure_logging
from linklogin.core.templates import render_api_error, render_error_page
from linklogin.services.expiry_sweeper import ExpirySweeper
from linklogin.services.session_gateway import get_session_gateway
from linklogin.services.token_issuer import TokenIssuer
from linklogin.services.token_store import get_token_store

logger = structlog.get_logger()

WEBHOOK_PATH = "/telegram/webhook"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: Pages show session state and must not be cached
    - Content-Security-Policy: Pages load no scripts or external resources
    - Cross-Origin-Opener-Policy: Isolates browsing context (Spectre mitigation)
    - Cross-Origin-Resource-Policy: Restricts resource sharing to same-origin
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        # Clickjacking protection
        response.headers["X-Frame-Options"] = "DENY"

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Routes may tighten this (the login redirect sends no-referrer)
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )

        response.headers["Cache-Control"] = "no-store, max-age=0"

        # Server-rendered pages with inline markup only
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; style-src 'self'; base-uri 'none'; "
            "form-action 'self'; frame-ancestors 'none'"
        )

        response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
        response.headers["Cross-Origin-Resource-Policy"] = "same-origin"

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def api_error_handler(request: Request, exc: APIError) -> HTMLResponse:
    """Render application errors as an HTML page with their status code.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        Error page carrying the error's user-facing message.
    """
    return render_api_error(request, exc)


def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> HTMLResponse:
    """Render routing errors (unknown path, wrong method) as error pages."""
    if exc.status_code == 404:
        return render_api_error(request, NotFoundError())
    return render_error_page(request, exc.status_code, str(exc.detail))


def validation_error_handler(
    request: Request, _exc: RequestValidationError
) -> HTMLResponse:
    """Handle request validation errors from FastAPI."""
    return render_error_page(request, 400, "Invalid request")


def internal_error_handler(request: Request, exc: Exception) -> HTMLResponse:
    """Catch-all for unhandled exceptions.

    Never expose internal error details to clients. Log for debugging.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        Generic error page (500).
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return render_api_error(request, InternalError())


def webhook_url(server_url: str) -> str:
    """Public URL Telegram posts updates to."""
    return server_url.rstrip("/") + WEBHOOK_PATH


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan.

    Startup:
    - Configure logging
    - Start the expiry sweeper
    - Verify the bot credential and start update delivery (if enabled)

    A bot that cannot be verified fails startup instead of leaving a
    service that silently never answers.

    Shutdown:
    - Stop background workers, close the bot client, dispose the engine

    Args:
        app: FastAPI application instance.

    Yields:
        None during application lifetime.
    """
    configure_logging(settings.log_level)

    token_store = get_token_store()
    sweeper = ExpirySweeper(
        token_store,
        get_session_gateway(),
        interval_seconds=settings.token_sweep_interval_seconds,
    )
    poller: BotPoller | None = None
    app.state.bot_client = None

    sweeper.start()
    try:
        if settings.bot_enabled:
            client = await bootstrap_bot_client(settings)
            app.state.bot_client = client
            if settings.bot_delivery == "webhook":
                if not settings.telegram_webhook_secret.get_secret_value():
                    logger.warning(
                        "TELEGRAM_WEBHOOK_SECRET is not set; "
                        "webhook calls will be rejected"
                    )
                await client.set_webhook(
                    webhook_url(settings.server_url),
                    settings.telegram_webhook_secret.get_secret_value(),
                )
                logger.info("Telegram webhook registered")
            else:
                await client.delete_webhook()
                poller = BotPoller(
                    client,
                    TokenIssuer(token_store, settings.server_url),
                    poll_timeout_seconds=settings.telegram_poll_timeout_seconds,
                )
                poller.start()
        else:
            logger.warning("Telegram bot disabled; no login links will be sent")

        yield
    finally:
        if poller is not None:
            await poller.stop()
        await sweeper.stop()
        if app.state.bot_client is not None:
            await app.state.bot_client.close()
            app.state.bot_client = None
        await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Telegram Link Login",
        version="1.0.0",
        description="Sign in to a website with a one-time link sent by a Telegram bot",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware)

    # Register exception handlers
    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(pages_router)
    app.include_router(telegram_router, prefix="/telegram")

    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    return app


# Create the application instance
# Used by uvicorn: uvicorn linklogin.main:app
app = create_app()
