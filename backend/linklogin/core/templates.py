"""HTML rendering.

Jinja2 templates live in ``linklogin/templates`` and are rendered through
Starlette's Jinja2Templates so every page gets the request in its context.
"""

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import HTMLResponse

from linklogin.core.errors import APIError

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render_error_page(request: Request, status_code: int, message: str) -> HTMLResponse:
    """Render the shared error page.

    Args:
        request: Current request.
        status_code: HTTP status for the response.
        message: User-facing message. Never contains internal detail.
    """
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


def render_api_error(request: Request, exc: APIError) -> HTMLResponse:
    """Render an APIError with its own status and message."""
    return render_error_page(request, exc.status_code, exc.message)
