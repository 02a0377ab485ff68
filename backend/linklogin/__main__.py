"""Run the service with uvicorn: ``python -m linklogin``."""

import uvicorn

from linklogin.core.config import settings


def main() -> None:
    """Serve the application on API_HOST:API_PORT."""
    uvicorn.run(
        "linklogin.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover
    main()
