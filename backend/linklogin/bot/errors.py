"""Bot transport error taxonomy.

Bootstrap and polling retry TransientError and stop on a rejected token.
"""

__all__ = [
    "BotError",
    "TransientError",
    "BotAuthenticationError",
    "BotRequestError",
]


class BotError(Exception):
    """Base class for all Bot API errors."""

    pass


class TransientError(BotError):
    """Network failure, server error or flood control. Safe to retry."""

    def __init__(self, message: str, retry_after_seconds: float | None = None):
        """Initialize TransientError.

        Args:
            message: Error description.
            retry_after_seconds: Optional server hint on when to retry
                (Telegram's ``parameters.retry_after`` on HTTP 429).
        """
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class BotAuthenticationError(BotError):
    """Bot token rejected (401/404 from the Bot API).

    Not retryable: the operator has to supply a new BOT_TOKEN.
    """

    pass


class BotRequestError(BotError):
    """Request rejected for another client-side reason (e.g., chat not found)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
