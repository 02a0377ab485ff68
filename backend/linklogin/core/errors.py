"""Application error classes.

Every failure that can reach a user is one of these kinds. Storage and
transport errors are converted at the boundary where they occur, so the
HTML error handler only ever deals with APIError subclasses.
"""

from enum import Enum


class APIError(Exception):
    """Base class for application errors.

    All errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message, safe to show to users.
        status_code: HTTP status code to return.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DuplicateTokenError(APIError):
    """A token with the same value is already stored (500).

    Should never occur given token entropy. The issuer retries with a
    fresh value; users only see this if retries are exhausted.
    """

    def __init__(self) -> None:
        super().__init__(
            code="DUPLICATE_TOKEN",
            message="Login token collision",
            status_code=500,
        )


class StoreUnavailableError(APIError):
    """Token or session storage is unreachable (503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable. Please try again later.",
    ) -> None:
        super().__init__(
            code="STORE_UNAVAILABLE",
            message=message,
            status_code=503,
        )


class TokenIssuanceError(APIError):
    """A login link could not be issued (503).

    Raised by the issuer after duplicate retries are exhausted or when the
    store is unavailable. Callers send an apology instead of a link.
    """

    def __init__(self, message: str = "Could not generate a login link") -> None:
        super().__init__(
            code="TOKEN_ISSUANCE_FAILED",
            message=message,
            status_code=503,
        )


class RedemptionFailure(str, Enum):
    """Why a login token was rejected. Logged only, never shown."""

    MISSING = "missing"
    INVALID_OR_EXPIRED = "invalid_or_expired"


# Uniform message for every redemption failure.
# Security: never reveal whether a token was unknown, used or expired.
INVALID_LOGIN_TOKEN_MSG = "Invalid or expired login link"


class RedemptionError(APIError):
    """Login token rejected (401).

    Attributes:
        reason: Internal failure reason for logging.
    """

    def __init__(self, reason: RedemptionFailure) -> None:
        self.reason = reason
        super().__init__(
            code="INVALID_LOGIN_TOKEN",
            message=INVALID_LOGIN_TOKEN_MSG,
            status_code=401,
        )


class SessionGatewayError(APIError):
    """Session could not be created, read or destroyed (500)."""

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="SESSION_ERROR",
            message=message,
            status_code=500,
        )


class ForbiddenError(APIError):
    """Request not allowed (403).

    Used for webhook deliveries without the configured secret.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Page not found (404)."""

    def __init__(self, message: str = "Page not found") -> None:
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
