"""Telegram Bot API client over httpx.

Plain JSON POSTs to ``https://api.telegram.org/bot<token>/<method>``.
Every failure is mapped onto the bot error taxonomy; error messages never
include the request URL because it embeds the bot token.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from linklogin.bot.errors import (
    BotAuthenticationError,
    BotRequestError,
    TransientError,
)
from linklogin.bot.updates import TelegramUser

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0

# Extra seconds on top of the long-poll timeout before httpx gives up
_LONG_POLL_GRACE = 10.0


class TelegramClient:
    """Async Bot API client.

    Args:
        token: Bot credential from BotFather.
        api_base: Bot API base URL.
        verify_tls: Whether to verify the server certificate.
        timeout: Default request timeout in seconds.
        http_client: Preconfigured httpx client (tests use MockTransport).
    """

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://api.telegram.org",
        verify_tls: bool = True,
        timeout: float = _DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = f"{api_base.rstrip('/')}/bot{token}"
        self._timeout = timeout
        self._client = http_client or httpx.AsyncClient(
            verify=verify_tls, timeout=timeout
        )

    async def _call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Invoke a Bot API method and return its ``result``.

        Raises:
            TransientError: Network failure, 5xx or 429.
            BotAuthenticationError: Token rejected.
            BotRequestError: Any other rejection.
        """
        try:
            response = await self._client.post(
                f"{self._base_url}/{method}",
                json=payload or {},
                timeout=timeout or self._timeout,
            )
        except httpx.TransportError as exc:
            raise TransientError(f"{method}: {type(exc).__name__}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code >= 500:
                raise TransientError(
                    f"{method}: HTTP {response.status_code}"
                ) from exc
            raise BotRequestError(
                f"{method}: non-JSON response", response.status_code
            ) from exc

        if not isinstance(body, dict):
            raise BotRequestError(
                f"{method}: unexpected response body", response.status_code
            )

        if body.get("ok"):
            return body.get("result")

        error_code = int(body.get("error_code", response.status_code))
        description = f"{method}: {body.get('description', 'unknown error')}"

        if error_code == 429:
            retry_after = (body.get("parameters") or {}).get("retry_after")
            raise TransientError(description, retry_after_seconds=retry_after)
        if error_code in (401, 404):
            raise BotAuthenticationError(description)
        if error_code >= 500:
            raise TransientError(description)
        raise BotRequestError(description, error_code)

    async def get_me(self) -> TelegramUser:
        """Return the bot's own account; verifies the token."""
        result = await self._call("getMe")
        try:
            return TelegramUser.model_validate(result)
        except ValidationError as exc:
            raise BotRequestError("getMe: unexpected result", 200) from exc

    async def get_updates(
        self, offset: int | None, timeout_seconds: int
    ) -> list[dict[str, Any]]:
        """Long-poll for new updates.

        Items are returned as raw dicts; the caller validates each one so a
        single malformed update cannot block the rest of the batch.

        Args:
            offset: First update id to return (last seen + 1).
            timeout_seconds: Server-side long-poll timeout.
        """
        payload: dict[str, Any] = {
            "timeout": timeout_seconds,
            "allowed_updates": ["message"],
        }
        if offset is not None:
            payload["offset"] = offset
        result = await self._call(
            "getUpdates",
            payload,
            timeout=timeout_seconds + _LONG_POLL_GRACE,
        )
        if not isinstance(result, list):
            raise BotRequestError("getUpdates: result is not a list", 200)
        return result

    async def send_message(self, chat_id: str, text: str) -> None:
        """Send a plain-text message to a chat."""
        await self._call(
            "sendMessage",
            {"chat_id": chat_id, "text": text, "disable_web_page_preview": True},
        )

    async def set_webhook(self, url: str, secret_token: str) -> None:
        """Register the webhook URL for update delivery."""
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        await self._call("setWebhook", payload)

    async def delete_webhook(self) -> None:
        """Remove any webhook so getUpdates can be used."""
        await self._call("deleteWebhook")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
