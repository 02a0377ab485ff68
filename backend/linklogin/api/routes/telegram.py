"""Telegram webhook endpoint.

POST /telegram/webhook receives updates when BOT_DELIVERY=webhook. The
request must carry the configured secret in the
``X-Telegram-Bot-Api-Secret-Token`` header. Updates are acknowledged right
away and handled as a background task, so Telegram never waits on token
storage or the reply.
"""

import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Header, Request
from pydantic import ValidationError

from linklogin.api.deps import BotClientDep, TokenIssuerDep
from linklogin.bot.updates import Update
from linklogin.core.config import settings
from linklogin.core.errors import ForbiddenError, NotFoundError
from linklogin.services.login_dispatch import process_update

logger = logging.getLogger(__name__)

router = APIRouter()


def _secret_matches(presented: str | None) -> bool:
    """Constant-time comparison against TELEGRAM_WEBHOOK_SECRET.

    An unset secret rejects every request.
    """
    expected = settings.telegram_webhook_secret.get_secret_value()
    if not expected or presented is None:
        return False
    return hmac.compare_digest(presented.encode(), expected.encode())


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    issuer: TokenIssuerDep,
    client: BotClientDep,
    secret_token: Annotated[
        str | None, Header(alias="X-Telegram-Bot-Api-Secret-Token")
    ] = None,
) -> dict:
    """Accept one Telegram update.

    Malformed payloads are acknowledged and dropped; Telegram would
    otherwise keep redelivering them.
    """
    if settings.bot_delivery != "webhook" or client is None:
        raise NotFoundError()
    if not _secret_matches(secret_token):
        logger.warning("Webhook call rejected: bad secret token")
        raise ForbiddenError()

    try:
        update = Update.model_validate(await request.json())
    except (ValueError, ValidationError):
        logger.info("Ignoring malformed webhook payload")
        return {"ok": True}

    background_tasks.add_task(process_update, update, issuer, client)
    return {"ok": True}
