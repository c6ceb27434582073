"""HTTP API receiving Telegram webhook updates."""

import hmac
import threading
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel

from .bot_factory import build_intent_router, build_telegram_client
from .config import settings
from .intent_router import IntentRouter
from .telegram import TelegramClient, TelegramError, Update, to_incoming_message
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="airbot/api")

_components_lock = threading.Lock()
_router: Optional[IntentRouter] = None
_telegram: Optional[TelegramClient] = None


def get_intent_router() -> IntentRouter:
    """Return the process-wide router, building it on first use."""
    global _router
    with _components_lock:
        if _router is None:
            _router = build_intent_router(settings)
        return _router


def get_telegram_client() -> TelegramClient:
    """Return the process-wide Bot API client, building it on first use."""
    global _telegram
    with _components_lock:
        if _telegram is None:
            _telegram = build_telegram_client(settings)
        return _telegram


def use_components_for_tests(router: IntentRouter | None = None, telegram: TelegramClient | None = None) -> None:
    """Override the lazily-built components (tests only)."""
    global _router, _telegram
    with _components_lock:
        _router = router
        _telegram = telegram


def require_webhook_secret(
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
):
    """
    Validate Telegram's secret-token header when a webhook secret is configured.
    """
    if not settings.telegram_webhook_secret:
        return

    if not x_telegram_bot_api_secret_token:
        logger.debug("Webhook call without secret token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing secret token")

    if hmac.compare_digest(str(x_telegram_bot_api_secret_token), str(settings.telegram_webhook_secret)):
        return

    logger.debug("Invalid webhook secret token provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret token")


router = APIRouter()


class WebhookAck(BaseModel):
    """Acknowledgement returned to Telegram for every accepted update."""
    ok: bool = True
    handled: bool = False


class HealthResponse(BaseModel):
    """Liveness probe payload."""
    status: str
    locations: int


@router.post("/telegram/webhook", response_model=WebhookAck, dependencies=[Depends(require_webhook_secret)])
def telegram_webhook(update: Update):
    """Route one update and deliver the reply, if any.

    Always acknowledges accepted updates so Telegram does not redeliver them.
    """
    message = to_incoming_message(update)
    if message is None:
        logger.debug(f"Ignoring non-message update {update.update_id}")
        return WebhookAck(handled=False)

    reply = get_intent_router().dispatch(message)
    if reply is None:
        return WebhookAck(handled=False)

    try:
        get_telegram_client().send_reply(message.chat_id, reply)
    except TelegramError as exc:
        logger.error(f"Failed to deliver reply to chat {message.chat_id}: {exc}")
    return WebhookAck(handled=True)


@router.get("/health", response_model=HealthResponse)
def health():
    """Report liveness and the number of known user locations."""
    return HealthResponse(status="ok", locations=len(get_intent_router().store))
