"""Thin Telegram Bot API adapter: update parsing plus sendMessage/getUpdates."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict

from airbot.domain import Coordinate, IncomingMessage, Reply
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="telegram")


class TelegramError(RuntimeError):
    """A Bot API call failed at the transport or API level."""


class _TelegramModel(BaseModel):
    """Base model that tolerates the many Bot API fields we do not use."""

    model_config = ConfigDict(extra="ignore")


class Chat(_TelegramModel):
    id: int


class Location(_TelegramModel):
    latitude: float
    longitude: float


class Message(_TelegramModel):
    message_id: Optional[int] = None
    chat: Chat
    text: Optional[str] = None
    location: Optional[Location] = None


class Update(_TelegramModel):
    """Subset of the Bot API Update object."""
    update_id: int
    message: Optional[Message] = None


def to_incoming_message(update: Update) -> Optional[IncomingMessage]:
    """Convert an update into an IncomingMessage; None for non-message updates."""
    msg = update.message
    if msg is None:
        return None
    location = None
    if msg.location is not None:
        location = Coordinate(latitude=msg.location.latitude, longitude=msg.location.longitude)
    return IncomingMessage(chat_id=msg.chat.id, text=msg.text, location=location)


def build_send_message_payload(chat_id: int, reply: Reply) -> Dict[str, Any]:
    """Build the sendMessage JSON body for a reply."""
    payload: Dict[str, Any] = {"chat_id": chat_id, "text": reply.text}
    if reply.parse_mode:
        payload["parse_mode"] = reply.parse_mode
    if reply.keyboard is not None:
        payload["reply_markup"] = reply.keyboard.to_telegram()
    return payload


class TelegramClient:
    """Minimal client for the Bot API methods the bot uses."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        http: requests.Session | None = None,
    ) -> None:
        """Initialize with the bot token and API base URL."""
        self._base = f"{base_url.rstrip('/')}/bot{token}"
        self.timeout = timeout
        self.http = http or requests.Session()

    def _call(self, method: str, payload: Dict[str, Any], *, timeout: float | None = None) -> Any:
        """POST a Bot API method and return its `result` field."""
        url = f"{self._base}/{method}"
        try:
            resp = self.http.post(url, json=payload, timeout=timeout or self.timeout)
        except requests.exceptions.RequestException as exc:
            raise TelegramError(f"{method} request failed: {mask_secret_url(str(exc))}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise TelegramError(f"{method} returned non-JSON (HTTP {resp.status_code})") from exc

        if resp.status_code != 200 or not body.get("ok"):
            raise TelegramError(
                f"{method} failed with HTTP {resp.status_code}: {body.get('description', '')}"
            )
        logger.debug("Telegram %s ok", mask_secret_url(url))
        return body.get("result")

    def send_reply(self, chat_id: int, reply: Reply) -> None:
        """Deliver a reply to the chat."""
        self._call("sendMessage", build_send_message_payload(chat_id, reply))

    def get_updates(self, offset: int | None = None, timeout: int = 30) -> List[Update]:
        """Long-poll for new updates starting at `offset`."""
        payload: Dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        # HTTP timeout must outlast the server-side long poll
        result = self._call("getUpdates", payload, timeout=timeout + self.timeout)
        return [Update.model_validate(item) for item in result or []]
