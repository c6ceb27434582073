"""Factory helpers for wiring the bot's components at startup."""

from __future__ import annotations

from airbot import config
from airbot.data_sources.airvisual_client import AirQualityClient
from airbot.intent_router import IntentRouter
from airbot.location_store import InMemoryLocationStore, LocationStore
from airbot.telegram import TelegramClient
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="bot_factory")


def build_air_client(settings: config.Settings | None = None) -> AirQualityClient:
    """Create the provider client; raises StartupConfigurationError without a key."""
    settings = settings or config.settings
    api_key = settings.require_air_api_key()
    logger.info("Using AirVisual data source", extra={"url": mask_secret_url(settings.air_api_url)})
    return AirQualityClient(api_key, url=settings.air_api_url, timeout=settings.request_timeout_seconds)


def build_intent_router(
    settings: config.Settings | None = None,
    store: LocationStore | None = None,
) -> IntentRouter:
    """Instantiate the router with a fresh in-memory store unless one is given."""
    settings = settings or config.settings
    air_client = build_air_client(settings)
    return IntentRouter(store if store is not None else InMemoryLocationStore(), air_client)


def build_telegram_client(settings: config.Settings | None = None) -> TelegramClient:
    """Create the Bot API client; raises StartupConfigurationError without a token."""
    settings = settings or config.settings
    token = settings.require_telegram_bot_token()
    return TelegramClient(
        token,
        base_url=settings.telegram_api_url,
        timeout=settings.request_timeout_seconds,
    )
