"""Classify inbound chat messages into intents and run the matching handler.

Classification is an ordered list of (predicate, intent builder) rules
evaluated first-match-wins. A message that matches no rule is ignored:
`dispatch` returns None and nothing is sent back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from airbot.data_sources.airvisual_client import AirQualityClient, FetchError
from airbot.domain import IncomingMessage, Intent, IntentKind, Reply
from airbot.keyboards import AIR_QUALITY_BUTTON, START_COMMAND, location_keyboard, main_keyboard
from airbot.location_store import LocationStore
from airbot.report import PARSE_MODE, format_report
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="intent_router")

WELCOME_NEW_USER = "Привет! Отправь своё местоположение, чтобы узнать качество воздуха рядом с тобой."
WELCOME_BACK = "С возвращением! Нажми кнопку, чтобы проверить качество воздуха."
LOCATION_SAVED = "✅ Местоположение сохранено: {coordinate}"
LOCATION_REQUIRED = "❗ Сначала поделись местоположением"
FETCH_FAILED = "⚠️ Не удалось получить данные о качестве воздуха. Попробуй позже."


@dataclass(frozen=True)
class IntentRule:
    """One classification step: if `matches`, `build` produces the intent."""
    name: str
    matches: Callable[[IncomingMessage], bool]
    build: Callable[[IncomingMessage], Intent]


DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        name="start_command",
        matches=lambda msg: msg.text == START_COMMAND,
        build=lambda msg: Intent(IntentKind.START),
    ),
    IntentRule(
        name="shared_location",
        matches=lambda msg: msg.location is not None,
        build=lambda msg: Intent(IntentKind.REPORT_LOCATION, coordinate=msg.location),
    ),
    IntentRule(
        name="air_quality_button",
        matches=lambda msg: msg.text == AIR_QUALITY_BUTTON,
        build=lambda msg: Intent(IntentKind.REQUEST_AIR_QUALITY),
    ),
)


class IntentRouter:
    """Routes one message at a time; holds no per-chat state of its own."""

    def __init__(
        self,
        store: LocationStore,
        air_client: AirQualityClient,
        *,
        rules: Sequence[IntentRule] = DEFAULT_RULES,
        report_formatter: Callable[..., str] = format_report,
    ) -> None:
        """Wire the router to its store, provider client and formatter."""
        self.store = store
        self.air_client = air_client
        self.rules = tuple(rules)
        self.report_formatter = report_formatter
        self._handlers: dict[IntentKind, Callable[[IncomingMessage, Intent], Reply]] = {
            IntentKind.START: self.handle_start,
            IntentKind.REPORT_LOCATION: self.handle_location,
            IntentKind.REQUEST_AIR_QUALITY: self.handle_air_quality,
        }

    def classify(self, message: IncomingMessage) -> Optional[Intent]:
        """Return the intent of the first matching rule, or None."""
        for rule in self.rules:
            if rule.matches(message):
                logger.debug("Message matched rule %s", rule.name, extra={"chat_id": message.chat_id})
                return rule.build(message)
        return None

    def dispatch(self, message: IncomingMessage) -> Optional[Reply]:
        """Classify and handle a message; None means nothing should be sent."""
        intent = self.classify(message)
        if intent is None:
            logger.debug("Ignoring unclassified message from chat %s", message.chat_id)
            return None
        logger.info("Handling %s for chat %s", intent.kind.value, message.chat_id)
        return self._handlers[intent.kind](message, intent)

    def handle_start(self, message: IncomingMessage, intent: Intent) -> Reply:
        """Greet the user; returning users go straight to the main menu."""
        if self.store.contains(message.chat_id):
            return Reply(text=WELCOME_BACK, keyboard=main_keyboard())
        return Reply(text=WELCOME_NEW_USER, keyboard=location_keyboard())

    def handle_location(self, message: IncomingMessage, intent: Intent) -> Reply:
        """Remember the shared coordinate and confirm it."""
        coordinate = intent.coordinate or message.location
        self.store.set(message.chat_id, coordinate)
        return Reply(text=LOCATION_SAVED.format(coordinate=coordinate), keyboard=main_keyboard())

    def handle_air_quality(self, message: IncomingMessage, intent: Intent) -> Reply:
        """Fetch and render air quality for the user's stored location."""
        coordinate = self.store.get(message.chat_id)
        if coordinate is None:
            return Reply(text=LOCATION_REQUIRED, keyboard=location_keyboard())

        try:
            reading = self.air_client.fetch(coordinate)
        except FetchError as exc:
            logger.error(
                "Air quality fetch failed for chat %s (%s): %s",
                message.chat_id,
                type(exc).__name__,
                exc,
            )
            return Reply(text=FETCH_FAILED, keyboard=main_keyboard())

        logger.info("Air quality for chat %s: %s AQI %s", message.chat_id, reading.city, reading.aqi)
        return Reply(text=self.report_formatter(reading), keyboard=main_keyboard(), parse_mode=PARSE_MODE)
