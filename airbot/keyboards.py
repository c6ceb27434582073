"""Reply keyboards offered to the user alongside bot messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

START_COMMAND = "/start"
AIR_QUALITY_BUTTON = "🌫 Качество воздуха"
SHARE_LOCATION_BUTTON = "📍 Отправить локацию"


@dataclass(frozen=True)
class KeyboardButton:
    """A single button; `request_location` asks the client for device GPS."""
    text: str
    request_location: bool = False

    def to_telegram(self) -> Dict[str, Any]:
        """Serialize to a Bot API KeyboardButton object."""
        payload: Dict[str, Any] = {"text": self.text}
        if self.request_location:
            payload["request_location"] = True
        return payload


@dataclass(frozen=True)
class ReplyKeyboard:
    """Rows of buttons rendered under the message input."""
    rows: tuple[tuple[KeyboardButton, ...], ...]
    resize: bool = True

    def labels(self) -> List[List[str]]:
        """Return button labels row by row."""
        return [[button.text for button in row] for row in self.rows]

    def to_telegram(self) -> Dict[str, Any]:
        """Serialize to a Bot API ReplyKeyboardMarkup object."""
        return {
            "keyboard": [[button.to_telegram() for button in row] for row in self.rows],
            "resize_keyboard": self.resize,
        }


def location_keyboard() -> ReplyKeyboard:
    """Keyboard with a single share-location button (for users without a stored location)."""
    return ReplyKeyboard(rows=((KeyboardButton(SHARE_LOCATION_BUTTON, request_location=True),),))


def main_keyboard() -> ReplyKeyboard:
    """Main menu: the air-quality request button."""
    return ReplyKeyboard(rows=((KeyboardButton(AIR_QUALITY_BUTTON),),))
