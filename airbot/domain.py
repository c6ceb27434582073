"""Domain vocabulary for the air-quality bot.

Coordinates, provider readings, severity bands, intents and the
transport-neutral inbound/outbound message shapes. Handlers and adapters
exchange only these types; no Telegram or HTTP details leak in here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from airbot.keyboards import ReplyKeyboard

UserId = int


def format_degrees(value: float) -> str:
    """Shortest plain decimal for a float: no trailing ".0", never exponent notation."""
    return format(Decimal(repr(float(value))).normalize(), "f")


@dataclass(frozen=True)
class Coordinate:
    """A (latitude, longitude) pair; replaced wholesale, never mutated."""
    latitude: float
    longitude: float

    def as_tuple(self) -> tuple[float, float]:
        """Return the coordinate as a plain (lat, lon) tuple."""
        return self.latitude, self.longitude

    def __str__(self) -> str:
        return f"{format_degrees(self.latitude)}, {format_degrees(self.longitude)}"


@dataclass(frozen=True)
class AirReading:
    """Current air quality for the city nearest to a coordinate."""
    city: str
    aqi: int  # US EPA scale
    fetched_at: datetime


class SeverityBand(str, Enum):
    """Ordered AQI categories, mildest first."""
    GOOD = "good"
    MODERATE = "moderate"
    UNHEALTHY_FOR_SENSITIVE = "unhealthy_for_sensitive"
    UNHEALTHY = "unhealthy"
    HAZARDOUS = "hazardous"

    @property
    def marker(self) -> str:
        """Emoji shown in front of the band label."""
        return _BAND_MARKERS[self]

    @property
    def label(self) -> str:
        """Human-readable band name."""
        return _BAND_LABELS[self]

    @property
    def display(self) -> str:
        """Marker and label as they appear in the report."""
        return f"{self.marker} {self.label}"


_BAND_MARKERS = {
    SeverityBand.GOOD: "🟢",
    SeverityBand.MODERATE: "🟡",
    SeverityBand.UNHEALTHY_FOR_SENSITIVE: "🟠",
    SeverityBand.UNHEALTHY: "🔴",
    SeverityBand.HAZARDOUS: "☠️",
}

_BAND_LABELS = {
    SeverityBand.GOOD: "Отлично",
    SeverityBand.MODERATE: "Нормально",
    SeverityBand.UNHEALTHY_FOR_SENSITIVE: "Вредно для чувствительных",
    SeverityBand.UNHEALTHY: "Вредно",
    SeverityBand.HAZARDOUS: "Очень вредно",
}

# Inclusive upper bounds; anything above the last bound is HAZARDOUS.
BAND_UPPER_BOUNDS: tuple[tuple[int, SeverityBand], ...] = (
    (50, SeverityBand.GOOD),
    (100, SeverityBand.MODERATE),
    (150, SeverityBand.UNHEALTHY_FOR_SENSITIVE),
    (200, SeverityBand.UNHEALTHY),
)


def severity_band(aqi: int) -> SeverityBand:
    """Map an AQI value to its band. Total over all integers; negatives are HAZARDOUS."""
    if aqi < 0:
        return SeverityBand.HAZARDOUS
    for upper, band in BAND_UPPER_BOUNDS:
        if aqi <= upper:
            return band
    return SeverityBand.HAZARDOUS


class IntentKind(str, Enum):
    """What an inbound message asks the bot to do."""
    START = "start"
    REPORT_LOCATION = "report_location"
    REQUEST_AIR_QUALITY = "request_air_quality"


@dataclass(frozen=True)
class Intent:
    """Classified purpose of one message; `coordinate` is set for REPORT_LOCATION only."""
    kind: IntentKind
    coordinate: Optional[Coordinate] = None


@dataclass(frozen=True)
class IncomingMessage:
    """Transport-neutral view of an inbound chat message."""
    chat_id: UserId
    text: Optional[str] = None
    location: Optional[Coordinate] = None


@dataclass
class Reply:
    """Outbound text plus the suggested reply keyboard."""
    text: str
    keyboard: Optional[ReplyKeyboard] = None
    parse_mode: Optional[str] = None
