"""Render air readings as Telegram MarkdownV2 reports."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from airbot.domain import AirReading, severity_band

PARSE_MODE = "MarkdownV2"
REPORT_TITLE = "Качество воздуха"

# Characters Telegram requires to be backslash-escaped anywhere in MarkdownV2 text.
_MARKDOWN_V2_SPECIAL = re.compile(r"([_*\[\]()~`>#+\-=|{}.!\\])")


def escape_markdown_v2(text: str) -> str:
    """Escape markup control characters so arbitrary text renders literally."""
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", str(text))


def format_report(reading: AirReading, now: Optional[datetime] = None) -> str:
    """Build the report for a reading.

    `now` defaults to the serving process's local wall-clock time; the
    coordinate's own timezone is not considered.
    """
    now = now or datetime.now()
    band = severity_band(reading.aqi)
    lines = [
        f"*{escape_markdown_v2(REPORT_TITLE)}*",
        f"🏙 Город: *{escape_markdown_v2(reading.city)}*",
        f"🕒 {escape_markdown_v2(now.strftime('%H:%M'))}",
        f"🌫 AQI: *{escape_markdown_v2(str(reading.aqi))}*",
        f"📊 {escape_markdown_v2(band.display)}",
    ]
    return "\n".join(lines)
