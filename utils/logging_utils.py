"""
Central logging configuration for the bot.

Usage
-----
In an entrypoint (polling runner, webhook server):

    from utils.logging_utils import setup_logging

    def main() -> None:
        setup_logging(level="INFO", job_name="airbot_polling")
        ...

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="airvisual_client")

    def fetch() -> None:
        logger.info("Requesting nearest city")

Every record carries job_name and tag fields so the webhook server and the
polling worker can share one log format.
"""

from __future__ import annotations

import logging
import logging.config
import re
from typing import Any, Mapping, Optional


# Early records (before setup_logging) still get timestamps and levels.
BOOTSTRAP_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
BOOTSTRAP_DATEFMT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    level=logging.INFO,
    format=BOOTSTRAP_FORMAT,
    datefmt=BOOTSTRAP_DATEFMT,
)


DEFAULT_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(name)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SENSITIVE_PARAM = re.compile(
    r"([?&][^=&\s]*(?:key|token|secret|pass|pwd)[^=&\s]*=)[^&\s#]+", re.IGNORECASE
)
_BOT_TOKEN_PATH = re.compile(r"/bot[^/\s]+")

_CONFIGURED: bool = False


class MaxLevelFilter(logging.Filter):
    """Keep WARNING and above off stdout so bot errors only reach stderr once."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureTagFilter(logging.Filter):
    """
    Give every record a `tag` column.

    Bot components log through `get_tagged_logger` ("intent_router",
    "airvisual_client", "polling"...). Third-party loggers that the webhook
    server (uvicorn) and the HTTP clients (urllib3 under requests) emit
    through have no tag, so they get the last segment of their logger name,
    e.g. "uvicorn.access" -> "access".
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        """Fill in `record.tag` when the emitter did not provide one."""
        if not hasattr(record, "tag"):
            logger_name = getattr(record, "name", "")
            record.tag = logger_name.split(".")[-1] if logger_name else "-"
        return True


class JobNameFilter(logging.Filter):
    """
    Stamp records with the delivery mode the process runs in.

    run_server passes "airbot_polling" or "airbot_webhook", so log lines from
    the two deployments can be told apart once aggregated. Defaults to "-".
    """

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Build the dictConfig mapping used by both delivery modes.

    Routine traffic (updates handled, locations saved, provider calls) goes
    to stdout; failed fetches, Telegram API errors and polling back-offs are
    WARNING or above and go to stderr. `disable_existing_loggers` stays off
    so uvicorn loggers created before setup in webhook mode keep emitting.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "ensure_tag": {"()": EnsureTagFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
            "stdout_max_info": {
                "()": MaxLevelFilter,
                "max_level": logging.INFO,
            },
        },
        "formatters": {
            "standard": {
                "format": log_format,
                "datefmt": date_format,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_tag", "job_name", "stdout_max_info"],
                "level": "DEBUG",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_tag", "job_name"],
                "level": "WARNING",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["stdout", "stderr"],
        },
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
    override_existing: bool = False,
) -> None:
    """
    Configure logging for the bot process.

    run_server calls this once before preflight, with the level from
    AIRBOT_LOG_LEVEL and the job name of the chosen transport. Later calls
    are no-ops unless `override_existing` is True (tests use it to reset).
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    config_dict = build_logging_config(
        level=level,
        log_format=log_format,
        date_format=date_format,
        job_name=job_name,
    )
    logging.config.dictConfig(config_dict)
    _CONFIGURED = True


def get_tagged_logger(
    name: str,
    *,
    tag: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Return a LoggerAdapter for a bot component.

    The tag names the component in the log line, independent of transport.
    It defaults to the last segment of `name`, e.g.
    "airbot.data_sources.airvisual_client" -> "airvisual_client".
    """
    base_logger = logging.getLogger(name)
    if tag is None:
        tag = name.split(".")[-1]
    return logging.LoggerAdapter(base_logger, {"tag": tag})


def mask_secret_url(url: str) -> str:
    """Return a copy of a request URL (or error text quoting one) with credentials masked.

    Examples
    --------
    - https://api.airvisual.com/v2/nearest_city?lat=1&lon=2&key=abc
      -> https://api.airvisual.com/v2/nearest_city?lat=1&lon=2&key=***
    - https://api.telegram.org/bot123:ABC/sendMessage
      -> https://api.telegram.org/bot***/sendMessage
    """
    masked = _SENSITIVE_PARAM.sub(r"\1***", url)
    return _BOT_TOKEN_PATH.sub("/bot***", masked)
