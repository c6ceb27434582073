import os
import signal

import uvicorn

from airbot.bot_factory import build_intent_router, build_telegram_client
from airbot.config import StartupConfigurationError, settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def preflight() -> None:
    """
    Fail fast on missing credentials before serving anything:
    - AIR_API_KEY is always required.
    - TELEGRAM_BOT_TOKEN is required to send replies in either transport mode.
    """
    try:
        settings.require_air_api_key()
        settings.require_telegram_bot_token()
    except StartupConfigurationError as exc:
        logger.error(f"Startup configuration error: {exc}")
        raise SystemExit(1) from exc


def run_polling() -> None:
    """Serve updates via long polling until interrupted."""
    from airbot.polling import LongPollingRunner

    runner = LongPollingRunner(
        build_telegram_client(settings),
        build_intent_router(settings),
        workers=settings.polling_workers,
        poll_timeout=settings.polling_timeout_seconds,
    )
    signal.signal(signal.SIGTERM, lambda *_: runner.stop())
    try:
        runner.run_forever()
    except KeyboardInterrupt:
        runner.stop()


def run_webhook() -> None:
    """Serve Telegram webhook calls with uvicorn."""
    uvicorn.run(
        "airbot.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name=f"airbot_{settings.transport}")
    preflight()

    if settings.transport == "webhook":
        run_webhook()
    else:
        run_polling()
