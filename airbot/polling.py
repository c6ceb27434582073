"""Long-polling delivery: pull updates from Telegram and handle each concurrently."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

from airbot.intent_router import IntentRouter
from airbot.telegram import TelegramClient, TelegramError, Update, to_incoming_message
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="polling")

RETRY_BACKOFF_SECONDS = 3.0


class LongPollingRunner:
    """Fetch update batches and submit each message to a worker pool.

    Updates from the same chat are not serialized; two messages in flight for
    one user may interleave.
    """

    def __init__(
        self,
        telegram: TelegramClient,
        router: IntentRouter,
        *,
        workers: int = 8,
        poll_timeout: int = 30,
        retry_backoff: float = RETRY_BACKOFF_SECONDS,
    ) -> None:
        """Initialize with the Bot API client, router and pool size."""
        self.telegram = telegram
        self.router = router
        self.poll_timeout = poll_timeout
        self.retry_backoff = retry_backoff
        self.workers = workers
        self.offset: Optional[int] = None
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="airbot-worker")
        self._stop = threading.Event()

    def handle_update(self, update: Update) -> bool:
        """Route one update and send the reply. Returns True if a reply was sent."""
        message = to_incoming_message(update)
        if message is None:
            return False
        try:
            reply = self.router.dispatch(message)
            if reply is None:
                return False
            self.telegram.send_reply(message.chat_id, reply)
            return True
        except TelegramError as exc:
            logger.error("Failed to deliver reply to chat %s: %s", message.chat_id, exc)
        except Exception:
            logger.exception("Unhandled error while processing update %s", update.update_id)
        return False

    def run_once(self) -> List[Future]:
        """Fetch one batch of updates, advance the offset and schedule handling."""
        updates = self.telegram.get_updates(offset=self.offset, timeout=self.poll_timeout)
        futures = []
        for update in updates:
            self.offset = update.update_id + 1
            futures.append(self._executor.submit(self.handle_update, update))
        if updates:
            logger.debug("Scheduled %d updates, next offset %s", len(updates), self.offset)
        return futures

    def run_forever(self) -> None:
        """Poll until `stop` is called; transport failures back off and retry."""
        logger.info("Starting long polling", extra={"workers": self.workers})
        try:
            while not self._stop.is_set():
                try:
                    self.run_once()
                except TelegramError as exc:
                    logger.warning("getUpdates failed: %s; retrying in %.1fs", exc, self.retry_backoff)
                    self._stop.wait(self.retry_backoff)
        finally:
            self.shutdown()

    def stop(self) -> None:
        """Ask `run_forever` to exit after the current poll."""
        self._stop.set()

    def shutdown(self) -> None:
        """Wait for in-flight updates and release the worker pool."""
        self._executor.shutdown(wait=True)
