import unittest
from datetime import datetime, timezone

from airbot.domain import AirReading
from airbot.intent_router import IntentRouter, WELCOME_NEW_USER
from airbot.location_store import InMemoryLocationStore
from airbot.polling import LongPollingRunner
from airbot.telegram import TelegramError, Update


def _update(update_id, chat_id, text=None, location=None):
    message = {"chat": {"id": chat_id}}
    if text is not None:
        message["text"] = text
    if location is not None:
        message["location"] = {"latitude": location[0], "longitude": location[1]}
    return Update.model_validate({"update_id": update_id, "message": message})


class FakeTelegram:
    def __init__(self, batches=None, fail_send=False):
        self.batches = list(batches or [])
        self.fail_send = fail_send
        self.sent = []
        self.offsets = []

    def get_updates(self, offset=None, timeout=30):
        self.offsets.append(offset)
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch

    def send_reply(self, chat_id, reply):
        if self.fail_send:
            raise TelegramError("blocked by user")
        self.sent.append((chat_id, reply))


class FakeAirClient:
    def fetch(self, coordinate):
        return AirReading(city="Moscow", aqi=42, fetched_at=datetime.now(timezone.utc))


class TestLongPollingRunner(unittest.TestCase):
    def _runner(self, telegram):
        router = IntentRouter(InMemoryLocationStore(), FakeAirClient())
        return LongPollingRunner(telegram, router, workers=4, poll_timeout=1, retry_backoff=0)

    def test_run_once_dispatches_and_advances_offset(self):
        telegram = FakeTelegram(batches=[[_update(7, 42, text="/start"), _update(8, 43, text="noise")]])
        runner = self._runner(telegram)
        try:
            futures = runner.run_once()
            results = [f.result(timeout=5) for f in futures]
        finally:
            runner.shutdown()

        self.assertEqual(results, [True, False])
        self.assertEqual(runner.offset, 9)
        self.assertEqual(len(telegram.sent), 1)
        chat_id, reply = telegram.sent[0]
        self.assertEqual(chat_id, 42)
        self.assertEqual(reply.text, WELCOME_NEW_USER)

    def test_next_poll_uses_advanced_offset(self):
        telegram = FakeTelegram(batches=[[_update(3, 1, text="/start")], []])
        runner = self._runner(telegram)
        try:
            for f in runner.run_once():
                f.result(timeout=5)
            runner.run_once()
        finally:
            runner.shutdown()
        self.assertEqual(telegram.offsets, [None, 4])

    def test_send_failure_is_contained(self):
        telegram = FakeTelegram(fail_send=True)
        runner = self._runner(telegram)
        try:
            self.assertFalse(runner.handle_update(_update(1, 42, text="/start")))
        finally:
            runner.shutdown()

    def test_run_forever_retries_after_poll_failure_and_stops(self):
        telegram = FakeTelegram(batches=[TelegramError("502"), [_update(1, 42, text="/start")]])
        runner = self._runner(telegram)
        real_run_once = runner.run_once

        def run_once_then_stop():
            futures = real_run_once()
            if runner.offset is not None:
                for f in futures:
                    f.result(timeout=5)
                runner.stop()
            return futures

        runner.run_once = run_once_then_stop
        runner.run_forever()

        self.assertEqual(len(telegram.offsets), 2)
        self.assertEqual(len(telegram.sent), 1)


if __name__ == "__main__":
    unittest.main()
