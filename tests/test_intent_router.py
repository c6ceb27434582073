import threading
import unittest
from datetime import datetime, timezone

from airbot.data_sources.airvisual_client import MalformedResponse, NetworkFailure, UpstreamError
from airbot.domain import AirReading, Coordinate, IncomingMessage, IntentKind
from airbot.intent_router import (
    FETCH_FAILED,
    LOCATION_REQUIRED,
    WELCOME_BACK,
    WELCOME_NEW_USER,
    IntentRouter,
)
from airbot.keyboards import AIR_QUALITY_BUTTON, location_keyboard, main_keyboard
from airbot.location_store import InMemoryLocationStore


class FakeAirClient:
    def __init__(self, reading=None, error=None):
        self.reading = reading
        self.error = error
        self.calls = []

    def fetch(self, coordinate):
        self.calls.append(coordinate)
        if self.error is not None:
            raise self.error
        return self.reading


def _reading(city="Moscow", aqi=42):
    return AirReading(city=city, aqi=aqi, fetched_at=datetime.now(timezone.utc))


class TestClassification(unittest.TestCase):
    def setUp(self):
        self.router = IntentRouter(InMemoryLocationStore(), FakeAirClient())

    def test_start_command(self):
        intent = self.router.classify(IncomingMessage(chat_id=1, text="/start"))
        self.assertEqual(intent.kind, IntentKind.START)

    def test_start_wins_over_attached_location(self):
        msg = IncomingMessage(chat_id=1, text="/start", location=Coordinate(1.0, 2.0))
        self.assertEqual(self.router.classify(msg).kind, IntentKind.START)

    def test_location_wins_over_air_quality_text(self):
        msg = IncomingMessage(chat_id=1, text=AIR_QUALITY_BUTTON, location=Coordinate(1.0, 2.0))
        intent = self.router.classify(msg)
        self.assertEqual(intent.kind, IntentKind.REPORT_LOCATION)
        self.assertEqual(intent.coordinate, Coordinate(1.0, 2.0))

    def test_air_quality_button(self):
        intent = self.router.classify(IncomingMessage(chat_id=1, text=AIR_QUALITY_BUTTON))
        self.assertEqual(intent.kind, IntentKind.REQUEST_AIR_QUALITY)

    def test_text_must_match_exactly(self):
        for text in ["/start now", "/START", " 🌫 Качество воздуха", "качество воздуха", "hello", None]:
            with self.subTest(text=text):
                self.assertIsNone(self.router.classify(IncomingMessage(chat_id=1, text=text)))

    def test_unmatched_message_is_silently_ignored(self):
        store = InMemoryLocationStore()
        air = FakeAirClient(reading=_reading())
        router = IntentRouter(store, air)
        self.assertIsNone(router.dispatch(IncomingMessage(chat_id=1, text="hello")))
        self.assertEqual(air.calls, [])
        self.assertEqual(len(store), 0)


class TestHandlers(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryLocationStore()
        self.air = FakeAirClient(reading=_reading())
        self.router = IntentRouter(self.store, self.air)

    def test_start_for_new_user(self):
        reply = self.router.dispatch(IncomingMessage(chat_id=42, text="/start"))
        self.assertEqual(reply.text, WELCOME_NEW_USER)
        self.assertEqual(reply.keyboard, location_keyboard())

    def test_start_for_returning_user(self):
        self.store.set(42, Coordinate(55.75, 37.62))
        reply = self.router.dispatch(IncomingMessage(chat_id=42, text="/start"))
        self.assertEqual(reply.text, WELCOME_BACK)
        self.assertEqual(reply.keyboard, main_keyboard())

    def test_shared_location_is_stored_and_confirmed(self):
        reply = self.router.dispatch(IncomingMessage(chat_id=42, location=Coordinate(55.75, 37.62)))
        self.assertEqual(self.store.get(42), Coordinate(55.75, 37.62))
        self.assertIn("55.75, 37.62", reply.text)
        self.assertTrue(reply.text.startswith("✅"))
        self.assertEqual(reply.keyboard, main_keyboard())
        self.assertIsNone(reply.parse_mode)

    def test_whole_degree_location_is_confirmed_without_trailing_zero(self):
        reply = self.router.dispatch(IncomingMessage(chat_id=42, location=Coordinate(55.0, 37.0)))
        self.assertTrue(reply.text.endswith("55, 37"))
        self.assertNotIn("55.0", reply.text)

    def test_air_quality_without_location_skips_network(self):
        reply = self.router.dispatch(IncomingMessage(chat_id=42, text=AIR_QUALITY_BUTTON))
        self.assertEqual(reply.text, LOCATION_REQUIRED)
        self.assertEqual(reply.keyboard, location_keyboard())
        self.assertEqual(self.air.calls, [])

    def test_air_quality_report(self):
        self.store.set(42, Coordinate(55.75, 37.62))
        reply = self.router.dispatch(IncomingMessage(chat_id=42, text=AIR_QUALITY_BUTTON))
        self.assertEqual(self.air.calls, [Coordinate(55.75, 37.62)])
        self.assertIn("Moscow", reply.text)
        self.assertIn("42", reply.text)
        self.assertIn("🟢 Отлично", reply.text)
        self.assertEqual(reply.parse_mode, "MarkdownV2")
        self.assertEqual(reply.keyboard, main_keyboard())

    def test_report_uses_latest_location(self):
        self.router.dispatch(IncomingMessage(chat_id=42, location=Coordinate(1.0, 1.0)))
        self.router.dispatch(IncomingMessage(chat_id=42, location=Coordinate(2.0, 2.0)))
        self.router.dispatch(IncomingMessage(chat_id=42, text=AIR_QUALITY_BUTTON))
        self.assertEqual(self.air.calls, [Coordinate(2.0, 2.0)])

    def test_fetch_errors_produce_apology_not_exception(self):
        self.store.set(42, Coordinate(55.75, 37.62))
        for error in (NetworkFailure("down"), UpstreamError(429, "rate limited"), MalformedResponse("bad")):
            with self.subTest(error=type(error).__name__):
                router = IntentRouter(self.store, FakeAirClient(error=error))
                reply = router.dispatch(IncomingMessage(chat_id=42, text=AIR_QUALITY_BUTTON))
                self.assertEqual(reply.text, FETCH_FAILED)
                self.assertEqual(reply.keyboard, main_keyboard())

    def test_upstream_failure_does_not_affect_other_users(self):
        self.store.set(1, Coordinate(1.0, 1.0))
        failing = IntentRouter(self.store, FakeAirClient(error=UpstreamError(500)))
        failing.dispatch(IncomingMessage(chat_id=1, text=AIR_QUALITY_BUTTON))
        reply = failing.dispatch(IncomingMessage(chat_id=2, text="/start"))
        self.assertEqual(reply.text, WELCOME_NEW_USER)

    def test_concurrent_dispatch_for_many_users(self):
        replies = {}

        def chat(user_id):
            self.router.dispatch(IncomingMessage(chat_id=user_id, location=Coordinate(float(user_id), 0.0)))
            replies[user_id] = self.router.dispatch(IncomingMessage(chat_id=user_id, text=AIR_QUALITY_BUTTON))

        threads = [threading.Thread(target=chat, args=(i,)) for i in range(25)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(self.store), 25)
        self.assertEqual(len(replies), 25)
        self.assertTrue(all(r.parse_mode == "MarkdownV2" for r in replies.values()))


if __name__ == "__main__":
    unittest.main()
