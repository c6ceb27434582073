"""Process-lifetime in-memory location store guarded by a reader/writer lock."""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from airbot.domain import Coordinate, UserId
from airbot.location_store.base import LocationStore

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="location_store/in_memory_location_store")


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer, never both.

    Waiting writers block new readers so a steady stream of `get` calls
    cannot starve a `set`.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode for the duration of the block."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock exclusively for the duration of the block."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class InMemoryLocationStore(LocationStore):
    """Thread-safe UserId -> Coordinate map with no eviction, TTL or size bound."""

    def __init__(self) -> None:
        """Create an empty store."""
        logger.debug("Initializing InMemoryLocationStore")
        self._locations: dict[UserId, Coordinate] = {}
        self._lock = ReadWriteLock()

    def get(self, user_id: UserId) -> Optional[Coordinate]:
        """Return the stored coordinate or None if the user never shared one."""
        with self._lock.read():
            return self._locations.get(user_id)

    def set(self, user_id: UserId, coordinate: Coordinate) -> None:
        """Store the coordinate; returns only after the write is visible to readers."""
        with self._lock.write():
            self._locations[user_id] = coordinate
        logger.debug("Stored location", extra={"user_id": user_id})

    def contains(self, user_id: UserId) -> bool:
        """Return True if the user has a stored coordinate."""
        with self._lock.read():
            return user_id in self._locations

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._locations)

    def clear(self) -> None:
        """Drop all locations (tests only)."""
        with self._lock.write():
            self._locations.clear()
