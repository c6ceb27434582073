"""Location storage backends."""

from .base import LocationStore
from .memory import InMemoryLocationStore, ReadWriteLock

__all__ = [
    "LocationStore",
    "InMemoryLocationStore",
    "ReadWriteLock",
]
