"""Shared protocol for per-user location storage."""

from typing import Optional, Protocol

from airbot.domain import Coordinate, UserId


class LocationStore(Protocol):
    """Protocol for location storage backends. Operations never raise."""
    def get(self, user_id: UserId) -> Optional[Coordinate]:
        """Return the last coordinate stored for the user, or None if unknown."""

    def set(self, user_id: UserId, coordinate: Coordinate) -> None:
        """Store the coordinate, replacing any previous value (last write wins)."""

    def contains(self, user_id: UserId) -> bool:
        """Return True if a coordinate is known for the user."""

    def __len__(self) -> int:
        """Number of users with a known location."""

    def clear(self) -> None:
        """Forget every stored location."""
