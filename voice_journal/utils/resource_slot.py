"""
Single-occupant resource slots.

Used wherever only one holder of a scarce resource may be active at a time:
one microphone session per owner, one playing media element per player.
Occupying a slot releases the previous occupant first.
"""
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


class ResourceSlot(Generic[T]):
    """Holds at most one occupant per key."""

    def __init__(self, release: Callable[[T], None]):
        self._release = release
        self._occupants: Dict[Hashable, T] = {}

    def occupy(self, key: Hashable, occupant: T) -> Optional[T]:
        """
        Make ``occupant`` the holder for ``key``.

        Returns:
            The previous occupant, already released, or None
        """
        previous = self._occupants.get(key)
        if previous is not None and previous is not occupant:
            self._release(previous)
        self._occupants[key] = occupant
        return previous if previous is not occupant else None

    def vacate(self, key: Hashable, occupant: Optional[T] = None) -> None:
        """Free the slot without releasing; only if ``occupant`` still holds it when given."""
        current = self._occupants.get(key)
        if current is None:
            return
        if occupant is None or current is occupant:
            del self._occupants[key]

    def holder(self, key: Hashable) -> Optional[T]:
        return self._occupants.get(key)
