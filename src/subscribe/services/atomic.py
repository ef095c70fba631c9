"""Compare-and-swap reference cell for shared in-memory state."""

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class AtomicRef(Generic[T]):
    """A mutable reference to an immutable value.

    Writers never mutate the held value in place. They build a new value from
    a snapshot and publish it with ``compare_and_set``, retrying if another
    writer got there first. Readers call ``get()`` and always see a complete
    snapshot.

    The internal lock only covers the identity check and the assignment, so
    it is never held across I/O or user callbacks.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> T:
        return self._value

    def compare_and_set(self, expected: T, new: T) -> bool:
        """Publish ``new`` only if the current value is still ``expected``."""
        with self._lock:
            if self._value is not expected:
                return False
            self._value = new
            return True

    def swap(self, fn: Callable[[T], T]) -> tuple[T, T]:
        """Apply ``fn`` to the current value until the update lands.

        ``fn`` may run several times under contention and must be free of
        side effects.

        Returns:
            The ``(old, new)`` pair that was actually published.
        """
        while True:
            old = self._value
            new = fn(old)
            if self.compare_and_set(old, new):
                return old, new

    def reset(self, value: T) -> None:
        with self._lock:
            self._value = value
