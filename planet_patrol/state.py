"""
Process-wide holders for the read-mostly snapshot and folder index.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class SharedReference(Generic[T]):
    """
    Single-writer, multiple-reader reference to an immutable value.

    Writers swap the whole value; readers get whichever complete value was
    current when they asked and never see a half-built one.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._lock = threading.Lock()
        self._generation = 0

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._generation += 1

    @property
    def generation(self) -> int:
        """Number of successful swaps since startup."""
        return self._generation
