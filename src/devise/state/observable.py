"""Minimal observable value for display bindings.

A holder of the current value plus explicit subscribe/unsubscribe. There are
no global observers: whoever renders a value subscribes to it and keeps the
returned unsubscribe callable.
"""

from collections.abc import Callable
from typing import Generic, TypeVar

from devise.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """Current value with change notification.

    ``set`` only notifies when the value actually changes. Subscribers are
    called synchronously in subscription order; one raising does not stop
    the others.
    """

    def __init__(self, initial: T, name: str = "") -> None:
        self._value = initial
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def name(self) -> str:
        return self._name

    def set(self, value: T) -> bool:
        """Store ``value`` and notify subscribers. Returns True if it changed."""
        if value == self._value:
            return False
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.warning("observable_subscriber_error", observable=self._name, exc_info=True)
        return True

    def subscribe(self, callback: Callable[[T], None], emit_current: bool = False) -> Callable[[], None]:
        """Register ``callback``; returns a callable that unsubscribes it."""
        self._subscribers.append(callback)
        if emit_current:
            callback(self._value)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: Callable[[T], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        return f"Observable({self._name or '?'}={self._value!r})"
