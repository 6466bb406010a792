"""
Signal Bus.

In-process broadcast of named signals to downstream consumers (content
list, feed views). Listeners run synchronously on the event loop in
subscription order; a failing listener is logged and does not stop the
others.
"""

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Emitted when shared content was flushed and lists should reload
CONTENT_CHANGED = "content_changed"

Listener = Callable[[Any], None]


class SignalBus:
    """Named-signal publish/subscribe."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, name: str, listener: Listener) -> Callable[[], None]:
        """
        Subscribe to a signal.

        Returns:
            Callable that removes the subscription
        """
        self._listeners[name].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[name]:
                self._listeners[name].remove(listener)

        return unsubscribe

    def emit(self, name: str, payload: Any = None) -> int:
        """Deliver a signal to every listener. Returns how many were called."""
        listeners = list(self._listeners.get(name, ()))
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for signal '{name}' failed")
        logger.debug(f"Signal '{name}' delivered to {len(listeners)} listener(s)")
        return len(listeners)
