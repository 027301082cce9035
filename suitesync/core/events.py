"""Payload-free update channels and disposables.

Consumers of ``on_updated`` always re-read the full state of the
publisher; the channel carries no payload and only says "something
changed". Listeners are called synchronously in subscription order.
"""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Disposable:
    """Runs a cleanup callback once."""

    def __init__(self, on_dispose: Callable[[], None]):
        self._on_dispose: Callable[[], None] | None = on_dispose

    def dispose(self) -> None:
        if self._on_dispose is None:
            return
        on_dispose, self._on_dispose = self._on_dispose, None
        on_dispose()


class DisposableBase:
    """Owns a list of disposables released together."""

    def __init__(self) -> None:
        self._disposables: list[Disposable] = []

    def dispose(self) -> None:
        for disposable in self._disposables:
            disposable.dispose()
        self._disposables = []


class EventEmitter:
    """Observer list with deterministic fan-out and explicit unsubscribe."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Disposable:
        """Register a listener. Dispose the result to unsubscribe."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Disposable(_unsubscribe)

    def fire(self) -> None:
        """Notify every listener subscribed at the time of the call.

        A failing listener is logged and does not prevent the others
        from being notified.
        """
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Update listener failed: {e}", exc_info=True)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def dispose(self) -> None:
        self._listeners.clear()
