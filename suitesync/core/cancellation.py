"""Cooperative cancellation for runs, debug sessions and listings."""

from .events import Disposable, EventEmitter, Listener


class CancellationToken:
    """Read side of a cancellation source."""

    def __init__(self) -> None:
        self._cancelled = False
        self._emitter = EventEmitter()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def on_cancellation_requested(self, listener: Listener) -> Disposable:
        """Call ``listener`` on cancellation, immediately if already cancelled."""
        if self._cancelled:
            listener()
            return Disposable(lambda: None)
        return self._emitter.subscribe(listener)

    def _cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._emitter.fire()
        self._emitter.dispose()


class CancellationTokenSource:
    """Creates and cancels a token."""

    def __init__(self) -> None:
        self.token = CancellationToken()

    def cancel(self) -> None:
        self.token._cancel()
