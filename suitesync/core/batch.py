"""Debounced aggregation of file-listing requests.

Bursts of edits must not each spawn a runner process. Files requested
while a batch is pending join it, and every requester waits on the same
completion signal.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

LIST_TESTS_DELAY_SECONDS = 0.1


class PendingListBatch:
    """A single pending, time-delayed listing of a growing set of files."""

    def __init__(
        self,
        on_fire: Callable[["PendingListBatch"], Awaitable[None]],
        delay_seconds: float = LIST_TESTS_DELAY_SECONDS,
    ):
        """Create the batch and start its timer.

        Args:
            on_fire: Coroutine function invoked once the delay elapses.
                Failures are logged and swallowed so waiters are always
                released.
            delay_seconds: Debounce delay.
        """
        self._files: dict[str, None] = {}
        self._finished = asyncio.Event()
        self._on_fire = on_fire
        self._delay_seconds = delay_seconds
        self._task: asyncio.Task[None] = asyncio.create_task(self._run())

    @property
    def files(self) -> list[str]:
        return list(self._files)

    def add(self, files: list[str]) -> None:
        for file in files:
            self._files[file] = None

    async def wait(self) -> None:
        """Wait until the batch has been listed or cancelled."""
        await self._finished.wait()

    def cancel(self) -> None:
        """Stop the timer if it has not fired and release all waiters."""
        self._task.cancel()
        self._finished.set()

    async def _run(self) -> None:
        try:
            await asyncio.sleep(self._delay_seconds)
            await self._on_fire(self)
        except asyncio.CancelledError:
            logger.debug("Pending test listing cancelled")
        except Exception as e:
            logger.error(
                f"Failed to list tests for {len(self._files)} files: {e}",
                exc_info=True,
            )
        finally:
            self._finished.set()
