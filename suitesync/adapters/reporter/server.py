"""Reporter server adapter.

Implements ReporterServerPort with an aiohttp websocket endpoint bound
to an ephemeral localhost port. The runner's out-of-process reporter
finds the endpoint through environment variables, connects once and
streams tele-protocol messages until the run ends.
"""

import asyncio
import json
import logging
import socket
from typing import Any

from aiohttp import WSMsgType, web

from suitesync.adapters.reporter.receiver import TeleReceiver
from suitesync.core.cancellation import CancellationToken
from suitesync.core.models import RunMode
from suitesync.core.ports import ReporterPort, ReporterServerPort

logger = logging.getLogger(__name__)

REPORTER_ENV_VAR = "PW_TEST_REPORTER"
REPORTER_ENDPOINT_ENV_VAR = "PW_TEST_REPORTER_WS_ENDPOINT"


class ReporterServer(ReporterServerPort):
    """Single-use websocket endpoint for one run or debug session."""

    def __init__(self, reporter_module: str, host: str = "127.0.0.1"):
        """Initialize reporter server.

        Args:
            reporter_module: Path of the reporter module the runner loads.
            host: Interface to bind to.
        """
        self.reporter_module = reporter_module
        self.host = host
        self._runner: web.AppRunner | None = None
        self._port: int | None = None
        self._messages: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._ws: web.WebSocketResponse | None = None
        self._stop_requested = False
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def endpoint(self) -> str | None:
        if self._port is None:
            return None
        return f"ws://{self.host}:{self._port}/"

    async def env(self) -> dict[str, str]:
        await self._start()
        return {
            REPORTER_ENV_VAR: self.reporter_module,
            REPORTER_ENDPOINT_ENV_VAR: self.endpoint or "",
        }

    async def _start(self) -> None:
        if self._runner is not None:
            return
        app = web.Application()
        app.router.add_get("/", self._handle_reporter)
        runner = web.AppRunner(app)
        await runner.setup()

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind((self.host, 0))
        site = web.SockSite(runner, sock)
        await site.start()

        self._runner = runner
        self._port = sock.getsockname()[1]
        logger.debug(f"Reporter server listening on {self.endpoint}")

    async def _handle_reporter(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        if self._ws is not None:
            logger.warning("Rejecting second reporter connection")
            await ws.close()
            return ws

        self._ws = ws
        if self._stop_requested:
            await ws.send_json({"method": "stop"})

        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                try:
                    await self._messages.put(json.loads(msg.data))
                except json.JSONDecodeError as e:
                    logger.warning(f"Dropping malformed reporter message: {e}")
            elif msg.type == WSMsgType.ERROR:
                logger.error(f"Reporter connection failed: {ws.exception()}")
                break
        await self._messages.put(None)
        return ws

    async def wire_test_listener(
        self, mode: RunMode, reporter: ReporterPort, token: CancellationToken
    ) -> None:
        receiver = TeleReceiver(reporter, mode)
        disposable = token.on_cancellation_requested(self._request_stop)
        try:
            while not receiver.is_finished:
                message = await self._messages.get()
                if message is None:
                    break
                try:
                    receiver.dispatch(message)
                except ValueError as e:
                    logger.warning(f"Skipping reporter message: {e}")
        finally:
            disposable.dispose()
            await self.close()

    def _request_stop(self) -> None:
        self._stop_requested = True
        if self._ws is not None and not self._ws.closed:
            task = asyncio.create_task(self._ws.send_json({"method": "stop"}))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

    async def close(self) -> None:
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        await runner.cleanup()
        logger.debug("Reporter server stopped")
