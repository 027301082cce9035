"""Persistent test-server runner client adapter.

Implements RunnerClientPort on top of one long-lived runner process.
The process prints ``Listening on ws://...`` once it is ready; requests
are JSON messages ``{"id", "method", "params"}`` answered by
``{"id", "result"}`` or ``{"id", "error"}``. Streamed listing and run
events arrive as ``{"method": "report", "params": <tele message>}``.
"""

import asyncio
import itertools
import logging
import os
import re
from collections.abc import Callable
from typing import Any

import aiohttp

from suitesync.adapters.reporter.receiver import TeleReceiver
from suitesync.adapters.runner.cli import parse_list_files_report
from suitesync.core.cancellation import CancellationToken
from suitesync.core.models import ListFilesReport, RunMode, RunOptions, TestConfig
from suitesync.core.ports import ReporterPort, RunnerClientPort

logger = logging.getLogger(__name__)

_LISTENING_RE = re.compile(r"Listening on (ws://\S+)")


class TestServerRunnerClient(RunnerClientPort):
    """Talks to a runner test server started on first use."""

    __test__ = False

    def __init__(
        self,
        config: TestConfig,
        node_executable: str = "node",
        env: dict[str, str] | None = None,
        timeout_seconds: int = 60,
        runner_log: list[str] | None = None,
        connect: Callable[[], Any] | None = None,
    ):
        """Initialize test-server client.

        Args:
            config: The configuration the server is started for.
            node_executable: Node binary used to start the runner CLI.
            env: Extra environment for the server process.
            timeout_seconds: Startup and per-request timeout, runs excluded.
            runner_log: Receives one line per request.
            connect: Optional coroutine function returning the websocket
                endpoint, replacing the process launch.
        """
        self.config = config
        self.node_executable = node_executable
        self.env = env or {}
        self.timeout_seconds = timeout_seconds
        self.runner_log = runner_log if runner_log is not None else []
        self._connect = connect
        self._process: asyncio.subprocess.Process | None = None
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task[None] | None = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._report_handler: Callable[[dict[str, Any]], None] | None = None
        self._start_lock = asyncio.Lock()
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def config_folder(self) -> str:
        return os.path.dirname(self.config.config_file)

    def _log_request(self, method: str, detail: str = "") -> None:
        relative_folder = os.path.relpath(self.config_folder, self.config.workspace_folder)
        prefix = "" if relative_folder == "." else relative_folder
        line = f"{prefix}> playwright test-server {method}" + (f" {detail}" if detail else "")
        logger.debug(line)
        self.runner_log.append(line)

    async def _ensure_connected(self) -> aiohttp.ClientWebSocketResponse:
        async with self._start_lock:
            if self._ws is not None and not self._ws.closed:
                return self._ws
            endpoint = await (self._connect() if self._connect else self._start_process())
            self._session = aiohttp.ClientSession()
            self._ws = await self._session.ws_connect(endpoint)
            self._reader = asyncio.create_task(self._read_messages(self._ws))
            logger.info(f"Connected to test server at {endpoint}")
            return self._ws

    async def _start_process(self) -> str:
        """Start the server process and wait for its endpoint.

        Raises:
            TimeoutError: If the server does not report an endpoint in time.
            RuntimeError: If the server exits before reporting one.
        """
        env = {**os.environ, **self.env, "FORCE_COLOR": "0"}
        env.pop("ELECTRON_RUN_AS_NODE", None)
        self._process = await asyncio.create_subprocess_exec(
            self.node_executable,
            self.config.cli,
            "test-server",
            "-c",
            os.path.basename(self.config.config_file),
            cwd=self.config_folder,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        assert self._process.stdout is not None

        async def _read_endpoint() -> str:
            assert self._process is not None and self._process.stdout is not None
            output: list[str] = []
            while line := await self._process.stdout.readline():
                text = line.decode(errors="replace")
                output.append(text)
                match = _LISTENING_RE.search(text)
                if match:
                    return match.group(1)
            raise RuntimeError(f"Test server exited: {''.join(output)[-500:]}")

        try:
            return await asyncio.wait_for(_read_endpoint(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error("Test server did not start in time", exc_info=True)
            await self._stop_process()
            raise TimeoutError(
                f"Test server did not start within {self.timeout_seconds} seconds"
            ) from e
        except RuntimeError as e:
            logger.error(f"Test server failed to start: {e}", exc_info=True)
            await self._stop_process()
            raise

    async def _read_messages(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                break
            try:
                data = msg.json()
            except ValueError as e:
                logger.warning(f"Dropping malformed test server message: {e}")
                continue
            if "id" in data:
                future = self._pending.pop(data["id"], None)
                if future is None or future.done():
                    continue
                if data.get("error"):
                    future.set_exception(RuntimeError(str(data["error"])))
                else:
                    future.set_result(data.get("result"))
            elif data.get("method") == "report" and self._report_handler is not None:
                self._report_handler(data.get("params") or {})
        for future in self._pending.values():
            if not future.done():
                future.set_exception(ConnectionError("Test server connection closed"))
        self._pending.clear()

    async def _send(self, method: str, params: dict[str, Any], timeout: float | None = None) -> Any:
        ws = await self._ensure_connected()
        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        await ws.send_json({"id": request_id, "method": method, "params": params})
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as e:
            self._pending.pop(request_id, None)
            logger.error(f"Test server request {method} timed out", exc_info=True)
            raise TimeoutError(f"Test server request {method} timed out") from e

    async def list_files(self) -> ListFilesReport:
        self._log_request("listFiles")
        result = await self._send("listFiles", {}, timeout=self.timeout_seconds)
        return parse_list_files_report(result or {})

    async def find_related_test_files(self, files: list[str]) -> list[str]:
        self._log_request("findRelatedTestFiles")
        result = await self._send(
            "findRelatedTestFiles", {"files": files}, timeout=self.timeout_seconds
        )
        return list((result or {}).get("testFiles", []))

    async def test(
        self,
        locations: list[str],
        mode: RunMode,
        options: RunOptions,
        reporter: ReporterPort,
        token: CancellationToken,
    ) -> None:
        relative_locations = [os.path.relpath(loc, self.config_folder) for loc in locations]
        receiver = TeleReceiver(reporter, mode)

        def _handle_report(message: dict[str, Any]) -> None:
            try:
                receiver.dispatch(message)
            except ValueError as e:
                logger.warning(f"Skipping reporter message: {e}")

        if mode == "list":
            method = "listTests"
            params: dict[str, Any] = {"locations": locations}
        else:
            method = "runTests"
            params = {
                "locations": locations,
                "grep": options.grep,
                "projects": list(options.projects) if options.projects is not None else None,
                "headed": options.headed,
                "workers": options.workers,
                "trace": options.trace,
                "reuseContext": options.reuse_context,
                "connectWsEndpoint": options.connect_ws_endpoint,
            }
        self._log_request(method, " ".join(relative_locations))

        disposable = token.on_cancellation_requested(self._request_stop)
        self._report_handler = _handle_report
        try:
            await self._send(method, params)
        finally:
            self._report_handler = None
            disposable.dispose()

    def _request_stop(self) -> None:
        task = asyncio.create_task(self._stop_tests())
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _stop_tests(self) -> None:
        try:
            await self._send("stopTests", {}, timeout=self.timeout_seconds)
        except Exception as e:
            logger.warning(f"Failed to stop tests: {e}")

    async def _stop_process(self) -> None:
        if self._process is not None and self._process.returncode is None:
            self._process.kill()
            await self._process.wait()
        self._process = None

    async def reset(self) -> None:
        """Close the connection and stop the server process."""
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._reader is not None:
            await self._reader
            self._reader = None
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        if self._session is not None:
            await self._session.close()
            self._session = None
        await self._stop_process()
