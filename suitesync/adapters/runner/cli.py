"""CLI runner client adapter.

Implements RunnerClientPort by spawning one runner process per call.
``list-files`` and ``find-related-test-files`` print JSON on stdout;
listings and runs stream their events to a reporter server instead.
"""

import asyncio
import json
import logging
import os
import subprocess
from collections.abc import Callable
from typing import Any

from suitesync.adapters.reporter.receiver import parse_error
from suitesync.core.cancellation import CancellationToken
from suitesync.core.models import (
    ListFilesReport,
    ProjectFiles,
    RunMode,
    RunOptions,
    TestConfig,
    TestError,
)
from suitesync.core.ports import ReporterPort, ReporterServerPort, RunnerClientPort

logger = logging.getLogger(__name__)

# How long a finished runner gets to flush its last reporter messages.
REPORTER_GRACE_SECONDS = 2.0


def parse_list_files_report(data: dict[str, Any]) -> ListFilesReport:
    """Convert ``list-files`` JSON output into a report.

    Raises:
        ValueError: If a project entry is missing required fields.
    """
    try:
        projects = [
            ProjectFiles(
                name=p.get("name", ""),
                test_dir=p["testDir"],
                use=dict(p.get("use") or {}),
                files=list(p.get("files", [])),
            )
            for p in data.get("projects", [])
        ]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed list-files output: {e}") from e
    error = parse_error(data["error"]) if data.get("error") else None
    return ListFilesReport(projects=projects, error=error)


class CliRunnerClient(RunnerClientPort):
    """Runs the runner CLI once per request."""

    def __init__(
        self,
        config: TestConfig,
        reporter_server_factory: Callable[[], ReporterServerPort],
        node_executable: str = "node",
        env: dict[str, str] | None = None,
        timeout_seconds: int = 60,
        runner_log: list[str] | None = None,
    ):
        """Initialize CLI runner client.

        Args:
            config: The configuration every call runs against.
            reporter_server_factory: Creates the endpoint a listing or run
                streams its events to.
            node_executable: Node binary used to start the runner CLI.
            env: Extra environment for runner processes.
            timeout_seconds: Timeout for JSON-producing commands.
            runner_log: Receives one line per runner command.
        """
        self.config = config
        self.reporter_server_factory = reporter_server_factory
        self.node_executable = node_executable
        self.env = env or {}
        self.timeout_seconds = timeout_seconds
        self.runner_log = runner_log if runner_log is not None else []

    @property
    def config_folder(self) -> str:
        return os.path.dirname(self.config.config_file)

    @property
    def config_name(self) -> str:
        return os.path.basename(self.config.config_file)

    def _log_command(self, args: list[str]) -> None:
        relative_folder = os.path.relpath(self.config_folder, self.config.workspace_folder)
        prefix = "" if relative_folder == "." else relative_folder
        line = f"{prefix}> playwright {' '.join(args)}"
        logger.debug(line)
        self.runner_log.append(line)

    def _relative(self, location: str) -> str:
        return os.path.relpath(location, self.config_folder)

    def _process_env(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        env = {**os.environ, **self.env, **(extra or {})}
        env.pop("ELECTRON_RUN_AS_NODE", None)
        env["FORCE_COLOR"] = "0"
        env["PW_TEST_HTML_REPORT_OPEN"] = "never"
        return env

    async def list_files(self) -> ListFilesReport:
        args = ["list-files", "-c", self.config_name]
        self._log_command(args)
        output = await self._run_json_command(args)
        return parse_list_files_report(output)

    async def find_related_test_files(self, files: list[str]) -> list[str]:
        self._log_command(["find-related-test-files", "-c", self.config_name])
        output = await self._run_json_command(
            ["find-related-test-files", "-c", self.config_name, *files]
        )
        for error in output.get("errors", []):
            logger.warning(f"Related test file lookup reported: {parse_error(error).message}")
        return list(output.get("testFiles", []))

    async def _run_json_command(self, args: list[str]) -> dict[str, Any]:
        """Run a runner command and parse the JSON object it prints.

        Raises:
            ValueError: If the output holds no JSON object.
            TimeoutError: If the command times out.
            RuntimeError: If the command exits non-zero.
        """
        command = [self.node_executable, self.config.cli, *args]
        try:
            loop = asyncio.get_running_loop()

            def _run_runner() -> str:
                try:
                    result = subprocess.run(
                        command,
                        cwd=self.config_folder,
                        env=self._process_env(),
                        capture_output=True,
                        text=True,
                        timeout=self.timeout_seconds,
                    )
                    if result.returncode != 0:
                        error_output = result.stderr or result.stdout
                        raise RuntimeError(f"Runner command {args[0]} failed: {error_output}")
                    return result.stdout
                except subprocess.TimeoutExpired:
                    raise TimeoutError(
                        f"Runner command {args[0]} timed out after {self.timeout_seconds} seconds"
                    )

            output = await loop.run_in_executor(None, _run_runner)

            start = output.find("{")
            if start == -1:
                raise ValueError(f"Runner did not return JSON. Output: {output[:200]}")
            try:
                parsed: dict[str, Any] = json.loads(output[start:])
            except json.JSONDecodeError as e:
                raise ValueError(f"Runner returned malformed JSON: {e}") from e
            return parsed

        except (TimeoutError, RuntimeError, ValueError) as e:
            logger.error(f"Runner command {args[0]} failed: {e}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Failed to invoke runner: {e}", exc_info=True)
            raise

    def _test_args(self, locations: list[str], mode: RunMode, options: RunOptions) -> list[str]:
        args = ["test", "-c", self.config_name]
        if mode == "list":
            args += ["--list", "--reporter=null"]
        args += [self._relative(location) for location in locations]
        if mode == "list":
            return args
        for project in options.projects or ():
            args.append(f"--project={project}")
        if options.headed:
            args.append("--headed")
        if options.workers is not None:
            args.append(f"--workers={options.workers}")
        if options.trace is not None:
            args.append(f"--trace={options.trace}")
        if options.grep:
            args.append(f"--grep={options.grep}")
        return args

    async def test(
        self,
        locations: list[str],
        mode: RunMode,
        options: RunOptions,
        reporter: ReporterPort,
        token: CancellationToken,
    ) -> None:
        args = self._test_args(locations, mode, options)
        self._log_command(args)

        reporter_server = self.reporter_server_factory()
        extra_env = dict(await reporter_server.env())
        if options.reuse_context:
            extra_env["PW_TEST_REUSE_CONTEXT"] = "1"
        if options.connect_ws_endpoint:
            extra_env["PW_TEST_CONNECT_WS_ENDPOINT"] = options.connect_ws_endpoint

        process = await asyncio.create_subprocess_exec(
            self.node_executable,
            self.config.cli,
            *args,
            cwd=self.config_folder,
            env=self._process_env(extra_env),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )

        def _kill() -> None:
            if process.returncode is None:
                logger.info(f"Stopping runner process {process.pid}")
                process.kill()

        disposable = token.on_cancellation_requested(_kill)
        listener = asyncio.create_task(reporter_server.wire_test_listener(mode, reporter, token))
        try:
            _, stderr = await process.communicate()
            try:
                await asyncio.wait_for(listener, timeout=REPORTER_GRACE_SECONDS)
            except asyncio.TimeoutError:
                # The runner exited without ever streaming a result.
                message = stderr.decode(errors="replace").strip()
                if message and not token.is_cancellation_requested:
                    reporter.on_error(TestError(message=message))
        finally:
            disposable.dispose()
            _kill()
            if not listener.done():
                listener.cancel()

    async def reset(self) -> None:
        """Nothing is cached between calls."""
