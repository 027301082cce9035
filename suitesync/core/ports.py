"""Port interfaces for the SuiteSync test-model engine.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - RunnerClientPort: List files, list tests, run tests via the runner
   - SourceMapPort: Map compiled output files to original sources
   - SettingsStorePort: Persist configuration and project enablement
   - RunHooksPort: Acquire and release run-time resources around a run
   - ReporterServerPort: Receive streamed results from a debugged runner
   - DebugLauncherPort: Start the runner under a debugger

2. **Sinks** (adapters push results into core-provided objects)
   - ReporterPort: Receives streamed listing and run events
"""

from abc import ABC, abstractmethod

from .cancellation import CancellationToken
from .models import (
    DebugLaunchConfig,
    FullResult,
    ListFilesReport,
    RunHookResult,
    RunMode,
    RunOptions,
    Suite,
    TestCase,
    TestConfig,
    TestError,
    TestResult,
    WorkspaceSettings,
)


# ============================================================================
# SINKS
# ============================================================================


class ReporterPort:
    """Sink for streamed runner events.

    Every method is optional: the base implementation ignores the event,
    so reporters override only what they consume.
    """

    def on_configure(self, root_dir: str) -> None:
        """Called once before any project is reported."""

    def on_begin(self, suite: Suite) -> None:
        """Called with the root suite once every project has been reported."""

    def on_test_begin(self, test: TestCase, result: TestResult) -> None:
        """Called when an attempt of ``test`` starts."""

    def on_test_end(self, test: TestCase, result: TestResult) -> None:
        """Called when an attempt of ``test`` finishes."""

    def on_std_out(self, text: str, test: TestCase | None = None) -> None:
        """Called for output written to stdout by the runner or a test."""

    def on_std_err(self, text: str, test: TestCase | None = None) -> None:
        """Called for output written to stderr by the runner or a test."""

    def on_error(self, error: TestError) -> None:
        """Called for errors not attributable to a single test.

        Listing errors (e.g. a syntax error in a test file) arrive here
        with a location rooted at the offending file.
        """

    def on_end(self, result: FullResult) -> None:
        """Called once when the runner finishes."""


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class RunnerClientPort(ABC):
    """Port for talking to the external test runner.

    Two strategies exist: one process per call (CLI) and one long-lived
    server process. The model picks one at construction time and never
    switches.

    Implementations must handle:
    - Translating absolute locations to what the runner expects
    - Streaming results into the given reporter as they arrive
    - Stopping the runner when the token is cancelled
    """

    @abstractmethod
    async def list_files(self) -> ListFilesReport:
        """List the test files of every project in the configuration.

        Returns:
            ListFilesReport. A configuration that fails to load may be
            reported either through ``report.error`` or by raising.

        Raises:
            Exception: If the runner cannot be started or its output
                cannot be understood.
        """

    @abstractmethod
    async def test(
        self,
        locations: list[str],
        mode: RunMode,
        options: RunOptions,
        reporter: ReporterPort,
        token: CancellationToken,
    ) -> None:
        """List or run tests, streaming events into ``reporter``.

        Args:
            locations: Absolute file paths, optionally suffixed with
                ``:line``. Empty means everything.
            mode: "list" discovers tests without running them,
                "test" runs them.
            options: Runner options for "test" mode.
            reporter: Sink receiving on_begin, on_test_*, on_error, on_end.
            token: Cooperative cancellation; the adapter stops the
                runner when cancellation is requested.
        """

    @abstractmethod
    async def find_related_test_files(self, files: list[str]) -> list[str]:
        """Return test files that import any of ``files`` (or are one)."""

    @abstractmethod
    async def reset(self) -> None:
        """Drop any runner-side cached process or session state."""


class SourceMapPort(ABC):
    """Port for resolving compiled output files to their original sources."""

    @abstractmethod
    async def resolve(self, file: str) -> list[str]:
        """Return the original sources of ``file``.

        Returns:
            One or more absolute paths. A file without a source map
            resolves to ``[file]``.
        """


class SettingsStorePort(ABC):
    """Port for persisting per-configuration and per-project enablement."""

    @abstractmethod
    async def load(self) -> WorkspaceSettings:
        """Return the persisted settings, empty if nothing was saved yet."""

    @abstractmethod
    async def save(self, settings: WorkspaceSettings) -> None:
        """Replace the persisted settings."""


class RunHooksPort(ABC):
    """Port for resources acquired around a test run (e.g. a shared browser)."""

    @abstractmethod
    async def on_will_run_tests(
        self, config: TestConfig, is_debug: bool
    ) -> RunHookResult:
        """Called before a run or debug session starts."""

    @abstractmethod
    async def on_did_run_tests(self, is_debug: bool) -> None:
        """Called after a run or debug session, however it ended."""


class ReporterServerPort(ABC):
    """Port for an endpoint an out-of-process reporter streams events to."""

    @abstractmethod
    async def env(self) -> dict[str, str]:
        """Start listening and return env vars pointing the runner at us."""

    @abstractmethod
    async def wire_test_listener(
        self, mode: RunMode, reporter: ReporterPort, token: CancellationToken
    ) -> None:
        """Forward streamed events to ``reporter`` until the run ends.

        Cancelling ``token`` asks the connected runner to stop.
        """


class DebugLauncherPort(ABC):
    """Port for starting the runner under a debugger."""

    @abstractmethod
    async def start_debugging(self, launch_config: DebugLaunchConfig) -> None:
        """Start a debug session. Returns once the debuggee has started.

        Raises:
            Exception: If the debuggee cannot be started.
        """
