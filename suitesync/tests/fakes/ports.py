"""Fake implementations of the smaller core ports for testing."""

from suitesync.core.cancellation import CancellationToken
from suitesync.core.models import (
    DebugLaunchConfig,
    FullResult,
    RunHookResult,
    RunMode,
    Suite,
    TestCase,
    TestConfig,
    TestError,
    TestResult,
    WorkspaceSettings,
)
from suitesync.core.ports import (
    DebugLauncherPort,
    ReporterPort,
    ReporterServerPort,
    RunHooksPort,
    SettingsStorePort,
    SourceMapPort,
)


class FakeRunHooks(RunHooksPort):
    """Records hook calls and hands out a configurable endpoint."""

    def __init__(self, connect_ws_endpoint: str | None = None):
        self.connect_ws_endpoint = connect_ws_endpoint
        self.calls: list[tuple[str, bool]] = []

    async def on_will_run_tests(self, config: TestConfig, is_debug: bool) -> RunHookResult:
        self.calls.append(("will", is_debug))
        return RunHookResult(connect_ws_endpoint=self.connect_ws_endpoint)

    async def on_did_run_tests(self, is_debug: bool) -> None:
        self.calls.append(("did", is_debug))


class FakeSourceMapPort(SourceMapPort):
    """Maps files through a fixed table; unmapped files map to themselves."""

    def __init__(self, mapping: dict[str, list[str]] | None = None):
        self.mapping = mapping or {}
        self.resolve_calls: list[str] = []

    async def resolve(self, file: str) -> list[str]:
        self.resolve_calls.append(file)
        return list(self.mapping.get(file, [file]))


class FakeSettingsStorePort(SettingsStorePort):
    """In-memory settings store that keeps every saved snapshot."""

    def __init__(self, settings: WorkspaceSettings | None = None):
        self.settings = settings or WorkspaceSettings()
        self.saved: list[WorkspaceSettings] = []

    async def load(self) -> WorkspaceSettings:
        return self.settings

    async def save(self, settings: WorkspaceSettings) -> None:
        self.settings = settings
        self.saved.append(settings)


class FakeDebugLauncher(DebugLauncherPort):
    """Captures launch configurations; optionally fails to start."""

    def __init__(self, should_fail: bool = False):
        self.should_fail = should_fail
        self.launches: list[DebugLaunchConfig] = []

    async def start_debugging(self, launch_config: DebugLaunchConfig) -> None:
        if self.should_fail:
            raise RuntimeError("Debugger failed to start")
        self.launches.append(launch_config)


class FakeReporterServer(ReporterServerPort):
    """Reporter server that immediately reports an empty finished run."""

    def __init__(self, env: dict[str, str] | None = None):
        self._env = env or {"PW_TEST_REPORTER_WS_ENDPOINT": "ws://127.0.0.1:1/"}
        self.wired: list[RunMode] = []

    async def env(self) -> dict[str, str]:
        return dict(self._env)

    async def wire_test_listener(
        self, mode: RunMode, reporter: ReporterPort, token: CancellationToken
    ) -> None:
        self.wired.append(mode)
        reporter.on_begin(Suite(title="", type="root"))
        reporter.on_end(FullResult(status="passed"))


class RecordingReporter(ReporterPort):
    """Records every reporter event as a readable line."""

    def __init__(self) -> None:
        self.events: list[str] = []
        self.root_suite: Suite | None = None
        self.errors: list[TestError] = []
        self.results: list[tuple[TestCase, TestResult]] = []

    def on_configure(self, root_dir: str) -> None:
        self.events.append(f"configure {root_dir}")

    def on_begin(self, suite: Suite) -> None:
        self.root_suite = suite
        self.events.append("begin")

    def on_test_begin(self, test: TestCase, result: TestResult) -> None:
        self.events.append(f"test-begin {test.title}")

    def on_test_end(self, test: TestCase, result: TestResult) -> None:
        self.results.append((test, result))
        self.events.append(f"test-end {test.title} {result.status}")

    def on_std_out(self, text: str, test: TestCase | None = None) -> None:
        self.events.append(f"stdout {text}")

    def on_std_err(self, text: str, test: TestCase | None = None) -> None:
        self.events.append(f"stderr {text}")

    def on_error(self, error: TestError) -> None:
        self.errors.append(error)
        self.events.append(f"error {error.message}")

    def on_end(self, result: FullResult) -> None:
        self.events.append(f"end {result.status}")
