"""Domain models for the SuiteSync test-model engine.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Optional, TypeAlias

SuiteType: TypeAlias = Literal["root", "project", "file", "describe"]
RunMode: TypeAlias = Literal["list", "test"]
TestStatus: TypeAlias = Literal["passed", "failed", "timedOut", "skipped", "interrupted"]
TraceMode: TypeAlias = Literal["on", "off"]


@dataclass(frozen=True)
class Location:
    """A position in a source file. Lines are 1-based, columns 0-based."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class TestError:
    """An error reported by the runner, optionally rooted at a file."""

    __test__ = False

    message: str
    location: Location | None = None
    stack: str | None = None


@dataclass(frozen=True)
class TestResult:
    """Outcome of a single attempt of a test."""

    __test__ = False

    retry: int = 0
    status: TestStatus = "passed"
    duration: float = 0.0
    errors: tuple[TestError, ...] = ()


@dataclass(frozen=True)
class FullResult:
    """Overall outcome of a runner invocation."""

    status: Literal["passed", "failed", "timedout", "interrupted"]


@dataclass(frozen=True)
class ProjectConfig:
    """Runner-side description of a project."""

    name: str
    test_dir: str
    use: dict[str, Any] | MappingProxyType[str, Any] = field(
        default_factory=dict
    )  # converted to proxy in __post_init__

    def __post_init__(self) -> None:
        """Convert use dict to read-only proxy."""
        if isinstance(self.use, dict):
            object.__setattr__(self, "use", MappingProxyType(self.use))

    @property
    def test_id_attribute(self) -> str | None:
        return self.use.get("testIdAttribute")


@dataclass
class ProjectFiles:
    """A project entry of a list-files report.

    Mutable: ``files`` is rewritten in place after source-map expansion.
    """

    name: str
    test_dir: str
    use: Mapping[str, Any]
    files: list[str]


@dataclass
class ListFilesReport:
    """Result of asking the runner which test files each project owns."""

    projects: list[ProjectFiles] = field(default_factory=list)
    error: TestError | None = None


@dataclass(eq=False)
class TestCase:
    """A single test discovered by listing or reported by a run."""

    __test__ = False

    id: str
    title: str
    location: Location
    parent: Optional["Suite"] = field(default=None, repr=False)
    results: list[TestResult] = field(default_factory=list)

    def title_path(self) -> list[str]:
        """Titles from the project down to this test, skipping empty ones."""
        path = self.parent.title_path() if self.parent else []
        return path + [self.title]


@dataclass(eq=False)
class Suite:
    """A node of the in-memory test tree.

    Identity matters: file suites are replaced wholesale, so two suites
    with equal fields are still distinct nodes.

    ``from_list_files`` marks a placeholder file node created from a
    bare file listing, as opposed to one produced by listing or running
    the tests inside the file.
    """

    title: str
    type: SuiteType
    location: Location | None = None
    suites: list["Suite"] = field(default_factory=list)
    tests: list[TestCase] = field(default_factory=list)
    parent: Optional["Suite"] = field(default=None, repr=False)
    project_config: ProjectConfig | None = None
    from_list_files: bool = False

    def all_tests(self) -> list[TestCase]:
        """All tests in this suite and its descendants, in tree order."""
        result = list(self.tests)
        for suite in self.suites:
            result.extend(suite.all_tests())
        return result

    def project(self) -> ProjectConfig | None:
        """The project this suite belongs to, if any."""
        suite: Suite | None = self
        while suite is not None:
            if suite.project_config is not None:
                return suite.project_config
            suite = suite.parent
        return None

    def title_path(self) -> list[str]:
        path = self.parent.title_path() if self.parent else []
        if self.title and self.type != "project":
            path.append(self.title)
        return path

    def add_suite(self, suite: "Suite") -> None:
        suite.parent = self
        self.suites.append(suite)

    def add_test(self, test: TestCase) -> None:
        test.parent = self
        self.tests.append(test)


@dataclass(frozen=True)
class TestConfig:
    """One discovered runner configuration. Immutable after creation."""

    __test__ = False

    workspace_folder: str
    config_file: str
    cli: str
    version: float


@dataclass(frozen=True)
class WorkspaceChange:
    """Coalesced filesystem changes, as absolute paths."""

    created: frozenset[str] = frozenset()
    changed: frozenset[str] = frozenset()
    deleted: frozenset[str] = frozenset()

    def is_empty(self) -> bool:
        return not (self.created or self.changed or self.deleted)


@dataclass(frozen=True)
class RunOptions:
    """Options forwarded to the runner for a test or list invocation."""

    headed: bool = False
    workers: int | None = None
    trace: TraceMode | None = None
    projects: tuple[str, ...] | None = None
    grep: str | None = None
    reuse_context: bool = False
    connect_ws_endpoint: str | None = None


@dataclass(frozen=True)
class RunHookResult:
    """Run-time overrides obtained before a run starts."""

    connect_ws_endpoint: str | None = None


@dataclass(frozen=True)
class DebugLaunchConfig:
    """Everything needed to start the runner under a debugger."""

    name: str
    cwd: str
    env: Mapping[str, str]
    program: str
    args: tuple[str, ...]


@dataclass
class ProjectSettings:
    """Persisted enablement of one project."""

    name: str
    enabled: bool


@dataclass
class ConfigSettings:
    """Persisted state of one configuration."""

    relative_config_file: str
    selected: bool = False
    enabled: bool = False
    projects: list[ProjectSettings] = field(default_factory=list)


@dataclass
class WorkspaceSettings:
    """Everything persisted for a workspace."""

    configs: list[ConfigSettings] = field(default_factory=list)
