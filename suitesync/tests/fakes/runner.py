"""Fake RunnerClientPort implementation for testing."""

import asyncio
import os

from suitesync.core.cancellation import CancellationToken
from suitesync.core.models import (
    FullResult,
    ListFilesReport,
    Location,
    ProjectConfig,
    ProjectFiles,
    RunMode,
    RunOptions,
    Suite,
    TestCase,
    TestError,
    TestResult,
)
from suitesync.core.ports import ReporterPort, RunnerClientPort


def _location_file(location: str) -> str:
    file, sep, line = location.rpartition(":")
    return file if sep and line.isdigit() else location


class FakeRunnerClient(RunnerClientPort):
    """In-memory runner for testing.

    Describes a workspace through ``projects`` (name -> test dir),
    ``files`` (project name -> test files) and ``tests`` (file ->
    ``(title, line)`` pairs). Files in ``file_errors`` fail to list.
    Every call is recorded in ``log`` in a compact command form.
    """

    def __init__(self, config_file: str = "/ws/playwright.config.js"):
        self.config_file = config_file
        self.projects: dict[str, str] = {}
        self.files: dict[str, list[str]] = {}
        self.tests: dict[str, list[tuple[str, int]]] = {}
        self.file_errors: dict[str, TestError] = {}
        self.use: dict[str, object] = {}
        self.project_use: dict[str, dict[str, object]] = {}
        self.list_files_error: TestError | None = None
        self.list_files_exception: Exception | None = None
        self.related_files: dict[str, list[str]] = {}
        self.failing_tests: set[str] = set()
        self.block_runs = False
        self.run_started = asyncio.Event()

        self.log: list[str] = []
        self.run_options: list[RunOptions] = []
        self.reset_count = 0

    def add_project(self, name: str, test_dir: str, files: list[str] | None = None) -> None:
        self.projects[name] = test_dir
        self.files[name] = list(files or [])

    def set_tests(self, file: str, tests: list[tuple[str, int]]) -> None:
        self.tests[file] = list(tests)

    def _relative(self, path: str) -> str:
        return os.path.relpath(path, os.path.dirname(self.config_file))

    async def list_files(self) -> ListFilesReport:
        self.log.append("list-files")
        if self.list_files_exception is not None:
            raise self.list_files_exception
        if self.list_files_error is not None:
            return ListFilesReport(error=self.list_files_error)
        return ListFilesReport(
            projects=[
                ProjectFiles(
                    name=name,
                    test_dir=test_dir,
                    use=dict(self.project_use.get(name, self.use)),
                    files=list(self.files.get(name, [])),
                )
                for name, test_dir in self.projects.items()
            ]
        )

    def _build_root(self, locations: list[str], projects: tuple[str, ...] | None) -> Suite:
        files = {_location_file(location) for location in locations}
        root = Suite(title="", type="root")
        for name, test_dir in self.projects.items():
            if projects and name not in projects:
                continue
            project_suite = Suite(
                title=name,
                type="project",
                project_config=ProjectConfig(name=name, test_dir=test_dir, use=dict(self.use)),
            )
            root.add_suite(project_suite)
            for file in self.files.get(name, []):
                if locations and file not in files:
                    continue
                if file in self.file_errors:
                    continue
                file_suite = Suite(
                    title=self._relative(file),
                    type="file",
                    location=Location(file=file, line=0, column=0),
                )
                for title, line in self.tests.get(file, []):
                    file_suite.add_test(
                        TestCase(
                            id=f"{name}:{file}:{title}",
                            title=title,
                            location=Location(file=file, line=line, column=1),
                        )
                    )
                project_suite.add_suite(file_suite)
        return root

    async def test(
        self,
        locations: list[str],
        mode: RunMode,
        options: RunOptions,
        reporter: ReporterPort,
        token: CancellationToken,
    ) -> None:
        relative = " ".join(self._relative(location) for location in locations)
        if mode == "list":
            self.log.append(f"test --list {relative}".rstrip())
        else:
            self.log.append(f"test {relative}".rstrip())
            self.run_options.append(options)

        root = self._build_root(locations, options.projects if mode == "test" else None)
        for location in locations:
            error = self.file_errors.get(location)
            if error is not None:
                reporter.on_error(error)
        reporter.on_begin(root)
        if mode == "list":
            reporter.on_end(FullResult(status="passed"))
            return

        if self.block_runs:
            cancelled = asyncio.Event()
            token.on_cancellation_requested(cancelled.set)
            self.run_started.set()
            await cancelled.wait()
            reporter.on_end(FullResult(status="interrupted"))
            return

        failed = False
        for test in root.all_tests():
            reporter.on_test_begin(test, TestResult())
            status = "failed" if test.title in self.failing_tests else "passed"
            failed = failed or status == "failed"
            result = TestResult(status=status, duration=5.0)
            test.results.append(result)
            reporter.on_test_end(test, result)
        reporter.on_end(FullResult(status="failed" if failed else "passed"))

    async def find_related_test_files(self, files: list[str]) -> list[str]:
        self.log.append("find-related-test-files")
        result: dict[str, None] = {}
        for file in files:
            for related in self.related_files.get(file, [file]):
                result[related] = None
        return list(result)

    async def reset(self) -> None:
        self.reset_count += 1
