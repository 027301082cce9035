"""Tele-protocol receiver.

Decodes the JSON messages streamed by the runner's out-of-process
reporter into a Suite tree and ReporterPort calls. Messages have the
shape ``{"method": "onTestEnd", "params": {...}}``.

Project payloads carry their suites as::

    {"title": "...", "location": {"file": ..., "line": ..., "column": ...},
     "suites": [...], "tests": [{"testId": ..., "title": ..., "location": ...}]}

Top-level suites of a project are file suites; deeper ones are describes.
"""

import logging
from typing import Any

from suitesync.core.models import (
    FullResult,
    Location,
    ProjectConfig,
    RunMode,
    Suite,
    TestCase,
    TestError,
    TestResult,
)
from suitesync.core.ports import ReporterPort

logger = logging.getLogger(__name__)


def parse_location(data: dict[str, Any] | None) -> Location | None:
    if not data:
        return None
    return Location(
        file=data["file"],
        line=int(data.get("line", 0)),
        column=int(data.get("column", 0)),
    )


def parse_error(data: dict[str, Any]) -> TestError:
    return TestError(
        message=data.get("message") or data.get("value") or "",
        location=parse_location(data.get("location")),
        stack=data.get("stack"),
    )


class TeleReceiver:
    """Rebuilds the runner's suite tree and forwards events to a reporter.

    One receiver handles exactly one listing or run.
    """

    def __init__(self, reporter: ReporterPort, mode: RunMode = "test"):
        self._reporter = reporter
        self._mode = mode
        self._root_suite = Suite(title="", type="root")
        self._tests: dict[str, TestCase] = {}
        self.is_finished = False

    @property
    def root_suite(self) -> Suite:
        return self._root_suite

    def dispatch(self, message: dict[str, Any]) -> None:
        """Handle one message. Unknown methods are ignored.

        Raises:
            ValueError: If a known message is missing required fields.
        """
        method = message.get("method")
        params = message.get("params") or {}
        if self._mode == "list" and method in ("onTestBegin", "onTestEnd"):
            return
        try:
            if method == "onConfigure":
                self._on_configure(params)
            elif method == "onProject":
                self._on_project(params)
            elif method == "onBegin":
                self._reporter.on_begin(self._root_suite)
            elif method == "onTestBegin":
                self._on_test_begin(params)
            elif method == "onTestEnd":
                self._on_test_end(params)
            elif method == "onStdOut":
                self._reporter.on_std_out(params.get("data", ""), self._test_or_none(params))
            elif method == "onStdErr":
                self._reporter.on_std_err(params.get("data", ""), self._test_or_none(params))
            elif method == "onError":
                self._reporter.on_error(parse_error(params["error"]))
            elif method == "onEnd":
                self.is_finished = True
                result = params.get("result") or {}
                self._reporter.on_end(FullResult(status=result.get("status", "passed")))
            else:
                logger.debug(f"Ignoring reporter message {method}")
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed {method} message: {e}") from e

    def _on_configure(self, params: dict[str, Any]) -> None:
        config = params.get("config") or {}
        self._reporter.on_configure(config.get("rootDir", ""))

    def _on_project(self, params: dict[str, Any]) -> None:
        project = params["project"]
        project_config = ProjectConfig(
            name=project.get("name", ""),
            test_dir=project.get("testDir", ""),
            use=dict(project.get("use") or {}),
        )
        project_suite = Suite(
            title=project_config.name,
            type="project",
            project_config=project_config,
        )
        self._root_suite.add_suite(project_suite)
        for suite_data in project.get("suites", []):
            project_suite.add_suite(self._parse_suite(suite_data, "file"))

    def _parse_suite(self, data: dict[str, Any], suite_type: str) -> Suite:
        suite = Suite(
            title=data.get("title", ""),
            type="file" if suite_type == "file" else "describe",
            location=parse_location(data.get("location")),
        )
        for child in data.get("suites", []):
            suite.add_suite(self._parse_suite(child, "describe"))
        for test_data in data.get("tests", []):
            test = TestCase(
                id=test_data["testId"],
                title=test_data["title"],
                location=parse_location(test_data["location"]),
            )
            self._tests[test.id] = test
            suite.add_test(test)
        return suite

    def _test_or_none(self, params: dict[str, Any]) -> TestCase | None:
        test_id = params.get("testId")
        return self._tests.get(test_id) if test_id else None

    def _on_test_begin(self, params: dict[str, Any]) -> None:
        test = self._tests[params["testId"]]
        result_data = params.get("result") or {}
        result = TestResult(retry=int(result_data.get("retry", 0)), status="passed")
        self._reporter.on_test_begin(test, result)

    def _on_test_end(self, params: dict[str, Any]) -> None:
        test = self._tests[params["test"]["testId"]]
        result_data = params["result"]
        result = TestResult(
            retry=int(result_data.get("retry", 0)),
            status=result_data.get("status", "passed"),
            duration=float(result_data.get("duration", 0.0)),
            errors=tuple(parse_error(e) for e in result_data.get("errors", [])),
        )
        test.results.append(result)
        self._reporter.on_test_end(test, result)
