"""Stdout reporter adapter.

Implements ReporterPort by printing test results to the terminal, and
renders test trees for the list run mode.
"""

import logging

from suitesync.core.models import FullResult, Suite, TestCase, TestError, TestResult
from suitesync.core.ports import ReporterPort

logger = logging.getLogger(__name__)

_STATUS_MARKS = {
    "passed": "ok",
    "failed": "FAIL",
    "timedOut": "TIMEOUT",
    "skipped": "skip",
    "interrupted": "INTERRUPTED",
}


def format_test(test: TestCase) -> str:
    """Format a test as ``title > path [line:column]``."""
    return f"{' > '.join(test.title_path())} [{test.location.line}:{test.location.column}]"


def format_tree(suite: Suite, indent: int = 0) -> list[str]:
    """Render a suite and its descendants, one node per line."""
    lines = []
    child_indent = indent
    if suite.title:
        lines.append("  " * indent + suite.title)
        child_indent = indent + 1
    for child in suite.suites:
        lines.extend(format_tree(child, child_indent))
    for test in suite.tests:
        lines.append("  " * child_indent + f"{test.title} [{test.location.line}:{test.location.column}]")
    return lines


class StdoutReporter(ReporterPort):
    """Prints per-test status and a final summary."""

    def __init__(self, verbose: bool = False):
        """Initialize stdout reporter.

        Args:
            verbose: If True, also print test output and passing tests' errors.
        """
        self.verbose = verbose
        self.counts: dict[str, int] = {}

    def on_test_end(self, test: TestCase, result: TestResult) -> None:
        self.counts[result.status] = self.counts.get(result.status, 0) + 1
        mark = _STATUS_MARKS.get(result.status, result.status)
        print(f"  {mark:<11} {format_test(test)} ({result.duration:.0f}ms)")
        if result.status != "passed" or self.verbose:
            for error in result.errors:
                print(self._format_error(error))

    def on_std_out(self, text: str, test: TestCase | None = None) -> None:
        if self.verbose:
            print(text, end="")

    def on_std_err(self, text: str, test: TestCase | None = None) -> None:
        if self.verbose:
            print(text, end="")

    def on_error(self, error: TestError) -> None:
        print(self._format_error(error))

    def on_end(self, result: FullResult) -> None:
        summary = ", ".join(f"{count} {status}" for status, count in sorted(self.counts.items()))
        print("=" * 80)
        print(f"Run {result.status}: {summary or 'no tests'}")

    @staticmethod
    def _format_error(error: TestError) -> str:
        prefix = f"    {error.location}: " if error.location else "    "
        return prefix + error.message
