"""Fake/mock implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without a node runtime or any external process:

- FakeRunnerClient: Scripted workspace of projects, files and tests
- FakeRunHooks: Captured before/after run calls
- FakeSourceMapPort: Fixed compiled-file to sources table
- FakeSettingsStorePort: In-memory persisted settings
- FakeDebugLauncher: Captured debug launch configurations
- FakeReporterServer: Reporter endpoint reporting an empty run
- RecordingReporter: Captured reporter events for assertion
"""

from .ports import (
    FakeDebugLauncher,
    FakeReporterServer,
    FakeRunHooks,
    FakeSettingsStorePort,
    FakeSourceMapPort,
    RecordingReporter,
)
from .runner import FakeRunnerClient

__all__ = [
    "FakeDebugLauncher",
    "FakeReporterServer",
    "FakeRunHooks",
    "FakeRunnerClient",
    "FakeSettingsStorePort",
    "FakeSourceMapPort",
    "RecordingReporter",
]
