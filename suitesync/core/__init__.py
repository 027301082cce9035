"""Core domain logic for the SuiteSync test-model engine.

This package contains zero external dependencies and represents
the pure test-tree logic of the application. The runner, settings
store, reporter endpoints and filesystem observer are handled by the
adapters package.
"""

from .models import (
    ListFilesReport,
    Location,
    ProjectConfig,
    ProjectFiles,
    RunOptions,
    Suite,
    TestCase,
    TestConfig,
    TestError,
    TestResult,
    WorkspaceChange,
    WorkspaceSettings,
)

__all__ = [
    "ListFilesReport",
    "Location",
    "ProjectConfig",
    "ProjectFiles",
    "RunOptions",
    "Suite",
    "TestCase",
    "TestConfig",
    "TestError",
    "TestResult",
    "WorkspaceChange",
    "WorkspaceSettings",
]
