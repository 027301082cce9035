"""External adapters for the SuiteSync test-model engine.

This package contains all external dependencies (node subprocesses,
aiohttp websockets, SQLite, watchdog, etc.) and provides implementations
of the core port interfaces.

Adapter Organization:

- runner/: Clients talking to the test runner (CLI per call, persistent server)
- reporter/: Decoding streamed runner events and printing them
- sourcemap/: Resolving compiled files to their original sources
- settings/: Persisting configuration and project enablement
- debug/: Starting the runner under the node inspector
- hooks/: Resources acquired around a test run
- workspace/: Finding configurations and observing the filesystem
"""
