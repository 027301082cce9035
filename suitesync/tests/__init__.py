"""Test suite for SuiteSync.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - Tests against real local resources (sockets, SQLite, temp files)
   - Validates adapter behavior and error handling

3. fakes/: Port implementations for testing
   - In-memory implementations of RunnerClientPort, SettingsStorePort, etc.
   - Used by core unit tests
"""
