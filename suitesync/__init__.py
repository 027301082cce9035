"""SuiteSync: keeps an in-memory test tree in sync with an external test runner."""
