"""Integration tests for adapter implementations."""
