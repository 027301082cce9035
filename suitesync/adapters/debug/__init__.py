"""Debugger launch adapters."""
