"""Workspace adapters.

- discovery: Finds runner configurations and the runner CLI
- observer: Watches test directories and coalesces filesystem events
"""
