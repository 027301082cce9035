"""Run hook adapters."""
