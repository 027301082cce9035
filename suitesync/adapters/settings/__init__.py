"""Settings store adapters for persisted enablement."""
