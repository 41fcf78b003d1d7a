"""Domain-wide constants: cache keys and refresh policy."""
