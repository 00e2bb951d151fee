"""Infrastructure adapters (event publication)."""
