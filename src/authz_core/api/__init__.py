"""HTTP adapter for authz-core."""
