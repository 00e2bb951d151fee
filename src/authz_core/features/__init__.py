"""Feature packages for authz-core."""
