"""Multi-tenant authorization core: groups, memberships, project grants."""

__version__ = "0.1.0"
