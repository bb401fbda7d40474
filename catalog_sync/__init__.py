"""Concurrent batch synchronization of a paginated product feed into a catalog store."""

__version__ = "1.0.0"
