"""Catalog store interface and the local in-memory implementation."""

from .base import CatalogStore
from .memory import InMemoryCatalogStore

__all__ = ["CatalogStore", "InMemoryCatalogStore"]
