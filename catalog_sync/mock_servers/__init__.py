"""Mock product feed for testing."""

from .app import create_app, create_mock_app, generate_product

__all__ = ["create_app", "create_mock_app", "generate_product"]
