"""
Dashboard Package.

This package provides external read access to the news store.

Modules:
- api: REST API endpoints (create_app)
- schemas: Pydantic response models
"""

from .api import create_app

__all__ = ["create_app"]
