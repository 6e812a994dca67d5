"""Database layer: configuration, connections and repositories."""

from .config import Settings, settings
from .connection import create_catalog_engine, create_session_factory

__all__ = ["Settings", "create_catalog_engine", "create_session_factory", "settings"]
