"""Database repositories for data access."""

from .base import BaseRepository
from .cache import CacheRepository
from .catalog_metadata import CatalogMetadataRepository
from .collection import CollectionRepository
from .edit import EditRepository
from .folder import FolderRepository
from .image import ImageRepository
from .keyword import KeywordRepository

__all__ = [
    "BaseRepository",
    "CacheRepository",
    "CatalogMetadataRepository",
    "CollectionRepository",
    "EditRepository",
    "FolderRepository",
    "ImageRepository",
    "KeywordRepository",
]
