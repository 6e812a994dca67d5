"""Unified SQLModel definitions for the darkroom catalog."""

from .adjustments import (
    BrushMask,
    ColorGrading,
    CropRect,
    EditSnapshot,
    LinearGradientMask,
    ParametricCurve,
    RadialGradientMask,
)
from .base import TimestampMixin, utcnow
from .cache import Preview, Thumbnail
from .catalog import CATALOG_METADATA_ID, SCHEMA_VERSION, CatalogMetadata
from .collection import Collection, CollectionImage
from .edit import EditHistoryEntry, EditState
from .folder import Folder
from .image import ColorLabel, Flag, Image, ImageCreate, ImageRead
from .keyword import ImageKeyword, Keyword

__all__ = [
    "BrushMask",
    "CATALOG_METADATA_ID",
    "CatalogMetadata",
    "Collection",
    "CollectionImage",
    "ColorGrading",
    "ColorLabel",
    "CropRect",
    "EditHistoryEntry",
    "EditSnapshot",
    "EditState",
    "Flag",
    "Folder",
    "Image",
    "ImageCreate",
    "ImageKeyword",
    "ImageRead",
    "Keyword",
    "LinearGradientMask",
    "ParametricCurve",
    "Preview",
    "RadialGradientMask",
    "SCHEMA_VERSION",
    "Thumbnail",
    "TimestampMixin",
    "utcnow",
]
