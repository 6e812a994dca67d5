"""darkroom: persistent catalog store for a non-destructive photo editor."""

from .catalog import Catalog, ImageDetails
from .core.errors import CatalogError, ConcurrencyConflict, ConstraintViolation, NotFound
from .importing import ImageImport, import_batch

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "CatalogError",
    "ConcurrencyConflict",
    "ConstraintViolation",
    "ImageDetails",
    "ImageImport",
    "NotFound",
    "__version__",
    "import_batch",
]
