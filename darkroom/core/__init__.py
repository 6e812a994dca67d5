"""Core catalog primitives."""

from .errors import CatalogError, ConcurrencyConflict, ConstraintViolation, NotFound

__all__ = ["CatalogError", "ConcurrencyConflict", "ConstraintViolation", "NotFound"]
