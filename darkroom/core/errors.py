"""Error hierarchy for catalog operations.

Every error aborts the enclosing write transaction; nothing is auto-corrected.
``details`` names the entity, field and offending value so callers can tell
which invariant was violated.
"""

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    code = "catalog_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ConstraintViolation(CatalogError):
    """Duplicate key, out-of-range value, bad enum value or malformed payload."""

    code = "constraint_violation"

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if entity is not None:
            merged.setdefault("entity", entity)
        if field is not None:
            merged.setdefault("field", field)
            merged.setdefault("value", value)
        super().__init__(message, merged)
        self.entity = entity
        self.field = field
        self.value = value


class NotFound(CatalogError):
    """Reference to a folder, image, keyword or collection that does not exist."""

    code = "not_found"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            {"resource": resource, "identifier": identifier},
        )
        self.resource = resource
        self.identifier = identifier


class ConcurrencyConflict(CatalogError):
    """Lost update detected by a caller's own versioning.

    The store has no row-version field and never raises this itself.
    """

    code = "concurrency_conflict"
