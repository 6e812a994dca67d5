"""Catalog metadata repository - the singleton bootstrap record."""

import logging

from sqlalchemy import text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session

from darkroom.core.errors import ConstraintViolation, NotFound
from darkroom.models.base import utcnow
from darkroom.models.catalog import CATALOG_METADATA_ID, SCHEMA_VERSION, CatalogMetadata

from .base import BaseRepository

logger = logging.getLogger(__name__)


class CatalogMetadataRepository(BaseRepository[CatalogMetadata]):
    """Repository for the catalog's single metadata row."""

    resource = "catalog_metadata"

    def __init__(self, session: Session):
        super().__init__(session, CatalogMetadata)

    def initialize(self, schema_version: int = SCHEMA_VERSION) -> CatalogMetadata:
        """Insert the metadata row unless it already exists.

        Safe to call any number of times; an existing row is left untouched.

        Returns:
            The metadata row
        """
        now = utcnow()
        stmt = (
            sqlite_insert(CatalogMetadata.__table__)  # type: ignore[attr-defined]
            .values(
                id=CATALOG_METADATA_ID,
                schema_version=schema_version,
                created_at=now,
                updated_at=now,
                last_opened=None,
            )
            .on_conflict_do_nothing(index_elements=["id"])
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            logger.info(f"Initialized catalog metadata (schema v{schema_version})")
        return self.current()

    def current(self) -> CatalogMetadata:
        """Return the metadata row.

        Raises:
            NotFound: If the catalog was never initialized
        """
        row = self.session.get(
            CatalogMetadata, CATALOG_METADATA_ID, populate_existing=True
        )
        if row is None:
            raise NotFound(self.resource, CATALOG_METADATA_ID)
        return row

    def touch_opened(self) -> CatalogMetadata:
        """Record that the catalog was just opened."""
        row = self.current()
        row.last_opened = utcnow()
        return self.update(row)

    def set_schema_version(self, version: int) -> CatalogMetadata:
        """Rewrite the schema version after an external migration."""
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise ConstraintViolation(
                "schema_version must be a positive integer",
                entity=self.resource,
                field="schema_version",
                value=version,
            )
        row = self.current()
        row.schema_version = version
        return self.update(row)

    def maintenance(self) -> None:
        """Refresh planner statistics. VACUUM runs outside transactions."""
        self.session.execute(text("PRAGMA optimize"))
        self.session.execute(text("ANALYZE"))
