"""Catalog metadata model - the singleton bootstrap/version record."""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field

from .base import TimestampMixin

# Version of the schema created by this package. The external migration
# runner owns every change after creation.
SCHEMA_VERSION = 1

# Fixed identity of the only metadata row.
CATALOG_METADATA_ID = 1


class CatalogMetadata(TimestampMixin, table=True):
    """CatalogMetadata database model - exactly one row per catalog."""

    __tablename__ = "catalog_metadata"
    __table_args__ = (
        CheckConstraint(f"id = {CATALOG_METADATA_ID}", name="ck_catalog_metadata_singleton"),
    )

    id: int = Field(default=CATALOG_METADATA_ID, primary_key=True)
    schema_version: int = SCHEMA_VERSION
    last_opened: Optional[datetime] = Field(default=None, sa_type=DateTime)
