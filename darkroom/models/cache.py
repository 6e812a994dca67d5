"""Derived cache models - thumbnail and preview blobs keyed by image.

Rows are written by the rendering pipeline. Nothing here ties them to edit
or metadata changes; callers invalidate stale rows themselves.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from .base import utcnow


class Thumbnail(SQLModel, table=True):
    """Thumbnail database model - 256px and 1024px tiers."""

    __tablename__ = "thumbnails"

    image_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("images.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    thumb_256: Optional[bytes] = None
    thumb_1024: Optional[bytes] = None
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class Preview(SQLModel, table=True):
    """Preview database model - one rendered preview per image."""

    __tablename__ = "previews"

    image_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("images.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    preview_blob: Optional[bytes] = None
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
