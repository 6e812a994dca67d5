"""Collection models - nested, explicitly ordered groupings of images."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, utcnow


class Collection(TimestampMixin, table=True):
    """Collection database model - a node in the collection tree."""

    __tablename__ = "collections"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    parent_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("collections.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
    )


class CollectionImage(SQLModel, table=True):
    """CollectionImage database model - membership with a custom position."""

    __tablename__ = "collection_images"
    __table_args__ = (
        Index("idx_collection_images_collection_id", "collection_id", "position"),
    )

    collection_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("collections.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    image_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("images.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    position: int = 0
    added_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
