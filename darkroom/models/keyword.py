"""Keyword models - global vocabulary and image assignments."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlmodel import Field, SQLModel

from .base import utcnow


class Keyword(SQLModel, table=True):
    """Keyword database model - a reusable tag."""

    __tablename__ = "keywords"

    id: Optional[int] = Field(default=None, primary_key=True)
    keyword: str = Field(sa_column=Column(Text, nullable=False, unique=True))


class ImageKeyword(SQLModel, table=True):
    """ImageKeyword database model - links images to keywords."""

    __tablename__ = "image_keywords"

    image_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("images.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    keyword_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("keywords.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    assigned_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
