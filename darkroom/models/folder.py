"""Folder model - a tracked source directory."""

from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field

from .base import TimestampMixin


class Folder(TimestampMixin, table=True):
    """Folder database model - owns every image imported under it."""

    __tablename__ = "folders"

    id: Optional[int] = Field(default=None, primary_key=True)
    path: str = Field(sa_column=Column(Text, nullable=False, unique=True))
