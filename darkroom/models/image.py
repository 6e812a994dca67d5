"""Image model - a photo file recorded in the catalog."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, field_validator
from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, as_naive_utc, parse_structured_json, utcnow


class Flag(str, Enum):
    """Pick/reject flag for images."""

    picked = "picked"
    rejected = "rejected"


class ColorLabel(str, Enum):
    """Color labels an image can carry."""

    red = "red"
    yellow = "yellow"
    green = "green"
    blue = "blue"
    purple = "purple"
    orange = "orange"
    teal = "teal"


MIN_RATING = 0
MAX_RATING = 5


def _sql_in(column: str, enum_cls: type) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values}) OR {column} IS NULL"


class ImageBase(SQLModel):
    """Shared image fields, as supplied by the importer."""

    filename: str
    original_path: str = Field(unique=True)
    sidecar_path: Optional[str] = None
    sidecar_hash: Optional[str] = None
    filesize: Optional[int] = None
    file_hash: Optional[str] = Field(default=None, index=True)
    file_modified_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    imported_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    captured_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    lens_model: Optional[str] = None
    focal_length: Optional[float] = None
    aperture: Optional[float] = None
    shutter_speed: Optional[float] = None
    iso: Optional[int] = None
    orientation: Optional[int] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    gps_altitude: Optional[float] = None
    rating: Optional[int] = Field(default=None, ge=MIN_RATING, le=MAX_RATING)
    flag: Optional[Flag] = None
    color_label: Optional[ColorLabel] = None
    metadata_json: Optional[Any] = Field(
        default=None, sa_column=Column(JSON(none_as_null=True), nullable=True)
    )

    @field_validator("filename", "original_path")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("rating", mode="before")
    @classmethod
    def _strict_rating(cls, value: Any) -> Any:
        # bool is an int subclass; "5" and 5.0 are not ratings either
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValueError("rating must be an integer between 0 and 5 or null")
        return value

    @field_validator("file_modified_at", "imported_at", "captured_at")
    @classmethod
    def _naive_utc(cls, value: Any) -> Any:
        return as_naive_utc(value)

    @field_validator("metadata_json", mode="before")
    @classmethod
    def _valid_json(cls, value: Any) -> Any:
        return parse_structured_json(value)


class Image(ImageBase, TimestampMixin, table=True):
    """Image database model."""

    __tablename__ = "images"
    __table_args__ = (
        CheckConstraint(
            f"rating BETWEEN {MIN_RATING} AND {MAX_RATING}", name="ck_images_rating"
        ),
        CheckConstraint(_sql_in("flag", Flag), name="ck_images_flag"),
        CheckConstraint(_sql_in("color_label", ColorLabel), name="ck_images_color_label"),
        CheckConstraint(
            "metadata_json IS NULL OR json_valid(metadata_json)",
            name="ck_images_metadata_json",
        ),
        Index("idx_images_folder_id", "folder_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    folder_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("folders.id", ondelete="CASCADE"),
            nullable=False,
        )
    )


class ImageCreate(ImageBase):
    """Schema for validating image attributes before they are written."""

    model_config = ConfigDict(extra="forbid")


class ImageRead(ImageBase):
    """Schema for reading an image."""

    id: int
    folder_id: int
    created_at: datetime
    updated_at: datetime


# Fields the importer may supply and update_metadata may change.
IMAGE_ATTRIBUTE_FIELDS = frozenset(ImageCreate.model_fields)
