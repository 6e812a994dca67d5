"""Edit models - current edit state and the append-only edit history."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, utcnow


def _json_check(column: str, nullable: bool = True) -> CheckConstraint:
    expr = f"json_valid({column})"
    if nullable:
        expr = f"{column} IS NULL OR {expr}"
    return CheckConstraint(expr, name=f"ck_{column}")


def _json_column(nullable: bool = True) -> Column:
    return Column(JSON(none_as_null=True), nullable=nullable)


class EditState(TimestampMixin, table=True):
    """EditState database model - the current adjustments of one image.

    At most one row per image; every save replaces all adjustment columns.
    """

    __tablename__ = "edits"
    __table_args__ = (
        _json_check("parametric_curve_json"),
        _json_check("color_grading_json"),
        _json_check("crop_json"),
        _json_check("masking_json"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    image_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("images.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        )
    )
    exposure: Optional[float] = None
    contrast: Optional[float] = None
    highlights: Optional[float] = None
    shadows: Optional[float] = None
    whites: Optional[float] = None
    blacks: Optional[float] = None
    vibrance: Optional[float] = None
    saturation: Optional[float] = None
    temperature: Optional[float] = None
    tint: Optional[float] = None
    texture: Optional[float] = None
    clarity: Optional[float] = None
    dehaze: Optional[float] = None
    parametric_curve_json: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=_json_column()
    )
    color_grading_json: Optional[Dict[str, Any]] = Field(
        default=None, sa_column=_json_column()
    )
    crop_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=_json_column())
    masking_json: Optional[List[Dict[str, Any]]] = Field(
        default=None, sa_column=_json_column()
    )


class EditHistoryEntry(SQLModel, table=True):
    """EditHistoryEntry database model - one immutable snapshot per save."""

    __tablename__ = "edit_history"
    __table_args__ = (
        _json_check("edits_json", nullable=False),
        Index("idx_edit_history_image_id", "image_id", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    image_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("images.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    edits_json: Dict[str, Any] = Field(sa_column=_json_column(nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
