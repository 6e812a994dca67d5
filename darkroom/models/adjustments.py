"""Validated payloads for non-destructive edit state.

Each structured sub-object of an edit (tone curve, color grading, crop,
masks) is a closed schema checked on its own before anything is written.
"""

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SLIDER = dict(ge=-100.0, le=100.0)
PERCENT = dict(ge=0.0, le=100.0)
UNIT = dict(ge=0.0, le=1.0)


class PayloadModel(BaseModel):
    """Base for edit payloads: unknown keys and NaN/inf are rejected."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False, populate_by_name=True)


class ParametricCurve(PayloadModel):
    """Region-based tone curve."""

    highlights: float = Field(default=0.0, **SLIDER)
    lights: float = Field(default=0.0, **SLIDER)
    darks: float = Field(default=0.0, **SLIDER)
    shadows: float = Field(default=0.0, **SLIDER)
    shadow_split: float = Field(default=25.0, **PERCENT)
    midtone_split: float = Field(default=50.0, **PERCENT)
    highlight_split: float = Field(default=75.0, **PERCENT)

    @model_validator(mode="after")
    def _ordered_splits(self) -> "ParametricCurve":
        if not self.shadow_split < self.midtone_split < self.highlight_split:
            raise ValueError(
                "split points must satisfy shadow_split < midtone_split < highlight_split"
            )
        return self


class ColorWheel(PayloadModel):
    hue: float = Field(default=0.0, ge=0.0, lt=360.0)
    saturation: float = Field(default=0.0, **PERCENT)
    luminance: float = Field(default=0.0, **SLIDER)


class ColorGrading(PayloadModel):
    """Three-way color grading plus a global wheel."""

    shadows: ColorWheel = Field(default_factory=ColorWheel)
    midtones: ColorWheel = Field(default_factory=ColorWheel)
    highlights: ColorWheel = Field(default_factory=ColorWheel)
    global_: ColorWheel = Field(default_factory=ColorWheel, alias="global")
    blending: float = Field(default=50.0, **PERCENT)
    balance: float = Field(default=0.0, **SLIDER)


class CropRect(PayloadModel):
    """Crop rectangle in coordinates normalized to the source image."""

    x: float = Field(default=0.0, ge=0.0, lt=1.0)
    y: float = Field(default=0.0, ge=0.0, lt=1.0)
    width: float = Field(default=1.0, gt=0.0, le=1.0)
    height: float = Field(default=1.0, gt=0.0, le=1.0)
    angle: float = Field(default=0.0, ge=-45.0, le=45.0)

    @model_validator(mode="after")
    def _inside_frame(self) -> "CropRect":
        # tolerate float noise from UI coordinate math
        if self.x + self.width > 1.0 + 1e-9 or self.y + self.height > 1.0 + 1e-9:
            raise ValueError("crop rectangle extends past the image bounds")
        return self


Point = Tuple[Annotated[float, Field(**UNIT)], Annotated[float, Field(**UNIT)]]


class MaskBase(PayloadModel):
    feather: float = Field(default=50.0, **PERCENT)
    adjustments: Dict[str, float] = Field(default_factory=dict)


class LinearGradientMask(MaskBase):
    kind: Literal["linear"] = "linear"
    start: Point
    end: Point


class RadialGradientMask(MaskBase):
    kind: Literal["radial"] = "radial"
    center: Point
    radius_x: float = Field(gt=0.0, le=1.0)
    radius_y: float = Field(gt=0.0, le=1.0)
    invert: bool = False


class BrushStroke(PayloadModel):
    points: List[Point] = Field(min_length=1)
    size: float = Field(gt=0.0, le=1.0)
    flow: float = Field(default=100.0, **PERCENT)


class BrushMask(MaskBase):
    kind: Literal["brush"] = "brush"
    strokes: List[BrushStroke] = Field(min_length=1)


Mask = Annotated[
    Union[LinearGradientMask, RadialGradientMask, BrushMask],
    Field(discriminator="kind"),
]

SCALAR_ADJUSTMENTS = (
    "exposure",
    "contrast",
    "highlights",
    "shadows",
    "whites",
    "blacks",
    "vibrance",
    "saturation",
    "temperature",
    "tint",
    "texture",
    "clarity",
    "dehaze",
)

# EditSnapshot field -> EditState column
STRUCTURED_COLUMNS = {
    "parametric_curve": "parametric_curve_json",
    "color_grading": "color_grading_json",
    "crop": "crop_json",
    "masks": "masking_json",
}


class EditSnapshot(PayloadModel):
    """Complete adjustment state for one image, as saved by the editor."""

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
    parametric_curve: Optional[ParametricCurve] = None
    color_grading: Optional[ColorGrading] = None
    crop: Optional[CropRect] = None
    masks: Optional[List[Mask]] = None

    @field_validator(*STRUCTURED_COLUMNS, mode="before")
    @classmethod
    def _decode_json_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid JSON: {e.msg} at position {e.pos}") from e
        return value

    def to_json(self) -> Dict[str, Any]:
        """Full snapshot as a JSON-ready dict, as stored in the history ledger."""
        return self.model_dump(mode="json", by_alias=True)

    def to_columns(self) -> Dict[str, Any]:
        """Values keyed by EditState column name."""
        data = self.to_json()
        columns = {name: data[name] for name in SCALAR_ADJUSTMENTS}
        for field_name, column in STRUCTURED_COLUMNS.items():
            columns[column] = data[field_name]
        return columns

    @classmethod
    def from_columns(cls, row: Any) -> "EditSnapshot":
        """Rebuild a snapshot from an EditState row."""
        data = {name: getattr(row, name) for name in SCALAR_ADJUSTMENTS}
        for field_name, column in STRUCTURED_COLUMNS.items():
            data[field_name] = getattr(row, column)
        return cls.model_validate(data)
