"""Tests for edit payload schemas."""

import json
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from darkroom.models.adjustments import (
    SCALAR_ADJUSTMENTS,
    STRUCTURED_COLUMNS,
    BrushMask,
    ColorGrading,
    CropRect,
    EditSnapshot,
    LinearGradientMask,
    ParametricCurve,
    RadialGradientMask,
)


class TestParametricCurve:
    def test_defaults_are_valid(self):
        curve = ParametricCurve()
        assert curve.shadow_split < curve.midtone_split < curve.highlight_split

    def test_split_points_must_be_ordered(self):
        with pytest.raises(ValidationError):
            ParametricCurve(shadow_split=60, midtone_split=50)

    def test_slider_range(self):
        assert ParametricCurve(highlights=-100, shadows=100).shadows == 100
        with pytest.raises(ValidationError):
            ParametricCurve(darks=101)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            ParametricCurve(gamma=1.2)


class TestColorGrading:
    def test_global_wheel_uses_json_key(self):
        grading = ColorGrading.model_validate({"global": {"hue": 200, "saturation": 10}})
        assert grading.global_.hue == 200
        dumped = grading.model_dump(by_alias=True)
        assert "global" in dumped
        assert "global_" not in dumped

    def test_hue_is_below_360(self):
        with pytest.raises(ValidationError):
            ColorGrading.model_validate({"shadows": {"hue": 360}})


class TestCropRect:
    def test_full_frame(self):
        crop = CropRect()
        assert (crop.x, crop.y, crop.width, crop.height) == (0.0, 0.0, 1.0, 1.0)

    def test_must_stay_inside_frame(self):
        with pytest.raises(ValidationError):
            CropRect(x=0.5, width=0.6)

    def test_zero_width_rejected(self):
        with pytest.raises(ValidationError):
            CropRect(width=0)

    def test_angle_range(self):
        assert CropRect(angle=-45).angle == -45
        with pytest.raises(ValidationError):
            CropRect(angle=46)


class TestMasks:
    def test_discriminated_by_kind(self):
        snapshot = EditSnapshot.model_validate(
            {
                "masks": [
                    {"kind": "linear", "start": [0, 0], "end": [1, 1]},
                    {"kind": "radial", "center": [0.5, 0.5], "radius_x": 0.2, "radius_y": 0.3},
                    {
                        "kind": "brush",
                        "strokes": [{"points": [[0.1, 0.1], [0.2, 0.2]], "size": 0.05}],
                        "adjustments": {"exposure": 0.3},
                    },
                ]
            }
        )
        linear, radial, brush = snapshot.masks
        assert isinstance(linear, LinearGradientMask)
        assert isinstance(radial, RadialGradientMask)
        assert isinstance(brush, BrushMask)
        assert brush.adjustments == {"exposure": 0.3}

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            EditSnapshot.model_validate({"masks": [{"kind": "ai_subject"}]})

    def test_points_are_normalized(self):
        with pytest.raises(ValidationError):
            LinearGradientMask(start=(0, 0), end=(1.5, 0))

    def test_brush_needs_strokes(self):
        with pytest.raises(ValidationError):
            BrushMask(strokes=[])


class TestEditSnapshot:
    def test_empty_snapshot(self):
        snapshot = EditSnapshot()
        assert all(getattr(snapshot, name) is None for name in SCALAR_ADJUSTMENTS)

    def test_rejects_non_finite(self):
        with pytest.raises(ValidationError):
            EditSnapshot(exposure=float("nan"))
        with pytest.raises(ValidationError):
            EditSnapshot(contrast=float("inf"))

    def test_structured_json_text_is_parsed(self):
        snapshot = EditSnapshot.model_validate(
            {"crop": json.dumps({"x": 0.1, "y": 0.1, "width": 0.5, "height": 0.5})}
        )
        assert snapshot.crop == CropRect(x=0.1, y=0.1, width=0.5, height=0.5)

    def test_malformed_json_text_rejected(self):
        with pytest.raises(ValidationError):
            EditSnapshot.model_validate({"color_grading": "{broken"})

    def test_to_columns(self):
        snapshot = EditSnapshot(exposure=0.5, crop=CropRect(width=0.5))
        columns = snapshot.to_columns()
        assert columns["exposure"] == 0.5
        assert columns["crop_json"]["width"] == 0.5
        assert columns["masking_json"] is None
        assert set(columns) == set(SCALAR_ADJUSTMENTS) | set(STRUCTURED_COLUMNS.values())

    def test_from_columns_restores_snapshot(self):
        original = EditSnapshot.model_validate(
            {
                "exposure": 1.25,
                "color_grading": {"global": {"hue": 30}},
                "masks": [{"kind": "linear", "start": [0, 0.5], "end": [1, 0.5]}],
            }
        )
        row = SimpleNamespace(**original.to_columns())
        assert EditSnapshot.from_columns(row) == original
