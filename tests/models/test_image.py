"""Tests for Image SQLModels."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from darkroom.models.image import (
    IMAGE_ATTRIBUTE_FIELDS,
    ColorLabel,
    Flag,
    Image,
    ImageCreate,
)


def _attrs(**overrides):
    attrs = {"filename": "IMG_0001.CR3", "original_path": "/photos/2024/IMG_0001.CR3"}
    attrs.update(overrides)
    return attrs


class TestEnums:
    def test_flag_values(self):
        assert [f.value for f in Flag] == ["picked", "rejected"]

    def test_color_label_values(self):
        assert len(ColorLabel) == 7
        assert ColorLabel("teal") is ColorLabel.teal
        for label in ColorLabel:
            assert label.name == label.value


class TestImageCreate:
    def test_minimal(self):
        image = ImageCreate(**_attrs())
        assert image.rating is None
        assert image.flag is None
        assert image.color_label is None
        assert image.metadata_json is None
        assert isinstance(image.imported_at, datetime)

    @pytest.mark.parametrize("rating", [0, 3, 5, None])
    def test_valid_ratings(self, rating):
        assert ImageCreate(**_attrs(rating=rating)).rating == rating

    @pytest.mark.parametrize("rating", [-1, 6, True, "5", 4.0])
    def test_invalid_ratings(self, rating):
        with pytest.raises(ValidationError):
            ImageCreate(**_attrs(rating=rating))

    def test_flag_and_label_parse_from_text(self):
        image = ImageCreate(**_attrs(flag="picked", color_label="red"))
        assert image.flag is Flag.picked
        assert image.color_label is ColorLabel.red

    def test_unknown_flag_rejected(self):
        with pytest.raises(ValidationError):
            ImageCreate(**_attrs(flag="maybe"))

    def test_unknown_color_label_rejected(self):
        with pytest.raises(ValidationError):
            ImageCreate(**_attrs(color_label="magenta"))

    def test_blank_filename_rejected(self):
        with pytest.raises(ValidationError):
            ImageCreate(**_attrs(filename="   "))

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ImageCreate(**_attrs(folder_id=3))

    def test_metadata_json_text_is_decoded(self):
        image = ImageCreate(**_attrs(metadata_json='{"lens": "RF 50mm"}'))
        assert image.metadata_json == {"lens": "RF 50mm"}

    @pytest.mark.parametrize("value", ["{not json", "42", '"text"', {"x": float("nan")}])
    def test_metadata_json_must_be_object_or_array(self, value):
        with pytest.raises(ValidationError):
            ImageCreate(**_attrs(metadata_json=value))


class TestImageModel:
    def test_table_model_defaults(self):
        image = Image(folder_id=1, **_attrs())
        assert image.id is None
        assert image.folder_id == 1
        assert image.created_at is not None
        assert image.updated_at is not None

    def test_attribute_fields(self):
        assert "rating" in IMAGE_ATTRIBUTE_FIELDS
        assert "metadata_json" in IMAGE_ATTRIBUTE_FIELDS
        assert "id" not in IMAGE_ATTRIBUTE_FIELDS
        assert "folder_id" not in IMAGE_ATTRIBUTE_FIELDS
        assert "updated_at" not in IMAGE_ATTRIBUTE_FIELDS
