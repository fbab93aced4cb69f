"""Tests for house colour validator."""

import pytest
from pydantic import BaseModel, ValidationError

from app.schemas.house import HouseCreate
from app.schemas.validators import Color, validate_color


class ColorModel(BaseModel):
    """Test model with a colour."""
    color: Color = None


class TestColorValidator:
    """Tests for colour validation."""

    def test_valid_short_hex(self):
        """Test three-digit hex colour."""
        model = ColorModel(color="#07f")
        assert model.color == "#07f"

    def test_valid_long_hex_is_lowercased(self):
        """Test six-digit hex colour is lower-cased."""
        model = ColorModel(color="#007BFF")
        assert model.color == "#007bff"

    def test_valid_name(self):
        """Test CSS colour keyword."""
        model = ColorModel(color=" RebeccaPurple ")
        assert model.color == "rebeccapurple"

    def test_blank_is_none(self):
        """Test empty and whitespace-only values mean no colour."""
        assert ColorModel(color="").color is None
        assert ColorModel(color="   ").color is None
        assert ColorModel().color is None

    def test_invalid_hex_length(self):
        """Test hex with the wrong number of digits."""
        with pytest.raises(ValidationError) as exc_info:
            ColorModel(color="#12345")
        assert "Invalid colour" in str(exc_info.value)

    def test_invalid_characters(self):
        """Test values that are neither hex nor a keyword."""
        with pytest.raises(ValidationError):
            ColorModel(color="blue green")
        with pytest.raises(ValidationError):
            ColorModel(color="#ggg")

    def test_validate_color_direct(self):
        """Test the bare validator function."""
        assert validate_color("Red") == "red"
        with pytest.raises(ValueError):
            validate_color("rgb(0,0,0)")


class TestHouseCreate:
    """Tests for the house input schema."""

    def test_strips_name(self):
        house = HouseCreate(name="  Darwin  ", color="blue")
        assert house.name == "Darwin"
        assert house.color == "blue"

    def test_rejects_bad_colour(self):
        with pytest.raises(ValidationError):
            HouseCreate(name="Darwin", color="not a colour")
