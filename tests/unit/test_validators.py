"""
Unit tests for validators.
"""

import pytest

from shared_volumes.cli.lib.validators import parse_bool, validate_identifier, validate_name


class TestValidateName:
    """Tests for validate_name function."""

    @pytest.mark.unit
    def test_valid_name(self):
        """Test valid names."""
        validate_name("v1")
        validate_name("data-1")
        validate_name("data_1")
        validate_name("data.1")
        validate_name("a" * 64)

    @pytest.mark.unit
    def test_empty_name(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            validate_name("")

    @pytest.mark.unit
    def test_name_too_long(self):
        with pytest.raises(ValueError, match="between 1 and 64"):
            validate_name("a" * 65)

    @pytest.mark.unit
    def test_name_invalid_chars(self):
        """Test name with invalid characters raises error."""
        with pytest.raises(ValueError):
            validate_name("data 1")  # space
        with pytest.raises(ValueError):
            validate_name("../etc")  # traversal
        with pytest.raises(ValueError):
            validate_name(".hidden")  # starts with dot
        with pytest.raises(ValueError):
            validate_name("_data")  # starts with underscore


class TestValidateIdentifier:
    """Tests for validate_identifier function."""

    @pytest.mark.unit
    def test_valid_identifiers(self):
        validate_identifier("node-a")
        validate_identifier("3f2c9e1a7b")
        validate_identifier("node a.example.com")

    @pytest.mark.unit
    @pytest.mark.parametrize("value", [".", "..", "a/b", "a\0b"])
    def test_invalid_identifiers(self, value):
        with pytest.raises(ValueError, match="Invalid host"):
            validate_identifier(value, "host")

    @pytest.mark.unit
    def test_empty_identifier(self):
        with pytest.raises(ValueError, match="Mount id cannot be empty"):
            validate_identifier("", "mount id")


class TestParseBool:
    """Tests for parse_bool function."""

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["1", "t", "TRUE", "yes", "On"])
    def test_true_values(self, value):
        assert parse_bool(value) is True

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["0", "f", "False", "no", "off"])
    def test_false_values(self, value):
        assert parse_bool(value) is False

    @pytest.mark.unit
    def test_default(self):
        assert parse_bool(None) is False
        assert parse_bool("", default=True) is True

    @pytest.mark.unit
    def test_invalid_value(self):
        with pytest.raises(ValueError, match="Invalid boolean"):
            parse_bool("maybe")
