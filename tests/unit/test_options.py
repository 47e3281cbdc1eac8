#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for AssemblerOptions."""

import dataclasses

import pytest

from adocflat.constants import DEFAULT_MAX_INCLUDE_DEPTH
from adocflat.exceptions import ValidationError
from adocflat.options import AssemblerOptions


@pytest.mark.unit
class TestAssemblerOptions:
    """Tests for option defaults and validation."""

    def test_defaults(self) -> None:
        """Test default values."""
        options = AssemblerOptions()

        assert options.output_mode == "text"
        assert options.max_include_depth == DEFAULT_MAX_INCLUDE_DEPTH
        assert options.validate_anchors
        assert options.validate_references
        assert options.attributes == {}

    def test_frozen(self) -> None:
        """Test options cannot be mutated in place."""
        options = AssemblerOptions()

        with pytest.raises(dataclasses.FrozenInstanceError):
            options.output_mode = "asciidoc"  # type: ignore[misc]

    def test_create_updated(self) -> None:
        """Test create_updated returns a modified copy."""
        options = AssemblerOptions()
        updated = options.create_updated(output_mode="asciidoc")

        assert updated.output_mode == "asciidoc"
        assert options.output_mode == "text"

    @pytest.mark.parametrize(
        "kwargs,parameter",
        [
            ({"output_mode": "html"}, "output_mode"),
            ({"max_include_depth": 0}, "max_include_depth"),
            ({"attributes": {"": "x"}}, "attributes"),
            ({"attributes": {"n": 1}}, "attributes"),
            ({"attributes": ["n"]}, "attributes"),
            ({"max_include_depth": "5"}, "max_include_depth"),
            ({"max_include_depth": True}, "max_include_depth"),
            ({"validate_anchors": "no"}, "validate_anchors"),
            ({"compact_include_syntax": 1}, "compact_include_syntax"),
            ({"output_mode": 1}, "output_mode"),
        ],
    )
    def test_invalid_values(self, kwargs: dict, parameter: str) -> None:
        """Test out-of-range values raise ValidationError naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            AssemblerOptions(**kwargs)

        assert exc_info.value.parameter_name == parameter


@pytest.mark.unit
class TestFromDict:
    """Tests for building options from configuration mappings."""

    def test_known_keys(self) -> None:
        """Test a config mapping is applied field by field."""
        options = AssemblerOptions.from_dict({"output_mode": "asciidoc", "max_include_depth": 8})

        assert options.output_mode == "asciidoc"
        assert options.max_include_depth == 8

    def test_attribute_values_stringified(self) -> None:
        """Test attribute values from TOML/YAML scalars become strings."""
        options = AssemblerOptions.from_dict({"attributes": {"version": 2, "draft": True}})

        assert options.attributes == {"version": "2", "draft": "True"}

    def test_unknown_keys_rejected(self) -> None:
        """Test unknown keys are listed in the error."""
        with pytest.raises(ValidationError) as exc_info:
            AssemblerOptions.from_dict({"mode": "text", "depth": 3})

        assert exc_info.value.parameter_value == ["depth", "mode"]
