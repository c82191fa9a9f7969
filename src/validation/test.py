"""Unit tests for validation module."""

import pytest

from src.instance import ComponentInstance, ContainerKind, default_footer, new_container
from src.layout import normalize
from src.registry import ComponentDefinition, DefinitionRegistry
from src.validation import ValidationError, is_valid, validate_container


def _inst(instance_id, position, **kwargs):
    return ComponentInstance(id=instance_id, type_tag="text", position=position, **kwargs)


class TestValidateContainer:
    """Tests for validate_container function."""

    @pytest.mark.unit
    def test_default_layouts_valid(self):
        """Factory layouts pass validation."""
        assert validate_container(default_footer()) == []

    @pytest.mark.unit
    def test_duplicate_ids(self):
        """Duplicate IDs are detected."""
        footer = new_container(ContainerKind.FOOTER)
        footer.instances = [
            _inst("dupe", "column_1", column=1, order=1),
            _inst("dupe", "column_2", column=2, order=1),
        ]
        errors = validate_container(footer)
        assert len(errors) == 1
        assert errors[0].error_type == "duplicate_id"
        assert "dupe" in errors[0].message

    @pytest.mark.unit
    def test_order_gap_and_duplicate(self):
        """Gaps and shared orders are reported per instance."""
        footer = new_container(ContainerKind.FOOTER)
        footer.instances = [
            _inst("a", "footer_bar", order=1),
            _inst("b", "footer_bar", order=1),
            _inst("c", "footer_bar", order=5),
        ]
        types = sorted(e.error_type for e in validate_container(footer))
        assert types == ["order_duplicate", "order_duplicate", "order_gap"]

    @pytest.mark.unit
    def test_invalid_position(self):
        """Positions foreign to the container kind are flagged."""
        header = new_container(ContainerKind.HEADER)
        header.instances = [_inst("a", "footer_bar", order=1)]
        errors = validate_container(header)
        assert [e.error_type for e in errors] == ["invalid_position"]

    @pytest.mark.unit
    def test_column_checks(self):
        """Column mismatch and out-of-range columns are flagged."""
        footer = new_container(ContainerKind.FOOTER, columns=2)
        footer.instances = [
            _inst("a", "column_1", column=2, order=1),
            _inst("b", "column_5", column=5, order=1),
            _inst("c", "column_4", column=4, is_active=False),
        ]
        errors = {(e.instance_id, e.error_type) for e in validate_container(footer)}
        assert errors == {("a", "column_mismatch"), ("b", "column_out_of_range")}

    @pytest.mark.unit
    def test_ranked_inactive(self):
        """Inactive instances must be unranked."""
        page = new_container(ContainerKind.PAGE)
        page.instances = [_inst("a", "content", order=2, is_active=False)]
        assert validate_container(page)[0].error_type == "ranked_inactive"

    @pytest.mark.unit
    def test_missing_definition(self):
        """References unknown to the registry are flagged when a registry is given."""
        registry = DefinitionRegistry([ComponentDefinition(name="Hero")])
        page = new_container(ContainerKind.PAGE)
        page.instances = [
            _inst("a", "content", order=1, definition_ref="hero"),
            _inst("b", "content", order=2, definition_ref="gone"),
        ]
        assert validate_container(page) == []
        assert validate_container(page, registry) == [
            ValidationError("b", "Definition 'gone' was not found", "missing_definition")
        ]


class TestIsValid:
    """Tests for is_valid function."""

    @pytest.mark.unit
    def test_normalize_repairs(self):
        """Normalising an invalid container makes it valid."""
        footer = new_container(ContainerKind.FOOTER)
        footer.instances = [
            _inst("a", "footer_bar", order=3),
            _inst("b", "footer_bar", order=3),
            _inst("c", "column_2", order=9, is_active=False),
        ]
        assert not is_valid(footer)
        normalize(footer)
        assert is_valid(footer)
