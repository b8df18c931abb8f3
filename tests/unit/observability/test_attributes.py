"""Tests for helmshift.observability.attributes module."""

from helmshift.observability import attributes
from helmshift.observability.attributes import (
    ATTR_CUTOVER_STEP,
    ATTR_DRY_RUN,
    ATTR_INSTANCE_NAME,
    ATTR_MIGRATION_STAGE,
    ATTR_RELEASE_NAME,
)


class TestAttributeConstants:
    """Tests for attribute constant definitions."""

    def test_all_attributes_have_helmshift_prefix(self):
        """Every exported attribute is namespaced under helmshift."""
        for name in attributes.__all__:
            assert getattr(attributes, name).startswith("helmshift."), name

    def test_attribute_values_are_unique(self):
        """No two constants share a value."""
        values = [getattr(attributes, name) for name in attributes.__all__]
        assert len(values) == len(set(values))

    def test_all_exports_are_defined(self):
        """__all__ lists only ATTR_ constants that exist."""
        for name in attributes.__all__:
            assert name.startswith("ATTR_")
            assert hasattr(attributes, name)

    def test_known_values(self):
        """Spot-check stable attribute names."""
        assert ATTR_INSTANCE_NAME == "helmshift.instance.name"
        assert ATTR_MIGRATION_STAGE == "helmshift.migration.stage"
        assert ATTR_RELEASE_NAME == "helmshift.release.name"
        assert ATTR_DRY_RUN == "helmshift.release.dry_run"
        assert ATTR_CUTOVER_STEP == "helmshift.cutover.step"

    def test_reexported_from_package(self):
        """The package exports every attribute constant."""
        from helmshift import observability

        for name in attributes.__all__:
            assert getattr(observability, name) == getattr(attributes, name)
