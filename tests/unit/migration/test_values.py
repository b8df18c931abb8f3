"""
Unit tests for ValuesTree.

Tests cover:
- Schema-validated writes (leaf paths, wildcard children, containers)
- Type checking of nodes
- get/has/delete with pruning of empty parents
- Canonical serialization
- Non-strict loading of release values
"""

import pytest

from helmshift.migration.profiles import ALERT_PROFILE
from helmshift.migration.values import SchemaViolation, ValuesTree


@pytest.fixture
def tree() -> ValuesTree:
    return ValuesTree(ALERT_PROFILE)


class TestSet:
    """Tests for ValuesTree.set."""

    def test_nested_path_builds_maps(self, tree):
        tree.set("alert.resources.limits.memory", "2560M")

        assert tree.to_dict() == {"alert": {"resources": {"limits": {"memory": "2560M"}}}}

    def test_wildcard_child_is_accepted(self, tree):
        tree.set("environs.ALERT_HOSTNAME", "alert.example.com")

        assert tree.get("environs") == {"ALERT_HOSTNAME": "alert.example.com"}

    def test_unknown_path_is_rejected(self, tree):
        with pytest.raises(SchemaViolation) as exc_info:
            tree.set("alert.imagetag", "5.0.0")

        assert exc_info.value.path == "alert.imagetag"

    def test_wildcard_does_not_accept_grandchildren(self, tree):
        with pytest.raises(SchemaViolation):
            tree.set("environs.A.B", "x")

    def test_mapping_on_container_is_expanded(self, tree):
        tree.set("environs", {"A": "1", "B": "2"})

        assert sorted(tree.paths()) == ["environs.A", "environs.B"]

    def test_mapping_on_container_validates_each_leaf(self, tree):
        with pytest.raises(SchemaViolation):
            tree.set("alert", {"imageTag": "5.0.0", "bogus": True})

    @pytest.mark.parametrize("path", ["", "alert..imageTag", ".status"])
    def test_empty_components_are_rejected(self, tree, path):
        with pytest.raises(SchemaViolation):
            tree.set(path, "x")

    def test_list_of_scalars(self, tree):
        tree.set("imagePullSecrets", ["a", "b"])

        assert tree.get("imagePullSecrets") == ["a", "b"]

    @pytest.mark.parametrize("value", [object(), b"bytes", None])
    def test_unsupported_types_are_rejected(self, tree, value):
        with pytest.raises(SchemaViolation):
            tree.set("status", value)

    def test_written_values_are_copied(self, tree):
        secrets = ["a"]
        tree.set("imagePullSecrets", secrets)
        secrets.append("b")

        assert tree.get("imagePullSecrets") == ["a"]


class TestReadAndDelete:
    """Tests for get, has and delete."""

    def test_get_default(self, tree):
        assert tree.get("status", "missing") == "missing"

    def test_has(self, tree):
        tree.set("exposeui", False)

        assert tree.has("exposeui")
        assert not tree.has("status")

    def test_delete_prunes_empty_parents(self, tree):
        tree.set("environs.A", "1")

        assert tree.delete("environs.A") is True
        assert tree.to_dict() == {}

    def test_delete_keeps_non_empty_parents(self, tree):
        tree.set("environs.A", "1")
        tree.set("environs.B", "2")

        tree.delete("environs.A")

        assert tree.to_dict() == {"environs": {"B": "2"}}

    def test_delete_missing_returns_false(self, tree):
        assert tree.delete("environs.A") is False

    def test_to_dict_is_a_copy(self, tree):
        tree.set("environs.A", "1")
        tree.to_dict()["environs"]["A"] = "changed"

        assert tree.get("environs.A") == "1"


class TestCanonicalBytes:
    """Tests for deterministic serialization."""

    def test_insertion_order_does_not_matter(self):
        first = ValuesTree(ALERT_PROFILE)
        first.set("status", "Running")
        first.set("alert.imageTag", "5.2.0")

        second = ValuesTree(ALERT_PROFILE)
        second.set("alert.imageTag", "5.2.0")
        second.set("status", "Running")

        assert first.canonical_bytes() == second.canonical_bytes()
        assert first == second

    def test_format(self, tree):
        tree.set("status", "Running")
        tree.set("exposeui", False)

        assert tree.canonical_bytes() == b'{"exposeui":false,"status":"Running"}'


class TestNonStrict:
    """Tests for loading values read back from a release."""

    def test_unknown_keys_are_kept(self):
        tree = ValuesTree(ALERT_PROFILE, {"custom": {"key": 1}}, strict=False)

        assert tree.get("custom.key") == 1

    def test_strict_loading_rejects_unknown_keys(self):
        with pytest.raises(SchemaViolation):
            ValuesTree(ALERT_PROFILE, {"custom": {"key": 1}})

    def test_later_writes_are_still_validated(self):
        tree = ValuesTree(ALERT_PROFILE, {"custom": 1}, strict=False)

        with pytest.raises(SchemaViolation):
            tree.set("another", 2)

    def test_copy_is_independent(self):
        tree = ValuesTree(ALERT_PROFILE, {"status": "Running"})
        clone = tree.copy()
        clone.set("status", "Stopped")

        assert tree.get("status") == "Running"
