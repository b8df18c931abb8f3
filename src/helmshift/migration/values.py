"""
Typed release values keyed by dotted paths.

ValuesTree is the only way the orchestrator builds release values. Every
write is checked against the product's key schema, so a misspelt key is
rejected before anything is submitted to the release system.

Example:
    >>> tree = ValuesTree(ALERT_PROFILE)
    >>> tree.set("alert.imageTag", "6.0.0")
    >>> tree.set("environs.ALERT_HOSTNAME", "alert.example.com")
    >>> tree.to_dict()
    {'alert': {'imageTag': '6.0.0'}, 'environs': {'ALERT_HOSTNAME': 'alert.example.com'}}
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from helmshift.migration.profiles import ProductProfile

Scalar = str | int | float | bool
Node = Scalar | list["Node"] | dict[str, "Node"]


class SchemaViolation(ValueError):
    """Raised when a key path or value does not fit the values schema."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"{path}: {reason}")


def _split(path: str) -> list[str]:
    parts = path.split(".")
    if not path or any(not part for part in parts):
        raise SchemaViolation(path, "empty key path component")
    return parts


def _check_node(path: str, value: Any) -> Node:
    """Validate that ``value`` is a scalar, a list of nodes or a string-keyed map."""
    if isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, Mapping):
        checked: dict[str, Node] = {}
        for key, child in value.items():
            if not isinstance(key, str):
                raise SchemaViolation(path, f"map keys must be strings, got {key!r}")
            checked[key] = _check_node(f"{path}.{key}", child)
        return checked
    if isinstance(value, Sequence) and not isinstance(value, bytes | bytearray):
        return [_check_node(f"{path}[{index}]", item) for index, item in enumerate(value)]
    raise SchemaViolation(path, f"unsupported value type {type(value).__name__}")


class ValuesTree:
    """
    A tree of scalar, list and map nodes validated against a product schema.

    Args:
        profile: Product profile supplying the key schema.
        data: Optional initial values; validated like any other write.
        strict: When False, ``data`` is only type-checked, not matched
            against the schema. Used for values read back from an
            existing release, which may carry keys set by hand.
    """

    def __init__(
        self,
        profile: ProductProfile,
        data: Mapping[str, Any] | None = None,
        *,
        strict: bool = True,
    ) -> None:
        self._profile = profile
        self._root: dict[str, Node] = {}
        if data and strict:
            self.update(data)
        elif data:
            self._root = dict(_check_node("<root>", data))  # type: ignore[arg-type]

    @property
    def profile(self) -> ProductProfile:
        return self._profile

    def set(self, path: str, value: Any) -> None:
        """
        Set the value at a dotted key path.

        A mapping written to a container path (``environs``) is expanded
        and each leaf is validated individually.

        Raises:
            SchemaViolation: If the path is not in the schema or the value
                is not a scalar, list or map.
        """
        parts = _split(path)
        if isinstance(value, Mapping) and self._profile.is_container(path):
            for key, child in value.items():
                self.set(f"{path}.{key}", child)
            return
        if not self._profile.accepts(path):
            raise SchemaViolation(path, f"not a {self._profile.kind} values key")
        node = _check_node(path, value)

        current = self._root
        for part in parts[:-1]:
            child = current.get(part)
            if not isinstance(child, dict):
                child = {}
                current[part] = child
            current = child
        current[parts[-1]] = copy.deepcopy(node)

    def update(self, values: Mapping[str, Any]) -> None:
        """Set every (dotted or nested) key of ``values``."""
        for path, value in self._flatten(values):
            self.set(path, value)

    def get(self, path: str, default: Any = None) -> Any:
        """Return a copy of the node at ``path``, or ``default``."""
        current: Any = self._root
        for part in _split(path):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return copy.deepcopy(current)

    def has(self, path: str) -> bool:
        sentinel = object()
        return self.get(path, sentinel) is not sentinel

    def delete(self, path: str) -> bool:
        """
        Remove the node at ``path``.

        Empty parent maps left behind are pruned.

        Returns:
            True if something was removed.
        """
        parts = _split(path)
        trail: list[tuple[dict[str, Node], str]] = []
        current: Any = self._root
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return False
            trail.append((current, part))
            current = current[part]

        parent, key = trail.pop()
        del parent[key]
        while trail:
            parent, key = trail.pop()
            if parent[key] == {}:
                del parent[key]
        return True

    def paths(self) -> Iterator[str]:
        """Iterate leaf key paths in sorted order."""
        for path, _ in self._flatten(self._root):
            yield path

    def to_dict(self) -> dict[str, Any]:
        """Deep copy of the tree as plain nested dictionaries."""
        return copy.deepcopy(self._root)

    def canonical_bytes(self) -> bytes:
        """
        Deterministic serialization of the tree.

        Keys are sorted and whitespace fixed, so two trees with the same
        content always produce the same bytes.
        """
        return json.dumps(
            self._root, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")

    def copy(self) -> ValuesTree:
        clone = ValuesTree(self._profile)
        clone._root = self.to_dict()
        return clone

    def _flatten(
        self, values: Mapping[str, Any], prefix: str = ""
    ) -> Iterator[tuple[str, Any]]:
        for key in sorted(values):
            value = values[key]
            path = f"{prefix}{key}"
            if isinstance(value, Mapping) and value and self._profile.is_container(path):
                yield from self._flatten(value, f"{path}.")
            else:
                yield path, value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValuesTree):
            return NotImplemented
        return self._profile == other._profile and self._root == other._root

    def __repr__(self) -> str:
        return f"ValuesTree({self._profile.kind}, {self._root!r})"


__all__ = [
    "SchemaViolation",
    "ValuesTree",
]
