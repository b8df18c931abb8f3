"""
Version parsing and the version gate.

Versions are compared numerically component by component; pre-release
and build qualifiers ("-SNAPSHOT", "+build.5") are ignored, so
``5.0.0-SNAPSHOT`` compares equal to ``5.0.0``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from helmshift.migration.exceptions import UnsupportedVersionError

if TYPE_CHECKING:
    from helmshift.migration.profiles import ProductProfile

logger = logging.getLogger(__name__)

_QUALIFIER = re.compile(r"[-+].*$")


@dataclass(frozen=True, order=True)
class Version:
    """
    A (major, minor, patch) version.

    Example:
        >>> Version.parse("5.2.0-SNAPSHOT") >= Version(5, 0, 0)
        True
    """

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"Version components must be >= 0, got {self}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @classmethod
    def parse(cls, value: str) -> Version:
        """
        Parse ``MAJOR.MINOR.PATCH`` with optional qualifiers.

        Raises:
            ValueError: If the string does not have exactly three numeric parts.
        """
        core = _QUALIFIER.sub("", value.strip())
        parts = core.split(".")
        if len(parts) != 3 or not all(part.isdigit() for part in parts):
            raise ValueError(f"Invalid version string: {value!r}")
        major, minor, patch = (int(part) for part in parts)
        return cls(major, minor, patch)


def is_at_least(value: str, minimum: Version) -> bool:
    """Return True when ``value`` parses and is >= ``minimum``."""
    try:
        return Version.parse(value) >= minimum
    except ValueError:
        return False


def check_version(requested: str, profile: ProductProfile) -> Version:
    """
    Gate a target version against the product's minimum supported version.

    Pure: makes no calls of any kind.

    Returns:
        The parsed version.

    Raises:
        UnsupportedVersionError: If the version is unparseable or too old.
    """
    minimum = profile.minimum_version
    try:
        version = Version.parse(requested)
    except ValueError as e:
        raise UnsupportedVersionError(
            requested,
            str(minimum),
            reason="is not a valid MAJOR.MINOR.PATCH version",
        ) from e

    if version < minimum:
        raise UnsupportedVersionError(requested, str(minimum))

    logger.debug("Version %s accepted for %s (minimum %s)", version, profile.kind, minimum)
    return version


__all__ = [
    "Version",
    "check_version",
    "is_at_least",
]
