"""Semantic version parsing and comparison.

Only strict ``MAJOR.MINOR.PATCH`` versions (optionally prefixed with ``v``
and suffixed with prerelease/build metadata) are understood. Prerelease and
build metadata are parsed but never used for ordering.
"""

import re

from .models import SemverParts, UpdateType

SEMVER_PATTERN = re.compile(
    r"(\d+)\.(\d+)\.(\d+)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?",
    re.ASCII,
)


def parse_semver(version: str) -> SemverParts | None:
    """Parse a version string, returning None when it is not strict semver."""
    if not isinstance(version, str):
        return None

    cleaned = version[1:] if version.startswith("v") else version
    match = SEMVER_PATTERN.fullmatch(cleaned)
    if not match:
        return None

    major, minor, patch, prerelease, build = match.groups()
    return SemverParts(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=prerelease,
        build=build,
    )


def is_valid_semver(version: str) -> bool:
    return parse_semver(version) is not None


def _core(parts: SemverParts) -> tuple[int, int, int]:
    return (parts.major, parts.minor, parts.patch)


def get_update_type(current: str, latest: str) -> UpdateType:
    """Classify the upgrade from ``current`` to ``latest``.

    Unparseable input, equal cores (regardless of prerelease) and downgrades
    all yield ``UpdateType.NONE``.
    """
    current_parts = parse_semver(current)
    latest_parts = parse_semver(latest)

    if current_parts is None or latest_parts is None:
        return UpdateType.NONE

    if _core(current_parts) == _core(latest_parts):
        return UpdateType.NONE

    if latest_parts.major > current_parts.major:
        return UpdateType.MAJOR

    if latest_parts.major == current_parts.major and latest_parts.minor > current_parts.minor:
        return UpdateType.MINOR

    if (
        latest_parts.major == current_parts.major
        and latest_parts.minor == current_parts.minor
        and latest_parts.patch > current_parts.patch
    ):
        return UpdateType.PATCH

    return UpdateType.NONE


def compare_semver(a: str, b: str) -> int:
    """Return -1, 0 or 1. Unparseable versions compare equal."""
    a_parts = parse_semver(a)
    b_parts = parse_semver(b)

    if a_parts is None or b_parts is None:
        return 0

    a_core, b_core = _core(a_parts), _core(b_parts)
    if a_core < b_core:
        return -1
    if a_core > b_core:
        return 1
    return 0
