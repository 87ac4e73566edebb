"""Version parsing, comparison and bumping.

Versions are full semver (major.minor.patch[-pre][+build]). Unlike
Python packaging versions, Cargo requires all three numeric components,
so incomplete strings such as "1.2" are rejected rather than padded.
"""

from __future__ import annotations

import semver

from .models import BumpKind, VersionVerdict


def parse_version(version_str: str) -> semver.Version:
    """Parse a semver string.

    Raises:
        ValueError: If the string is not a valid semantic version.
    """
    if not isinstance(version_str, str):
        raise ValueError(f"version must be a string, got {type(version_str).__name__}")
    return semver.Version.parse(version_str)


def compare_versions(
    target: semver.Version | None, working: semver.Version
) -> VersionVerdict:
    """Classify the working version against the target revision's version.

    Build metadata never affects the result: semver ignores it for both
    equality and ordering.

    Examples:
        compare_versions(None, 1.0.0)  → TARGET_MISSING
        compare_versions(1.2.0, 1.2.0) → UNCHANGED
        compare_versions(1.2.0, 1.3.0) → BUMPED
        compare_versions(1.1.0, 1.0.0) → DECREASED
    """
    if target is None:
        return VersionVerdict.TARGET_MISSING
    cmp = working.compare(target)
    if cmp == 0:
        return VersionVerdict.UNCHANGED
    if cmp > 0:
        return VersionVerdict.BUMPED
    return VersionVerdict.DECREASED


def bump_version(version: semver.Version, kind: BumpKind) -> semver.Version:
    """Increment one component and reset the lower ones.

    Pre-release and build metadata are dropped.

    Examples:
        bump_version(1.2.3, MAJOR)       → 2.0.0
        bump_version(1.2.3, MINOR)       → 1.3.0
        bump_version(1.2.3-rc.1, PATCH)  → 1.2.4
    """
    if kind is BumpKind.MAJOR:
        return semver.Version(version.major + 1, 0, 0)
    if kind is BumpKind.MINOR:
        return semver.Version(version.major, version.minor + 1, 0)
    return semver.Version(version.major, version.minor, version.patch + 1)
