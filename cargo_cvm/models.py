"""Data models for cargo-cvm.

These Pydantic models represent the core data structures passed between
workspace resolution, change detection, version comparison and the
orchestrating pipeline.
"""

from __future__ import annotations

from enum import Enum

import semver
from pydantic import BaseModel, ConfigDict, Field

from .errors import ManifestError


class BumpKind(str, Enum):
    """Which semver component to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class Mode(str, Enum):
    """Primary mode of a run, selected by CLI flag."""

    CHECK = "check"
    WARN = "warn"
    FIX = "fix"
    FORCE = "force"


class ChangeStatus(str, Enum):
    NO_SOURCE_CHANGE = "no-source-change"
    SOURCE_CHANGED = "source-changed"


class VersionVerdict(str, Enum):
    """Relationship between a crate's target and working versions."""

    UNCHANGED = "unchanged"
    BUMPED = "bumped"
    DECREASED = "decreased"
    TARGET_MISSING = "target-missing"


class CrateStatus(str, Enum):
    """Outcome of the decision policy for one crate."""

    OK = "ok"
    OUT_OF_DATE = "out-of-date"
    ERROR = "error"


class Manifest(BaseModel):
    """Typed view of a Cargo.toml.

    Attributes:
        name: [package].name, or None for a virtual workspace root.
        version: Parsed [package].version, or None for a virtual root.
        path: Manifest path relative to the workspace root.
        is_workspace_root: True if the manifest declares [workspace].
        members: [workspace].members entries, in declaration order.
        exclude: [workspace].exclude entries.
        publish: False when the package opts out of publishing.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str | None = None
    version: semver.Version | None = None
    path: str
    is_workspace_root: bool = False
    members: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    publish: bool = True

    @property
    def has_package(self) -> bool:
        return self.name is not None


class Crate(BaseModel):
    """One publishable workspace member.

    Attributes:
        name: Crate name from [package].name.
        directory: Crate directory relative to the workspace root ("." for root).
        manifest_path: Path to the crate's Cargo.toml relative to the root.
        source_dir: Directory whose changes require a version bump.
        manifest: The crate's manifest at the working revision.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    directory: str
    manifest_path: str
    source_dir: str
    manifest: Manifest

    @property
    def version(self) -> semver.Version:
        if self.manifest.version is None:
            raise ManifestError(self.manifest_path, "[package] has no version")
        return self.manifest.version


class ChangeOutcome(BaseModel):
    """Whether a crate's source changed, with the changed paths for diagnostics."""

    status: ChangeStatus
    paths: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.status is ChangeStatus.SOURCE_CHANGED


class VersionBump(BaseModel):
    """Records a version change for a crate.

    Attributes:
        old: The version before bumping.
        new: The version after bumping.
    """

    old: str
    new: str


class CrateReport(BaseModel):
    """Everything a run learned about one crate."""

    crate: Crate
    change: ChangeOutcome
    verdict: VersionVerdict
    status: CrateStatus
    target_version: str | None = None
    bump: VersionBump | None = None


class RunReport(BaseModel):
    """Per-crate reports of one run, in workspace order."""

    mode: Mode
    target: str
    crates: list[CrateReport] = Field(default_factory=list)

    @property
    def out_of_date(self) -> list[CrateReport]:
        return [r for r in self.crates if r.status is CrateStatus.OUT_OF_DATE]

    @property
    def errors(self) -> list[CrateReport]:
        return [r for r in self.crates if r.status is CrateStatus.ERROR]

    @property
    def bumped(self) -> list[CrateReport]:
        return [r for r in self.crates if r.bump is not None]

    @property
    def failed(self) -> bool:
        """True if the run should exit non-zero.

        Warn mode never fails. Check mode fails on any offending crate.
        Fix and force repair out-of-date crates but never a regression.
        """
        if self.mode is Mode.WARN:
            return False
        if self.mode is Mode.CHECK:
            return bool(self.out_of_date or self.errors)
        return bool(self.errors)
