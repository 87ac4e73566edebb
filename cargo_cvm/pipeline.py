"""Version check pipeline: resolve → discover → diff → compare → bump → commit.

This module orchestrates a cargo-cvm run:
1. Resolve the target branch to a commit
2. Discover all publishable crates in the workspace
3. Detect which crates' sources changed since the target
4. Compare each crate's version against the target's
5. Apply the decision policy, bumping versions in fix/force mode
6. Stage (and optionally commit) the rewritten manifests

Per-crate findings are collected for the whole workspace before anything
is reported, so one run always shows the full picture. Fatal errors
(broken manifests, unknown refs, git failures) propagate immediately.
"""

from __future__ import annotations

from pathlib import Path

import semver

from .changes import detect_changes
from .errors import ConfigError
from .models import (
    BumpKind,
    ChangeOutcome,
    ChangeStatus,
    Crate,
    CrateReport,
    CrateStatus,
    Manifest,
    Mode,
    RunReport,
    VersionBump,
    VersionVerdict,
)
from .revisions import RevisionReader, VersionControl
from .shell import step, warn
from .toml import (
    MANIFEST_NAME,
    inherits_workspace_version,
    manifest_from_doc,
    parse_cargo_toml,
    rewrite_package_version,
    workspace_package_version,
)
from .versions import bump_version, compare_versions, parse_version
from .workspace import resolve_workspace

COMMIT_MESSAGE = "updated crate version(s)"


def decide(change: ChangeOutcome, verdict: VersionVerdict) -> CrateStatus:
    """Combine a crate's change outcome and version verdict.

    A decreased version is always an error. Otherwise a crate is out of
    date only when its source changed and its version stayed the same.
    """
    if verdict is VersionVerdict.DECREASED:
        return CrateStatus.ERROR
    if (
        change.status is ChangeStatus.SOURCE_CHANGED
        and verdict is VersionVerdict.UNCHANGED
    ):
        return CrateStatus.OUT_OF_DATE
    return CrateStatus.OK


def read_workspace_version(
    reader: RevisionReader, target: str, label: str
) -> semver.Version | None:
    """Read [workspace.package].version from the root manifest at the target."""
    content = reader.read_file(target, MANIFEST_NAME)
    if content is None:
        return None
    shown = f"{label}:{MANIFEST_NAME}"
    return workspace_package_version(parse_cargo_toml(content, shown), shown)


def read_target_manifest(
    crate: Crate, reader: RevisionReader, target: str, label: str
) -> Manifest | None:
    """Read the crate's manifest at the target revision.

    Returns None if the crate does not exist there (or has no versioned
    [package] there). A version inherited with `version.workspace = true`
    resolves through the target root's [workspace.package]. A manifest that
    exists but fails to parse is fatal.
    """
    content = reader.read_file(target, crate.manifest_path)
    if content is None:
        return None
    shown = f"{label}:{crate.manifest_path}"
    doc = parse_cargo_toml(content, shown)
    workspace_version = None
    if inherits_workspace_version(doc):
        workspace_version = read_workspace_version(reader, target, label)
        if workspace_version is None:
            return None
    manifest = manifest_from_doc(doc, shown, workspace_version)
    if manifest.version is None:
        return None
    return manifest


def check_crate(
    crate: Crate, reader: RevisionReader, target: str, label: str
) -> CrateReport:
    """Run change detection and version comparison for a single crate."""
    target_manifest = read_target_manifest(crate, reader, target, label)
    target_version = target_manifest.version if target_manifest else None

    change = detect_changes(
        crate, reader, target, exists_at_target=target_manifest is not None
    )
    verdict = compare_versions(target_version, crate.version)
    return CrateReport(
        crate=crate,
        change=change,
        verdict=verdict,
        status=decide(change, verdict),
        target_version=str(target_version) if target_version else None,
    )


def bump_crate(root: Path, crate: Crate, kind: BumpKind) -> tuple[Crate, VersionBump]:
    """Bump a crate's version on disk and return the updated crate.

    The manifest is rewritten atomically; every byte other than the
    [package] version string is preserved.
    """
    new_version = bump_version(crate.version, kind)
    rewrite_package_version(root / crate.manifest_path, str(new_version))
    updated = crate.model_copy(
        update={"manifest": crate.manifest.model_copy(update={"version": new_version})}
    )
    return updated, VersionBump(old=str(crate.version), new=str(new_version))


def describe(report: CrateReport, target_label: str) -> str:
    """One-line human description of a crate's state."""
    crate = report.crate
    if report.verdict is VersionVerdict.DECREASED:
        return (
            f"{crate.name}: version {crate.version} is lower than "
            f"{report.target_version} on {target_label}"
        )
    if report.status is CrateStatus.OUT_OF_DATE:
        return (
            f"{crate.name}: version {crate.version} is not updated for changes "
            f"in {crate.source_dir} ({len(report.change.paths)} files, "
            f"manifest {crate.manifest_path})"
        )
    if report.verdict is VersionVerdict.TARGET_MISSING:
        return f"{crate.name} {crate.version}: new crate (not on {target_label})"
    if report.verdict is VersionVerdict.BUMPED:
        return f"{crate.name}: {report.target_version} → {crate.version}"
    if not report.change.changed:
        return f"{crate.name} {crate.version}: no source changes"
    return f"{crate.name} {crate.version}: ok"


def apply_bumps(
    root: Path, reports: list[CrateReport], mode: Mode, kind: BumpKind
) -> list[CrateReport]:
    """Bump out-of-date crates (fix) or every crate (force).

    Each bumped crate is re-judged against its target version, so a forced
    bump that still lands below the target stays an error.
    """
    step(f"Bumping {kind.value} versions")

    result: list[CrateReport] = []
    for report in reports:
        needs_bump = mode is Mode.FORCE or report.status is CrateStatus.OUT_OF_DATE
        if not needs_bump:
            result.append(report)
            continue

        crate, bump = bump_crate(root, report.crate, kind)
        target_version: semver.Version | None = (
            parse_version(report.target_version) if report.target_version else None
        )
        verdict = compare_versions(target_version, crate.version)
        result.append(
            report.model_copy(
                update={
                    "crate": crate,
                    "verdict": verdict,
                    "status": decide(report.change, verdict),
                    "bump": bump,
                }
            )
        )
        print(f"  {crate.name}: {bump.old} → {bump.new}")

    if not any(r.bump for r in result):
        print("  Nothing to bump")
    return result


def commit_bumps(vcs: VersionControl, report: RunReport, commit: bool) -> None:
    """Stage rewritten manifests and optionally commit them."""
    bumped = report.bumped
    if not bumped:
        if commit:
            print("  No version changes to commit")
        return

    vcs.stage(r.crate.manifest_path for r in bumped)
    for r in bumped:
        print(f"  version {r.bump.new} update of {r.crate.name} added to git")

    if commit:
        summary = "\n".join(
            f"  {r.crate.name}: {r.bump.old} → {r.bump.new}" for r in bumped
        )
        vcs.commit(COMMIT_MESSAGE, summary)
        print("  Committed")


def print_findings(report: RunReport) -> None:
    """Print every offending crate; errors go to stderr."""
    offenders = [r for r in report.crates if r.status is not CrateStatus.OK]
    if not offenders:
        print("\nAll crate versions are up to date.")
        return

    prefix = "warning" if report.mode is Mode.WARN else "error"
    for r in offenders:
        warn(f"{prefix}: {describe(r, report.target)}")


def run_check(
    root: Path,
    vcs: VersionControl,
    *,
    mode: Mode = Mode.WARN,
    branch: str = "master",
    semver_kind: BumpKind = BumpKind.MINOR,
    commit: bool = False,
) -> RunReport:
    """Execute a full cargo-cvm run.

    Args:
        root: Workspace root containing the root Cargo.toml.
        vcs: Git collaborator used for reads, diffs, staging and commits.
        mode: check / warn / fix / force.
        branch: Target branch to compare against.
        semver_kind: Component to bump in fix/force mode.
        commit: Commit rewritten manifests (fix/force only).

    Returns:
        RunReport with one entry per crate, in workspace order. Inspect
        ``failed`` to decide the exit status.

    Raises:
        ConfigError: If ``commit`` is set outside fix/force.
        RevisionError: If ``branch`` cannot be resolved.
        ManifestError: If any manifest is missing or invalid.
        GitError: If a git command fails.
    """
    if commit and mode not in (Mode.FIX, Mode.FORCE):
        raise ConfigError("--commit can only be used with --fix or --force")

    step(f"Resolving target branch {branch}")
    target = vcs.resolve_revision(branch)
    print(f"  {branch} → {target[:12]}")

    crates = resolve_workspace(root)

    step(f"Comparing {len(crates)} crates against {branch}")
    reports: list[CrateReport] = []
    for crate in crates:
        report = check_crate(crate, vcs, target, branch)
        reports.append(report)
        print(f"  {describe(report, branch)}")

    if mode in (Mode.FIX, Mode.FORCE):
        reports = apply_bumps(root, reports, mode, semver_kind)

    report = RunReport(mode=mode, target=branch, crates=reports)
    print_findings(report)

    if mode in (Mode.FIX, Mode.FORCE):
        step("Recording version updates")
        commit_bumps(vcs, report, commit)

    return report
