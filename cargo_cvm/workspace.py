"""Workspace discovery.

Resolves the root Cargo.toml into the ordered list of crates to check:
the root package first (if any), then [workspace].members in declaration
order. Only one level of members is read; nested workspaces are not
followed.
"""

from __future__ import annotations

import glob
import posixpath
from pathlib import Path
from typing import Any

from .config import CvmConfig, crate_source_dir, load_config
from .errors import ManifestError
from .models import Crate
from .shell import step
from .toml import MANIFEST_NAME, load_cargo_toml, manifest_from_doc

GLOB_CHARS = frozenset("*?[")


def _normalize(path: str) -> str:
    return posixpath.normpath(path.replace("\\", "/"))


def _manifest_path(directory: str) -> str:
    return MANIFEST_NAME if directory == "." else f"{directory}/{MANIFEST_NAME}"


def _is_excluded(directory: str, excluded: list[str]) -> bool:
    return any(
        directory == ex or directory.startswith(ex.rstrip("/") + "/") for ex in excluded
    )


def expand_members(root: Path, members: list[str], exclude: list[str]) -> list[str]:
    """Expand [workspace].members into crate directories relative to ``root``.

    Glob patterns expand lexicographically and only keep directories that
    contain a Cargo.toml; [workspace].exclude applies to glob matches only.
    Literal entries are kept as-is and must resolve to a manifest later.
    Duplicates keep their first occurrence.
    """
    excluded = [_normalize(e) for e in exclude]
    dirs: list[str] = []
    for entry in members:
        if GLOB_CHARS & set(entry):
            for match in sorted(glob.glob(entry, root_dir=root)):
                if not (root / match / MANIFEST_NAME).is_file():
                    continue
                rel = _normalize(match)
                if not _is_excluded(rel, excluded):
                    dirs.append(rel)
        else:
            dirs.append(_normalize(entry))

    # Preserve declaration order while dropping repeats
    return list(dict.fromkeys(dirs))


def _crate_from_dir(
    root: Path, directory: str, config: CvmConfig
) -> tuple[Crate | None, str]:
    """Load the crate at ``directory``; returns (crate, skip reason)."""
    manifest_path = _manifest_path(directory)
    doc = load_cargo_toml(root / manifest_path, manifest_path)
    manifest = manifest_from_doc(doc, manifest_path)

    name = manifest.name
    if name is None:
        raise ManifestError(manifest_path, "workspace member has no [package]")
    if not manifest.publish:
        return None, f"{name}: skipped (publish = false)"
    if name in config.exclude:
        return None, f"{name}: skipped (excluded in [metadata.cvm])"

    data: dict[str, Any] = doc.unwrap()
    source = crate_source_dir(data, config)
    crate = Crate(
        name=name,
        directory=directory,
        manifest_path=manifest_path,
        source_dir=_normalize(posixpath.join(directory, source)),
        manifest=manifest,
    )
    return crate, ""


def resolve_workspace(root: Path) -> list[Crate]:
    """Scan the workspace rooted at ``root`` and return its publishable crates.

    Raises:
        ManifestError: If the root manifest or any declared member's manifest
                       is missing or invalid.
        ConfigError: If [metadata.cvm] is malformed.
    """
    step("Discovering workspace crates")

    root_doc = load_cargo_toml(root / MANIFEST_NAME, MANIFEST_NAME)
    root_manifest = manifest_from_doc(root_doc, MANIFEST_NAME)
    config = load_config(root_doc.unwrap())

    directories: list[str] = []
    if root_manifest.has_package:
        directories.append(".")
    directories.extend(
        expand_members(root, root_manifest.members, root_manifest.exclude)
    )
    directories = list(dict.fromkeys(directories))

    crates: list[Crate] = []
    for directory in directories:
        crate, skipped = _crate_from_dir(root, directory, config)
        if crate is None:
            print(f"  {skipped}")
            continue
        crates.append(crate)
        print(f"  {crate.name} {crate.version} ({crate.directory})")

    if not crates:
        print("  <no publishable crates found>")
    return crates
