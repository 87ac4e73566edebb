"""Cargo.toml reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying manifests,
so a version bump changes nothing but the version string.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, cast

import semver
import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import String, StringType

from .errors import ManifestError
from .models import Manifest
from .versions import parse_version

MANIFEST_NAME = "Cargo.toml"


def parse_cargo_toml(content: str | bytes, path: str) -> tomlkit.TOMLDocument:
    """Parse manifest content, reporting failures against ``path``."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ManifestError(path, f"not valid UTF-8 ({exc})") from exc
    try:
        return tomlkit.parse(content)
    except TOMLKitError as exc:
        raise ManifestError(path, f"invalid TOML ({exc})") from exc


def load_cargo_toml(path: Path, display_path: str | None = None) -> tomlkit.TOMLDocument:
    """Load and parse a Cargo.toml from disk.

    Content is read as bytes so line endings survive a later rewrite.
    """
    shown = display_path or str(path)
    if not path.is_file():
        raise ManifestError(shown, "manifest not found")
    return parse_cargo_toml(path.read_bytes(), shown)


def save_cargo_toml(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Atomically write a TOMLDocument back to disk.

    The document is written to a temporary file in the same directory and
    renamed over the original, so a crash never leaves a half-written
    manifest behind.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(tomlkit.dumps(doc))
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def get_workspace_members(data: dict[str, Any]) -> list[str]:
    """Extract [workspace].members entries (paths or glob patterns)."""
    return [str(m) for m in data.get("workspace", {}).get("members", [])]


def get_workspace_exclude(data: dict[str, Any]) -> list[str]:
    """Extract [workspace].exclude paths."""
    return [str(m) for m in data.get("workspace", {}).get("exclude", [])]


def is_publishable(package: dict[str, Any]) -> bool:
    """False for `publish = false` or `publish = []`; registry lists count as publishable."""
    publish = package.get("publish", True)
    if isinstance(publish, list):
        return bool(publish)
    return publish is not False


def inherits_workspace_version(doc: tomlkit.TOMLDocument) -> bool:
    """True if [package] uses `version.workspace = true`."""
    version = doc.unwrap().get("package", {}).get("version")
    return isinstance(version, dict) and version.get("workspace") is True


def workspace_package_version(
    doc: tomlkit.TOMLDocument, path: str
) -> semver.Version | None:
    """Return [workspace.package].version, or None if the root sets none."""
    raw = doc.unwrap().get("workspace", {}).get("package", {}).get("version")
    if raw is None:
        return None
    try:
        return parse_version(raw)
    except ValueError as exc:
        raise ManifestError(
            path, f"invalid semantic version {raw!r} in [workspace.package]"
        ) from exc


def manifest_from_doc(
    doc: tomlkit.TOMLDocument,
    path: str,
    workspace_version: semver.Version | None = None,
) -> Manifest:
    """Build a Manifest model from a parsed Cargo.toml.

    ``workspace_version`` stands in for an inherited `version.workspace = true`.

    Raises:
        ManifestError: If a publishable [package] has no valid semver version.
    """
    data = doc.unwrap()
    package = data.get("package")
    name: str | None = None
    version = None
    publish = True

    if package is not None:
        name = package.get("name")
        if not isinstance(name, str) or not name:
            raise ManifestError(path, "[package] has no name")
        publish = is_publishable(package)
        raw_version = package.get("version")
        if isinstance(raw_version, dict):
            if workspace_version is not None:
                version = workspace_version
            elif publish:
                raise ManifestError(
                    path,
                    "version is inherited from the workspace; "
                    "cvm needs an explicit [package] version",
                )
        elif raw_version is None:
            if publish:
                raise ManifestError(path, "[package] has no version")
        else:
            try:
                version = parse_version(raw_version)
            except ValueError as exc:
                raise ManifestError(
                    path, f"invalid semantic version {raw_version!r}"
                ) from exc

    return Manifest(
        name=name,
        version=version,
        path=path,
        is_workspace_root="workspace" in data,
        members=get_workspace_members(data),
        exclude=get_workspace_exclude(data),
        publish=publish,
    )


def rewrite_package_version(manifest_path: Path, new_version: str) -> None:
    """Set [package].version in a Cargo.toml, leaving every other byte intact.

    Only the package's own version is touched; dependency version
    requirements are left alone.
    """
    doc = load_cargo_toml(manifest_path)
    package = doc.get("package")
    if package is None:
        raise ManifestError(str(manifest_path), "no [package] table to bump")
    # Cast needed because tomlkit types are complex unions
    table = cast(dict[str, Any], package)
    old = table.get("version")
    if isinstance(old, String):
        # Keep the quoting style of the original value
        table["version"] = tomlkit.string(
            new_version, literal=old.type is StringType.SLL
        )
    else:
        table["version"] = new_version
    save_cargo_toml(manifest_path, doc)
