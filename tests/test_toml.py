"""Tests for cargo_cvm.toml."""

from __future__ import annotations

from pathlib import Path

import pytest
import semver

from cargo_cvm.errors import ManifestError
from cargo_cvm.toml import (
    inherits_workspace_version,
    is_publishable,
    load_cargo_toml,
    manifest_from_doc,
    parse_cargo_toml,
    rewrite_package_version,
    workspace_package_version,
)

MANIFEST = """\
# Demo crate
[package]
name = "demo"
version = "1.2.0"
authors = ["Someone <someone@example.com>"]
edition = "2021"

[dependencies]
serde = { version = "1.2.0", features = ["derive"] }   # keep in sync

[dev-dependencies]
demo-helper = "1.2.0"
"""


def manifest(text: str, path: str = "Cargo.toml"):
    return manifest_from_doc(parse_cargo_toml(text, path), path)


class TestParseCargoToml:
    def test_invalid_toml(self) -> None:
        with pytest.raises(ManifestError, match="invalid TOML"):
            parse_cargo_toml("[package\nname = ", "crates/a/Cargo.toml")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ManifestError, match="UTF-8"):
            parse_cargo_toml(b"\xff\xfe", "Cargo.toml")

    def test_error_names_the_manifest(self) -> None:
        with pytest.raises(ManifestError) as exc_info:
            parse_cargo_toml("= 1", "crates/a/Cargo.toml")
        assert exc_info.value.path == "crates/a/Cargo.toml"

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError, match="manifest not found"):
            load_cargo_toml(tmp_path / "Cargo.toml", "Cargo.toml")


class TestManifestFromDoc:
    def test_package(self) -> None:
        m = manifest(MANIFEST)
        assert m.name == "demo"
        assert str(m.version) == "1.2.0"
        assert m.has_package
        assert m.publish
        assert not m.is_workspace_root

    def test_virtual_workspace_root(self) -> None:
        m = manifest('[workspace]\nmembers = ["a", "crates/*"]\nexclude = ["crates/old"]\n')
        assert not m.has_package
        assert m.version is None
        assert m.is_workspace_root
        assert m.members == ["a", "crates/*"]
        assert m.exclude == ["crates/old"]

    def test_root_with_package_and_members(self) -> None:
        m = manifest(MANIFEST + '\n[workspace]\nmembers = ["helper"]\n')
        assert m.has_package
        assert m.is_workspace_root
        assert m.members == ["helper"]

    def test_invalid_version(self) -> None:
        with pytest.raises(ManifestError, match="invalid semantic version"):
            manifest('[package]\nname = "a"\nversion = "1.2"\n')

    def test_missing_version(self) -> None:
        with pytest.raises(ManifestError, match="no version"):
            manifest('[package]\nname = "a"\n')

    def test_missing_name(self) -> None:
        with pytest.raises(ManifestError, match="no name"):
            manifest('[package]\nversion = "1.0.0"\n')

    def test_workspace_inherited_version(self) -> None:
        with pytest.raises(ManifestError, match="inherited from the workspace"):
            manifest('[package]\nname = "a"\nversion.workspace = true\n')

    def test_workspace_inherited_version_resolved(self) -> None:
        doc = parse_cargo_toml('[package]\nname = "a"\nversion.workspace = true\n', "a")
        m = manifest_from_doc(doc, "a", semver.Version.parse("0.4.0"))
        assert str(m.version) == "0.4.0"

    def test_unpublished_crate_may_omit_version(self) -> None:
        m = manifest('[package]\nname = "xtask"\npublish = false\n')
        assert m.name == "xtask"
        assert m.version is None
        assert not m.publish

    def test_prerelease_version(self) -> None:
        m = manifest('[package]\nname = "a"\nversion = "0.1.0-beta.2"\n')
        assert m.version is not None
        assert m.version.prerelease == "beta.2"


class TestWorkspaceVersion:
    def test_inherits(self) -> None:
        for text in (
            '[package]\nname = "a"\nversion.workspace = true\n',
            '[package]\nname = "a"\nversion = { workspace = true }\n',
        ):
            assert inherits_workspace_version(parse_cargo_toml(text, "a"))
        doc = parse_cargo_toml('[package]\nname = "a"\nversion = "1.0.0"\n', "a")
        assert not inherits_workspace_version(doc)

    def test_workspace_package_version(self) -> None:
        doc = parse_cargo_toml('[workspace.package]\nversion = "0.9.1"\n', "r")
        assert str(workspace_package_version(doc, "r")) == "0.9.1"
        bare = parse_cargo_toml("[workspace]\n", "r")
        assert workspace_package_version(bare, "r") is None

    def test_invalid_workspace_package_version(self) -> None:
        doc = parse_cargo_toml('[workspace.package]\nversion = "nope"\n', "r")
        with pytest.raises(ManifestError, match="workspace.package"):
            workspace_package_version(doc, "r")


class TestIsPublishable:
    @pytest.mark.parametrize(
        "package,expected",
        [
            ({}, True),
            ({"publish": True}, True),
            ({"publish": False}, False),
            ({"publish": []}, False),
            ({"publish": ["crates-io"]}, True),
        ],
    )
    def test_publish_field(self, package: dict, expected: bool) -> None:
        assert is_publishable(package) is expected


class TestRewritePackageVersion:
    def test_only_package_version_changes(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text(MANIFEST)

        rewrite_package_version(path, "1.3.0")

        expected = MANIFEST.replace(
            'version = "1.2.0"\nauthors', 'version = "1.3.0"\nauthors'
        )
        assert path.read_text() == expected

    def test_round_trip_reads_new_version(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text(MANIFEST)

        rewrite_package_version(path, "2.0.0")

        m = manifest_from_doc(load_cargo_toml(path), "Cargo.toml")
        assert str(m.version) == "2.0.0"
        assert m.name == "demo"

    def test_keeps_literal_string_quotes(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        original = "[package]\nname = \"a\"\nversion = '1.0.0'\nedition = \"2021\"\n"
        path.write_text(original)

        rewrite_package_version(path, "1.1.0")

        assert path.read_text() == original.replace("1.0.0", "1.1.0")

    def test_keeps_trailing_comment(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        original = '[package]\nname = "a"\nversion  =  "0.3.0"  # release\n'
        path.write_text(original)

        rewrite_package_version(path, "0.4.0")

        assert path.read_text() == original.replace("0.3.0", "0.4.0")

    def test_preserves_crlf_line_endings(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        original = '[package]\r\nname = "a"\r\nversion = "0.1.0"\r\n'
        path.write_bytes(original.encode())

        rewrite_package_version(path, "0.2.0")

        assert path.read_bytes() == original.replace("0.1.0", "0.2.0").encode()

    def test_leaves_no_temporary_files(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text(MANIFEST)

        rewrite_package_version(path, "1.2.1")

        assert [p.name for p in tmp_path.iterdir()] == ["Cargo.toml"]

    def test_virtual_manifest_cannot_be_bumped(self, tmp_path: Path) -> None:
        path = tmp_path / "Cargo.toml"
        path.write_text('[workspace]\nmembers = ["a"]\n')

        with pytest.raises(ManifestError, match="no \\[package\\]"):
            rewrite_package_version(path, "1.0.0")
