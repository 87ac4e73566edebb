"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pytest

from cargo_cvm.errors import RevisionError
from cargo_cvm.revisions import WORKING_TREE, Revision


def cargo_toml(name: str, version: str, extra: str = "") -> str:
    """Render a minimal crate manifest."""
    return (
        "[package]\n"
        f'name = "{name}"\n'
        f'version = "{version}"\n'
        'edition = "2021"\n'
        f"{extra}"
    )


def write_files(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def snapshot(root: Path) -> dict[str, str]:
    """Capture every file under ``root`` as a {relative path: content} tree."""
    return {
        p.relative_to(root).as_posix(): p.read_text()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


class FakeRepository:
    """In-memory stand-in for GitRepository.

    Branches are plain {path: content} trees; the working tree is whatever
    is on disk under ``root``. Staging and commits are recorded.
    """

    def __init__(self, root: Path, branches: dict[str, dict[str, str]]) -> None:
        self.root = root
        self.branches = branches
        self.staged: list[str] = []
        self.commits: list[tuple[str, str]] = []

    def resolve_revision(self, branch: str) -> str:
        if branch not in self.branches:
            raise RevisionError(branch)
        return f"sha:{branch}"

    def _tree(self, revision: Revision) -> dict[str, str]:
        if revision is WORKING_TREE:
            return snapshot(self.root)
        assert isinstance(revision, str) and revision.startswith("sha:"), revision
        return self.branches[revision.removeprefix("sha:")]

    def read_file(self, revision: Revision, path: str) -> bytes | None:
        content = self._tree(revision).get(path)
        return content.encode() if content is not None else None

    def changed_paths(
        self, revision_a: Revision, revision_b: Revision, scope_dir: str
    ) -> set[str]:
        a, b = self._tree(revision_a), self._tree(revision_b)
        prefix = scope_dir.rstrip("/") + "/"
        return {
            p
            for p in a.keys() | b.keys()
            if (scope_dir == "." or p.startswith(prefix)) and a.get(p) != b.get(p)
        }

    def stage(self, paths: Iterable[str]) -> None:
        self.staged.extend(paths)

    def commit(self, message: str, body: str = "") -> None:
        self.commits.append((message, body))


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A virtual workspace with two crates under crates/."""
    write_files(
        tmp_path,
        {
            "Cargo.toml": '[workspace]\nmembers = ["crates/*"]\nresolver = "2"\n',
            "crates/alpha/Cargo.toml": cargo_toml("alpha", "1.0.0"),
            "crates/alpha/src/lib.rs": "pub fn alpha() {}\n",
            "crates/beta/Cargo.toml": cargo_toml(
                "beta",
                "2.1.0",
                '\n[dependencies]\nalpha = { path = "../alpha", version = "1.0.0" }\n',
            ),
            "crates/beta/src/lib.rs": "pub fn beta() {}\n",
        },
    )
    return tmp_path


@pytest.fixture
def repo(workspace: Path) -> FakeRepository:
    """Fake repository whose master branch matches the initial workspace."""
    return FakeRepository(workspace, {"master": snapshot(workspace)})
