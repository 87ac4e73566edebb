"""Revision access contract used by the core.

The comparison engine never shells out. It reads files and diffs through
a RevisionReader, which git implements in ``cargo_cvm.git`` and tests
replace with an in-memory fake.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Protocol, Union


class WorkingTree(Enum):
    """Marker type for the uncommitted working tree revision."""

    WORKING_TREE = "working-tree"

    def __str__(self) -> str:
        return "working tree"


WORKING_TREE = WorkingTree.WORKING_TREE

# A named ref / commit, or the working tree
Revision = Union[str, WorkingTree]


class RevisionReader(Protocol):
    """Read-only access to files at two revisions."""

    def resolve_revision(self, branch: str) -> str:
        """Resolve a branch name to a concrete commit.

        Raises:
            RevisionError: If the ref does not exist locally.
        """
        ...

    def read_file(self, revision: Revision, path: str) -> bytes | None:
        """Return file content at ``revision``, or None if it does not exist there."""
        ...

    def changed_paths(
        self, revision_a: Revision, revision_b: Revision, scope_dir: str
    ) -> set[str]:
        """Return paths under ``scope_dir`` that differ between the revisions."""
        ...


class VersionControl(RevisionReader, Protocol):
    """RevisionReader that can also record rewritten manifests."""

    def stage(self, paths: Iterable[str]) -> None: ...

    def commit(self, message: str, body: str = "") -> None: ...
