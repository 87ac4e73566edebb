"""Source change detection.

A crate needs a new version when anything under its source directory
differs between the target revision and the working tree. Only the source
directory is considered: editing Cargo.toml alone (for instance the
version bump itself) is not a source change.
"""

from __future__ import annotations

from .models import ChangeOutcome, ChangeStatus, Crate
from .revisions import WORKING_TREE, Revision, RevisionReader


def detect_changes(
    crate: Crate,
    reader: RevisionReader,
    target: Revision,
    *,
    working: Revision = WORKING_TREE,
    exists_at_target: bool = True,
) -> ChangeOutcome:
    """Determine whether ``crate``'s source changed between two revisions.

    Args:
        crate: Crate to inspect.
        reader: Revision reader used to list changed paths.
        target: Revision the crate is compared against.
        working: Revision holding the new state, the working tree by default.
        exists_at_target: False if the crate is new since ``target``; a new
                          crate always counts as changed.

    Returns:
        ChangeOutcome with the sorted changed paths under the source dir.
    """
    scope = crate.source_dir.rstrip("/")
    paths = sorted(
        p
        for p in reader.changed_paths(target, working, crate.source_dir)
        if scope == "." or p == scope or p.startswith(scope + "/")
    )
    if paths or not exists_at_target:
        return ChangeOutcome(status=ChangeStatus.SOURCE_CHANGED, paths=paths)
    return ChangeOutcome(status=ChangeStatus.NO_SOURCE_CHANGE)
