"""Git implementation of the revision reader.

All commands run in the workspace root, and every path handed in or out is
relative to that root (``--relative`` / ``./`` prefixes), so the workspace
may live in a subdirectory of the repository.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .errors import RevisionError
from .revisions import WORKING_TREE, Revision
from .shell import git, git_bytes


def _split_z(output: str) -> set[str]:
    """Split NUL-separated git output (from -z) into a set of paths."""
    return {p for p in output.split("\0") if p}


class GitRepository:
    """RevisionReader backed by the git CLI.

    Args:
        root: Workspace root; git runs here.
        remote: If set, branches resolve to refs/remotes/<remote>/<branch>
                instead of local branches.
    """

    def __init__(self, root: Path, remote: str | None = None) -> None:
        self.root = Path(root)
        self.remote = remote
        self._resolved: dict[str, str] = {}

    def _git(self, *args: str) -> str:
        return git(*args, cwd=self.root)

    def _ref_name(self, branch: str) -> str:
        if branch.startswith("refs/"):
            return branch
        if self.remote:
            return f"refs/remotes/{self.remote}/{branch}"
        return f"refs/heads/{branch}"

    def resolve_revision(self, branch: str) -> str:
        """Resolve a branch to a commit sha, failing if it is not present locally."""
        if branch in self._resolved:
            return self._resolved[branch]

        # Fails with GitError outside a repository
        self._git("rev-parse", "--git-dir")

        ref = self._ref_name(branch)
        result = git_bytes(
            "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}",
            cwd=self.root, check=False,
        )
        if result.returncode != 0:
            raise RevisionError(branch, self._missing_reason(branch, ref))

        sha = result.stdout.decode().strip()
        self._resolved[branch] = sha
        return sha

    def _missing_reason(self, branch: str, ref: str) -> str:
        if self.remote or branch.startswith("refs/"):
            return f"{ref} does not exist"
        remote_refs = self._git(
            "for-each-ref", "--format=%(refname:short)", f"refs/remotes/*/{branch}"
        )
        if remote_refs:
            first = remote_refs.splitlines()[0]
            return (
                f"no local branch {branch!r}; it exists only as {first}. "
                "Create a local branch or pass --remote"
            )
        return f"{ref} does not exist"

    def read_file(self, revision: Revision, path: str) -> bytes | None:
        if revision is WORKING_TREE:
            file = self.root / path
            return file.read_bytes() if file.is_file() else None

        spec = f"{revision}:./{path}"
        exists = git_bytes("cat-file", "-e", spec, cwd=self.root, check=False)
        if exists.returncode != 0:
            return None
        return git_bytes("cat-file", "blob", spec, cwd=self.root).stdout

    def changed_paths(
        self, revision_a: Revision, revision_b: Revision, scope_dir: str
    ) -> set[str]:
        scope = scope_dir.rstrip("/") or "."
        if revision_a is WORKING_TREE and revision_b is WORKING_TREE:
            return set()

        if revision_a is WORKING_TREE or revision_b is WORKING_TREE:
            # Name-only diffs are symmetric; compare the commit to the worktree
            commit = revision_b if revision_a is WORKING_TREE else revision_a
            changed = _split_z(
                self._git(
                    "diff", "--name-only", "--no-renames", "--relative", "-z",
                    str(commit), "--", scope,
                )
            )
            untracked = _split_z(
                self._git("ls-files", "--others", "--exclude-standard", "-z", "--", scope)
            )
            return changed | untracked

        return _split_z(
            self._git(
                "diff", "--name-only", "--no-renames", "--relative", "-z",
                str(revision_a), str(revision_b), "--", scope,
            )
        )

    def stage(self, paths: Iterable[str]) -> None:
        paths = list(paths)
        if paths:
            self._git("add", "--", *paths)

    def commit(self, message: str, body: str = "") -> None:
        args = ["commit", "-m", message]
        if body:
            args.extend(["-m", body])
        self._git(*args)
