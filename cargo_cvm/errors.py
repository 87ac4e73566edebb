"""Exception types for cargo-cvm.

Fatal problems (bad flags, broken manifests, unknown refs, git failures)
are raised as exceptions and abort the run. Per-crate findings such as an
out-of-date or decreased version are not exceptions; they are collected
into the run report instead.
"""

from __future__ import annotations

from collections.abc import Sequence


class CvmError(Exception):
    """Base class for all fatal cargo-cvm errors."""


class ConfigError(CvmError):
    """Invalid flag combination or [metadata.cvm] configuration."""


class ManifestError(CvmError):
    """A Cargo.toml is missing, unparseable, or carries an invalid version."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class RevisionError(CvmError):
    """The target branch or ref cannot be resolved locally."""

    def __init__(self, ref: str, reason: str = "not found") -> None:
        self.ref = ref
        super().__init__(f"Cannot resolve target revision {ref!r}: {reason}")


class GitError(CvmError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.args_ = tuple(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(
            f"git {' '.join(self.args_)} failed with exit code {returncode}{detail}"
        )
