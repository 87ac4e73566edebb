"""Shell and git utilities.

Provides thin wrappers around subprocess calls for running git, plus
output formatting helpers shared by the pipeline.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from .errors import GitError


def git_bytes(
    *args: str, cwd: Path | str | None = None, check: bool = True
) -> subprocess.CompletedProcess[bytes]:
    """Run a git command and return the completed process with raw output.

    Args:
        *args: Arguments to pass to git (e.g., "show", "HEAD:Cargo.toml").
        cwd: Directory to run git in. Defaults to the process cwd.
        check: If True (default), raise GitError on non-zero exit. Set to
               False for commands whose exit code is itself the answer.
    """
    result = subprocess.run(["git", *args], capture_output=True, cwd=cwd)
    if check and result.returncode != 0:
        stderr = result.stderr.decode(errors="replace").strip()
        raise GitError(args, result.returncode, stderr)
    return result


def git(*args: str, cwd: Path | str | None = None, check: bool = True) -> str:
    """Run a git command and return stripped stdout as text."""
    result = git_bytes(*args, cwd=cwd, check=check)
    return result.stdout.decode(errors="replace").strip()


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate the phases of a run in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str) -> None:
    """Print a message to stderr."""
    print(msg, file=sys.stderr)
