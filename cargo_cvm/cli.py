"""CLI entry point for cargo-cvm."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from cargo_cvm.errors import ConfigError, CvmError
from cargo_cvm.git import GitRepository
from cargo_cvm.models import BumpKind, Mode
from cargo_cvm.pipeline import run_check

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def resolve_mode(
    *, check: bool, warn: bool, fix: bool, force: bool, commit: bool
) -> Mode:
    """Pick the primary mode from the CLI flags.

    At most one mode flag may be given; none means warn. --commit is only
    meaningful together with --fix or --force.

    Raises:
        ConfigError: On conflicting or incomplete flag combinations.
    """
    selected = [
        mode
        for mode, flag in (
            (Mode.CHECK, check),
            (Mode.WARN, warn),
            (Mode.FIX, fix),
            (Mode.FORCE, force),
        )
        if flag
    ]
    if len(selected) > 1:
        flags = ", ".join(f"--{m.value}" for m in selected)
        raise ConfigError(f"Conflicting modes: {flags}. Pick exactly one.")
    mode = selected[0] if selected else Mode.WARN
    if commit and mode not in (Mode.FIX, Mode.FORCE):
        raise ConfigError("--commit can only be used with --fix or --force")
    return mode


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(None, "-V", "--version", package_name="cargo-cvm")
@click.option(
    "-x", "--check", is_flag=True, help="Fail if any crate version is out of date."
)
@click.option(
    "-w", "--warn", is_flag=True, help="Warn if any crate version is out of date."
)
@click.option(
    "-f",
    "--fix",
    is_flag=True,
    help="Bump out-of-date crate versions (see --semver).",
)
@click.option(
    "-F",
    "--force",
    is_flag=True,
    help="Bump every crate version, even up-to-date ones (see --semver).",
)
@click.option(
    "-c",
    "--commit",
    is_flag=True,
    help="git commit the updated versions; otherwise they are only staged. "
    "Requires --fix or --force.",
)
@click.option(
    "-b",
    "--branch",
    default="master",
    show_default=True,
    help="Branch to compare the working tree against.",
)
@click.option(
    "-s",
    "--semver",
    "semver_kind",
    type=click.Choice([k.value for k in BumpKind], case_sensitive=False),
    default=BumpKind.MINOR.value,
    show_default=True,
    help="Semver component to bump with --fix or --force.",
)
@click.option(
    "-r",
    "--remote",
    default=None,
    help="Compare against <remote>/<branch> instead of the local branch.",
)
def cli(
    check: bool,
    warn: bool,
    fix: bool,
    force: bool,
    commit: bool,
    branch: str,
    semver_kind: str,
    remote: str | None,
) -> None:
    """Rust crate version manager.

    Checks that every publishable crate whose sources changed relative to
    the target branch has had its version bumped, and optionally bumps it.
    """
    try:
        mode = resolve_mode(
            check=check, warn=warn, fix=fix, force=force, commit=commit
        )
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    root = Path.cwd()
    try:
        report = run_check(
            root,
            GitRepository(root, remote=remote),
            mode=mode,
            branch=branch,
            semver_kind=BumpKind(semver_kind.lower()),
            commit=commit,
        )
    except CvmError as exc:
        raise click.ClickException(str(exc)) from exc

    if report.failed:
        if report.errors:
            raise click.ClickException(
                f"One or more crate versions are lower than on {branch}"
            )
        raise click.ClickException("One or more crate versions are out of date")


def main(argv: list[str] | None = None) -> None:
    """Console script entry point.

    Cargo runs external subcommands as ``cargo-cvm cvm <args>``; the
    leading ``cvm`` is dropped so both invocations behave the same.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    if args[:1] == ["cvm"]:
        args = args[1:]
    cli.main(args=args, prog_name="cargo cvm")
