"""CLI entry point: cargo-patch-source.

Subcommands:
    cargo-patch-source apply --path ../rattler --pattern 'rattler-*'
    cargo-patch-source apply --git https://github.com/org/repo --tag v1.0 --pattern 'foo-*'
    cargo-patch-source remove [--pattern 'rattler-*']

Installed as a cargo subcommand it also runs as ``cargo patch-source ...``;
cargo passes the subcommand name as the first argument, which is dropped.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from cargo_patch_source.core.logging import setup_logging
from cargo_patch_source.exceptions import PatchError
from cargo_patch_source.models import GitReference, PatchSource
from cargo_patch_source.patcher import apply_patches, remove_patches

_CARGO_SUBCOMMAND = "patch-source"


def _fail(exc: PatchError) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(exc.exit_code)


def _build_source(
    path: Path | None,
    git: str | None,
    branch: str | None,
    tag: str | None,
    rev: str | None,
) -> PatchSource:
    if (path is None) == (git is None):
        raise click.UsageError("Specify exactly one of --path or --git")
    if git is None:
        if branch is not None or tag is not None or rev is not None:
            raise click.UsageError("--branch, --tag and --rev require --git")
        return PatchSource.local_path(path)
    try:
        return PatchSource.remote(GitReference(url=git, branch=branch, tag=tag, rev=rev))
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


@click.group()
@click.version_option(package_name="cargo-patch-source")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """Automatically apply dependency [patch] sections to Cargo.toml."""
    setup_logging(verbose=verbose)


@main.command("apply")
@click.option("--path", "source_path", type=click.Path(path_type=Path), help="Local path to a crate or workspace")
@click.option("--git", default=None, help="Git repository URL")
@click.option("--branch", default=None, help="Git branch to use (only with --git)")
@click.option("--tag", default=None, help="Git tag to use (only with --git)")
@click.option("--rev", default=None, help="Git revision to use (only with --git)")
@click.option("--pattern", default=None, help="Crate name glob, e.g. 'rattler-*'")
@click.option(
    "--manifest-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Cargo.toml to modify (default: ./Cargo.toml)",
)
def apply(
    source_path: Path | None,
    git: str | None,
    branch: str | None,
    tag: str | None,
    rev: str | None,
    pattern: str | None,
    manifest_path: Path | None,
) -> None:
    """Apply patches from a source to the target Cargo.toml."""
    source = _build_source(source_path, git, branch, tag, rev)
    try:
        report = apply_patches(source, manifest_path, pattern)
    except PatchError as exc:
        _fail(exc)
        return

    for crate in report.patched:
        location = crate.location.describe() if isinstance(crate.location, GitReference) else crate.location
        click.echo(f"  Patching {crate.name} {crate.version} -> {location}")
    for warning in report.warnings:
        click.echo(f"  Warning: {warning.message}", err=True)
    if report.patched:
        click.echo(f"Successfully applied patches to {report.manifest_path}")
    else:
        click.echo("No crates to patch after skipping existing patch entries")


@main.command("remove")
@click.option("--pattern", default=None, help="Only remove patches for crates matching this glob")
@click.option(
    "--manifest-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Cargo.toml to modify (default: ./Cargo.toml)",
)
def remove(pattern: str | None, manifest_path: Path | None) -> None:
    """Remove managed patches and restore original versions."""
    try:
        report = remove_patches(manifest_path, pattern)
    except PatchError as exc:
        _fail(exc)
        return

    if not report.changed:
        click.echo(f"No managed patches to remove in {report.manifest_path}")
        return
    if report.restored:
        click.echo(f"Restored original versions for {len(report.restored)} crates")
    if report.remaining:
        click.echo(f"Still patched: {', '.join(report.remaining)}")
    click.echo(f"Successfully removed patches from {report.manifest_path}")


def run() -> None:
    """Console-script entry point, tolerant of cargo's subcommand argument."""
    args = sys.argv[1:]
    if args and args[0] == _CARGO_SUBCOMMAND:
        args = args[1:]
    main(args=args, prog_name="cargo-patch-source")


if __name__ == "__main__":
    run()
