"""Git checkout helper for remote patch sources."""

from __future__ import annotations

import subprocess
import uuid
from pathlib import Path

import structlog

from cargo_patch_source.core.config import Settings
from cargo_patch_source.exceptions import RemoteFetchFailure
from cargo_patch_source.models import GitReference

log = structlog.get_logger("cargo_patch_source.repo")


def checkout(reference: GitReference, workdir: Path, git: str | None = None) -> Path:
    """Clone *reference* into *workdir* and return the checkout path.

    Branches and tags are fetched shallowly with ``--branch``; a revision
    needs the full history so any SHA can be checked out.

    The caller is responsible for cleaning up *workdir*.

    Raises ``RemoteFetchFailure`` when git is missing or exits non-zero.
    """
    git = git or Settings.from_env().git_executable
    target = workdir / f"source-{uuid.uuid4().hex[:8]}"

    if reference.branch is not None or reference.tag is not None:
        _run([git, "clone", "--depth", "1", "--branch", reference.ref, "--", reference.url, str(target)], reference)
    elif reference.rev is not None:
        _run([git, "clone", "--", reference.url, str(target)], reference)
        _run([git, "-C", str(target), "checkout", reference.rev], reference)
    else:
        _run([git, "clone", "--depth", "1", "--", reference.url, str(target)], reference)

    log.info("repo.checked_out", source=reference.describe(), path=str(target))
    return target


def _run(cmd: list[str], reference: GitReference) -> None:
    """Run a git command, raising RemoteFetchFailure on failure."""
    log.debug("repo.git", cmd=cmd)
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as exc:
        raise RemoteFetchFailure(reference.url, str(exc)) from exc
    if proc.returncode != 0:
        raise RemoteFetchFailure(
            reference.url,
            f"git command failed (exit {proc.returncode}): {proc.stderr.strip()}",
        )
