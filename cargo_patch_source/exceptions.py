"""Custom exceptions for cargo-patch-source.

Every error carries the process exit code the CLI maps it to.
"""

from __future__ import annotations

from pathlib import Path


class PatchError(Exception):
    """Base exception for all patch/remove errors."""

    exit_code = 1


class SourceNotFound(PatchError):
    """Raised when the alternate source directory or its manifest is missing."""

    exit_code = 3

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Source path does not exist: {path}")


class TargetManifestNotFound(PatchError):
    """Raised when the manifest to patch does not exist."""

    exit_code = 4

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Target manifest not found: {path}")


class ManifestParseError(PatchError):
    """Raised when a manifest cannot be parsed as TOML."""

    exit_code = 5

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {path}: {reason}")


class PatternRequiredForRemoteSource(PatchError):
    """Raised when a git source is given without a crate pattern."""

    exit_code = 6

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"A --pattern is required when patching from a git source ({url})"
        )


class NoMatchingCrates(PatchError):
    """Raised when selection yields nothing to patch."""

    exit_code = 7

    def __init__(self, pattern: str | None):
        self.pattern = pattern
        label = pattern if pattern is not None else "*"
        super().__init__(
            f"No dependencies of the target manifest match pattern '{label}' "
            f"and exist in the source"
        )


class NoMembersFound(PatchError):
    """Raised when a source manifest declares no resolvable packages."""

    exit_code = 8

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"No packages found in source manifest: {path}")


class IoFailure(PatchError):
    """Raised when reading or atomically writing a manifest fails."""

    exit_code = 9

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"I/O failure on {path}: {reason}")


class RemoteFetchFailure(PatchError):
    """Raised when the git checkout of a remote source fails."""

    exit_code = 10

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")
