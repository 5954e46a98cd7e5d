"""Data models for the patch/remove engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union


@dataclass(frozen=True)
class GitReference:
    """A remote source: repository URL plus at most one of branch/tag/rev."""

    url: str
    branch: str | None = None
    tag: str | None = None
    rev: str | None = None

    def __post_init__(self) -> None:
        given = [r for r in (self.branch, self.tag, self.rev) if r is not None]
        if len(given) > 1:
            raise ValueError("only one of branch, tag or rev may be given")
        if "" in given:
            raise ValueError("branch, tag and rev must not be empty")

    @property
    def ref(self) -> str | None:
        """The branch, tag or revision to check out, if any."""
        return next((r for r in (self.branch, self.tag, self.rev) if r is not None), None)

    def describe(self) -> str:
        for kind in ("branch", "tag", "rev"):
            value = getattr(self, kind)
            if value is not None:
                return f"{self.url} ({kind}: {value})"
        return self.url


Location = Union[Path, GitReference]


@dataclass(frozen=True)
class PatchSource:
    """Where the alternate crates come from: a local path XOR a git reference."""

    path: Path | None = None
    git: GitReference | None = None

    def __post_init__(self) -> None:
        if (self.path is None) == (self.git is None):
            raise ValueError("exactly one of path or git must be given")

    @classmethod
    def local_path(cls, path: Path | str) -> PatchSource:
        return cls(path=Path(path))

    @classmethod
    def remote(cls, reference: GitReference) -> PatchSource:
        return cls(git=reference)

    @property
    def is_local(self) -> bool:
        return self.path is not None


@dataclass(frozen=True)
class SourceCrate:
    """A package discovered in an alternate source root."""

    name: str
    version: str
    location: Location


@dataclass(frozen=True)
class CrateToPatch:
    """A declared dependency selected for patching."""

    name: str
    version: str
    location: Location


# crate -> version string, or crate -> {section path -> version string}
VersionCapture = Union[str, dict[str, str]]


@dataclass
class ManagedMetadata:
    """Bookkeeping persisted in the manifest's metadata namespace."""

    original_versions: dict[str, VersionCapture] = field(default_factory=dict)
    managed_overrides: list[str] = field(default_factory=list)

    def add_override(self, table_name: str) -> None:
        if table_name not in self.managed_overrides:
            self.managed_overrides.append(table_name)

    def is_empty(self) -> bool:
        return not self.original_versions and not self.managed_overrides


VERSION_FIELD_MISSING = "version-field-missing"
OVERRIDE_EXISTS = "override-exists"


@dataclass(frozen=True)
class PatchWarning:
    """A per-crate condition that did not stop the apply."""

    crate: str
    kind: str
    message: str


@dataclass
class ApplyReport:
    """Result of an apply pass."""

    manifest_path: Path | None = None
    patched: list[CrateToPatch] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[PatchWarning] = field(default_factory=list)


@dataclass
class RemoveReport:
    """Result of a remove pass."""

    manifest_path: Path | None = None
    restored: list[str] = field(default_factory=list)
    remaining: list[str] = field(default_factory=list)
    changed: bool = False
