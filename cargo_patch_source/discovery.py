"""Discover the crates an alternate source root provides."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import structlog

from cargo_patch_source.core.config import DEFAULT_PACKAGE_VERSION, MANIFEST_NAME
from cargo_patch_source.exceptions import ManifestParseError, NoMembersFound, SourceNotFound
from cargo_patch_source.models import SourceCrate

log = structlog.get_logger("cargo_patch_source.discovery")


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ManifestParseError(path, str(exc)) from exc


def _package_version(package: dict[str, Any], workspace_package: dict[str, Any]) -> str:
    """Resolve a package version, following ``version.workspace = true``."""
    version = package.get("version")
    if isinstance(version, str):
        return version
    if isinstance(version, dict) and version.get("workspace") is True:
        inherited = workspace_package.get("version")
        if isinstance(inherited, str):
            return inherited
    return DEFAULT_PACKAGE_VERSION


def _expand_members(root: Path, patterns: list[str]) -> list[Path]:
    dirs: list[Path] = []
    for pattern in patterns:
        pattern = pattern.rstrip("/")
        if any(ch in pattern for ch in "*?["):
            hits = sorted(p for p in root.glob(pattern) if p.is_dir())
        else:
            hits = [root / pattern]
        for hit in hits:
            resolved = hit.resolve()
            if resolved not in dirs:
                dirs.append(resolved)
    return dirs


def _member_dirs(root: Path, workspace: dict[str, Any]) -> list[Path]:
    members = _expand_members(root, list(workspace.get("members", [])))
    excluded = set(_expand_members(root, list(workspace.get("exclude", []))))
    return [d for d in members if d not in excluded]


def discover(root: Path | str) -> list[SourceCrate]:
    """Enumerate the packages in *root*, a single package or a workspace.

    Each crate's location is the absolute path of its package directory.
    Results are sorted by crate name.
    """
    root = Path(root)
    manifest_path = root / MANIFEST_NAME
    if not root.exists() or not manifest_path.is_file():
        raise SourceNotFound(manifest_path if root.exists() else root)

    root = root.resolve()
    manifest_path = root / MANIFEST_NAME
    data = _read_toml(manifest_path)
    workspace = data.get("workspace")
    workspace_package = workspace.get("package", {}) if isinstance(workspace, dict) else {}

    crates: dict[str, SourceCrate] = {}

    def add(package: dict[str, Any], directory: Path) -> None:
        name = package.get("name")
        if not isinstance(name, str):
            log.debug("discovery.package_without_name", path=str(directory))
            return
        if name in crates:
            return
        crates[name] = SourceCrate(
            name=name,
            version=_package_version(package, workspace_package),
            location=directory,
        )

    if isinstance(data.get("package"), dict):
        add(data["package"], root)

    if isinstance(workspace, dict):
        for member_dir in _member_dirs(root, workspace):
            member_manifest = member_dir / MANIFEST_NAME
            if member_dir == root:
                continue
            if not member_manifest.is_file():
                log.warning("discovery.member_skipped", path=str(member_dir))
                continue
            package = _read_toml(member_manifest).get("package")
            if isinstance(package, dict):
                add(package, member_dir)

    if not crates:
        raise NoMembersFound(manifest_path)

    result = sorted(crates.values(), key=lambda c: c.name)
    log.debug("discovery.done", root=str(root), crates=[c.name for c in result])
    return result
