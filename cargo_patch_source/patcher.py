"""Apply and remove ``[patch]`` overrides on a target manifest.

apply:  clean -> patched. Writes override entries, rewrites version
        requirements, and records the originals in the metadata block.
remove: patched -> clean. Restores the recorded originals and deletes the
        override entries this tool owns, optionally scoped by pattern.

Both passes mutate one in-memory document; the file is written once at the
end, atomically, and only if the pass succeeded.
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import Any

import structlog
import tomlkit

from cargo_patch_source.discovery import discover
from cargo_patch_source.exceptions import PatternRequiredForRemoteSource
from cargo_patch_source.manifest import (
    ensure_table,
    get_dependency_version,
    get_path,
    is_table,
    iter_declarations,
    load_manifest,
    override_table_name,
    remove_path,
    resolve_manifest_path,
    set_dependency_version,
    write_manifest,
)
from cargo_patch_source.metadata import read_metadata, write_metadata
from cargo_patch_source.models import (
    OVERRIDE_EXISTS,
    VERSION_FIELD_MISSING,
    ApplyReport,
    CrateToPatch,
    GitReference,
    ManagedMetadata,
    PatchSource,
    PatchWarning,
    RemoveReport,
    VersionCapture,
)
from cargo_patch_source.pattern import Matcher, compile_pattern
from cargo_patch_source.repo import checkout
from cargo_patch_source.selector import select_crates

log = structlog.get_logger("cargo_patch_source.patch")

Fetcher = Callable[[GitReference, Path], Path]

_WORKSPACE_DEPS = "workspace.dependencies"


def _override_entry(crate: CrateToPatch) -> Any:
    entry = tomlkit.inline_table()
    if isinstance(crate.location, GitReference):
        entry["git"] = crate.location.url
        for kind in ("branch", "tag", "rev"):
            value = getattr(crate.location, kind)
            if value is not None:
                entry[kind] = value
    else:
        entry["path"] = str(crate.location)
    return entry


def _inherits_workspace(declaration: Any) -> bool:
    """``foo = { workspace = true }`` takes its version from workspace.dependencies."""
    return is_table(declaration) and declaration.get("workspace") is True


def _describe(location: Path | GitReference) -> str:
    if isinstance(location, GitReference):
        return location.describe()
    return str(location)


def _capture_versions(declarations: list[tuple[str, Any, str]]) -> VersionCapture:
    """Collapse a crate's current requirements into one metadata value."""
    by_section: dict[str, str] = {}
    for section_path, table, key in declarations:
        version = get_dependency_version(table[key])
        if version is not None:
            by_section.setdefault(section_path, version)
    distinct = set(by_section.values())
    if not distinct:
        return ""
    if len(distinct) == 1:
        return distinct.pop()
    return by_section


def apply_to_document(doc: Any, crates: list[CrateToPatch]) -> ApplyReport:
    """Patch *doc* in place for every crate in *crates*."""
    meta = read_metadata(doc) or ManagedMetadata()
    report = ApplyReport()
    declarations = list(iter_declarations(doc))

    for crate in crates:
        decls = [(s, t, k) for s, t, k, name in declarations if name == crate.name]
        if not decls:
            continue
        _, first_table, first_key = decls[0]
        table_name = override_table_name(first_table[first_key])
        managed = crate.name in meta.original_versions

        if get_path(doc, "patch", table_name, crate.name) is not None and not managed:
            message = f"[patch.{table_name}] already has an entry for {crate.name}; left untouched"
            log.warning("patch.override_exists", crate=crate.name, table=table_name)
            report.skipped.append(crate.name)
            report.warnings.append(PatchWarning(crate.name, OVERRIDE_EXISTS, message))
            continue

        ensure_table(doc, "patch", table_name)[crate.name] = _override_entry(crate)

        if not managed:
            meta.original_versions[crate.name] = _capture_versions(decls)

        # workspace.dependencies is always visited first
        rewritten: set[str] = set()
        missing: list[str] = []
        for section_path, table, key in decls:
            if set_dependency_version(table, key, crate.version):
                rewritten.add(section_path)
            elif not (_WORKSPACE_DEPS in rewritten and _inherits_workspace(table[key])):
                missing.append(section_path)
        if missing:
            message = (
                f"{crate.name} has no version field in {', '.join(missing)}; "
                f"override written without a version rewrite"
            )
            log.warning("patch.version_missing", crate=crate.name, sections=missing)
            report.warnings.append(PatchWarning(crate.name, VERSION_FIELD_MISSING, message))

        meta.add_override(table_name)
        report.patched.append(crate)
        log.info(
            "patch.override_written",
            crate=crate.name,
            version=crate.version,
            table=table_name,
            location=_describe(crate.location),
        )

    if report.patched:
        write_metadata(doc, meta)
    return report


def remove_from_document(doc: Any, matcher: Matcher) -> RemoveReport:
    """Undo the overrides recorded in *doc*'s metadata that match *matcher*."""
    report = RemoveReport()
    meta = read_metadata(doc)
    if meta is None:
        log.info("remove.nothing_managed")
        return report

    targets = [name for name in meta.original_versions if matcher.matches(name)]
    declarations = list(iter_declarations(doc))

    for name in targets:
        capture = meta.original_versions.pop(name)
        for section_path, table, key, crate_name in declarations:
            if crate_name != name:
                continue
            original = capture if isinstance(capture, str) else capture.get(section_path)
            if original:
                set_dependency_version(table, key, original)
        for table_name in meta.managed_overrides:
            remove_path(doc, "patch", table_name, name)
        report.restored.append(name)
        log.info("remove.restored", crate=name, original=capture)

    still_managed: list[str] = []
    for table_name in meta.managed_overrides:
        table = get_path(doc, "patch", table_name)
        if not is_table(table):
            continue
        if len(table) == 0:
            remove_path(doc, "patch", table_name)
            continue
        if any(name in table for name in meta.original_versions):
            still_managed.append(table_name)

    report.changed = bool(targets) or still_managed != meta.managed_overrides
    meta.managed_overrides = still_managed
    report.remaining = sorted(meta.original_versions)
    if report.changed:
        write_metadata(doc, meta)
    return report


def apply_patches(
    source: PatchSource,
    manifest_path: Path | str | None = None,
    pattern: str | None = None,
    *,
    fetcher: Fetcher = checkout,
) -> ApplyReport:
    """Redirect the target manifest's matching dependencies to *source*.

    A git source must come with a pattern; patching every dependency a remote
    tree happens to provide is refused.
    """
    if not source.is_local and pattern is None:
        raise PatternRequiredForRemoteSource(source.git.url)

    matcher = compile_pattern(pattern)
    path = resolve_manifest_path(manifest_path)
    doc = load_manifest(path)

    if source.is_local:
        crates = select_crates(discover(source.path), doc, matcher)
    else:
        with tempfile.TemporaryDirectory(prefix="cargo-patch-source-") as workdir:
            checkout_dir = fetcher(source.git, Path(workdir))
            discovered = discover(checkout_dir)
        crates = [replace(c, location=source.git) for c in select_crates(discovered, doc, matcher)]

    report = apply_to_document(doc, crates)
    report.manifest_path = path
    if report.patched:
        write_manifest(path, doc)
    log.info(
        "patch.applied",
        manifest=str(path),
        patched=[c.name for c in report.patched],
        skipped=report.skipped,
    )
    return report


def remove_patches(
    manifest_path: Path | str | None = None,
    pattern: str | None = None,
) -> RemoveReport:
    """Restore the target manifest; safe to run when nothing is patched."""
    path = resolve_manifest_path(manifest_path)
    doc = load_manifest(path)
    report = remove_from_document(doc, compile_pattern(pattern))
    report.manifest_path = path
    if report.changed:
        write_manifest(path, doc)
    log.info("remove.done", manifest=str(path), restored=report.restored, remaining=report.remaining)
    return report
